from scam_thread_risk.orchestrator.prefilter import (
    ExplicitActions,
    PrefilterContext,
    PrefilterOptions,
    brand_token_in_host,
    prefilter_thread,
    recent_lines,
)


def _ids(result) -> set[str]:
    return set(result.trig_ids)


def test_benign_text_stays_closed():
    result = prefilter_thread("오늘 저녁에 밥 먹자")
    assert result.score == 0
    assert result.action == "none"
    assert result.gate_pass is False


def test_safe_account_transfer_goes_auto():
    result = prefilter_thread("검찰청 수사관입니다. 안전계좌로 지금 바로 이체하세요")
    assert result.action == "auto"
    assert result.gate_pass is True
    assert {"pf_safe_account", "pf_transfer", "pf_combo_safe_xfer"} <= _ids(result)
    assert 0 <= result.score <= 100


def test_bare_shortened_link():
    result = prefilter_thread("https://bit.ly/3xYz")
    assert {"pf_url_present", "pf_url_shortener", "pf_url_bare_link"} <= _ids(result)
    assert result.gate_pass is True


def test_display_text_mismatch():
    result = prefilter_thread("[www.kbstar.com](https://kbstar-secure.top/login) 에서 확인")
    signal = next(item for item in result.signals if item.id == "pf_url_display_mismatch")
    assert any(match.startswith("(bank-text)") for match in signal.matches or [])


def test_open_url_forces_auto_when_link_present():
    context = PrefilterContext(explicit_actions=ExplicitActions(open_url=1))
    result = prefilter_thread("택배 조회 https://track.example.com", context=context)
    assert result.action == "auto"
    assert result.score >= result.threshold_auto
    assert "pf_trigger_open_url" in _ids(result)


def test_unknown_contact_signal():
    context = PrefilterContext.model_validate({"isSavedContact": False})
    result = prefilter_thread("안녕하세요", context=context)
    assert "pf_unknown_contact" in _ids(result)


def test_only_recent_lines_are_scored():
    text = "안전계좌로 이체하세요\n" + "\n".join(f"안부 {i}" for i in range(5))
    result = prefilter_thread(text, PrefilterOptions(recent_blocks_max=2))
    assert result.window.blocks_considered == 2
    assert "pf_safe_account" not in _ids(result)
    assert recent_lines("a\n\nb\nc", 2) == ["b", "c"]


def test_brand_token_in_host():
    assert brand_token_in_host("kbstar-login.xyz") == "kbstar"
    assert brand_token_in_host("nh-secure.top") == "nh"
    assert brand_token_in_host("example.com") is None

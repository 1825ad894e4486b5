from scam_thread_risk.config.settings import load_config
from scam_thread_risk.domain.thread.models import BlocksInput, CallChecks, ThreadTextInput
from scam_thread_risk.evidence.summarize import build_signals
from scam_thread_risk.orchestrator.pipeline import AnalyzeOptions, analyze_stream, analyze_thread
from scam_thread_risk.retrieval.pools import SemIndexItem, SimIndexItem
from scam_thread_risk.retrieval.similarity import vec_from_signals


def test_safe_account_demand_with_intent_to_pay():
    result = analyze_thread("S: 안전계좌로 500만원 입금해주세요\nR: 네 지금 보낼게요")
    assert result.risk_level in {"medium", "high"}
    assert result.stage_peak == "payment"
    assert result.ui_risk_level == "high"
    assert result.r_gate_tag == "r:will:pay"
    assert result.ui_score_total >= result.score_total
    assert {"ctx_transfer_phrase", "safe_account"} <= {hit.rule_id for hit in result.hits_top}


def test_completed_payment_by_recipient_only():
    result = analyze_thread("R: 이미 송금했어요")
    assert result.score_total == 0
    assert result.risk_level == "low"
    assert result.ui_score_total >= 80
    assert result.ui_risk_level == "high"
    assert result.r_gate_tag == "r:done:pay"


def test_empty_input():
    result = analyze_thread("")
    assert result.message_count == 0
    assert result.score_total == 0
    assert result.triggered is False
    assert result.evidence_top3 == []


def test_recipient_text_never_changes_threat_score():
    sender = "S: 택배 주소 확인 부탁드려요"
    base = analyze_thread(sender)
    noisy = analyze_thread(sender + "\nR: 안전계좌로 500만원 입금했어요 https://bit.ly/x 인증번호 보냈어요")
    assert noisy.score_total == base.score_total
    assert noisy.risk_level == base.risk_level
    assert noisy.urls == base.urls
    assert noisy.ui_score_total >= 80


def test_added_sender_evidence_never_lowers_score():
    thread = "S: 고객님 계좌가 정지되었습니다"
    previous = analyze_thread(thread).score_total
    for line in ("S: 인증번호 6자리 알려주세요", "S: https://bit.ly/kb-check 접속하세요", "S: 안전계좌로 이체하세요"):
        thread += "\n" + line
        current = analyze_thread(thread).score_total
        assert current >= previous
        previous = current


def test_ui_score_is_never_below_threat_score():
    threads = [
        "S: 인증번호 알려주세요\nR: 싫어요 신고했어요",
        "S: 팀뷰어 설치해주세요 지금 바로\nR: 설치할게요",
        "S: 엄마 나 폰 고장나서 이 번호야 50만원 보내줘\nR: 이거 사기 맞나요?",
        "S: https://bit.ly/abc 에서 본인 인증하세요",
    ]
    for thread in threads:
        result = analyze_thread(thread)
        assert result.ui_score_total >= result.score_total
        assert 0 <= result.score_total <= 100


def test_analysis_is_deterministic():
    thread = "S: [국민은행] 해외결제 승인 https://kbstar-secure.top/login\nR: 제가 안 했는데요"
    first = analyze_thread(thread)
    second = analyze_thread(thread)
    assert first.model_dump() == second.model_dump()


def test_legacy_and_block_inputs():
    legacy = analyze_thread({"thread": "S: 안녕하세요", "callChecks": {"otpAsked": True}})
    assert "call_otp" in {hit.rule_id for hit in legacy.hits_top}
    assert legacy.score_total >= 30
    assert legacy.evidence_top3[0].kind == "call"

    blocks = analyze_thread(BlocksInput(thread_blocks=["S: 하나", "S: 둘"]))
    assert blocks.message_count == 2

    typed = analyze_thread(ThreadTextInput(thread_text="S: 하나", call_checks=CallChecks(remote_asked=True)))
    assert typed.stage_peak == "install"


def test_limits_are_recorded():
    many_blocks = "\n".join(f"S: 메시지 {i}" for i in range(205))
    result = analyze_thread(many_blocks)
    assert result.message_count == 200
    assert "blocks_capped_200" in result.provenance.limits_hit

    many_urls = "S: " + " ".join(f"https://site{i}.example.com" for i in range(31))
    result = analyze_thread(many_urls)
    assert len(result.urls) == 30
    assert "urls_capped_30" in result.provenance.limits_hit
    assert result.signals_top[0].id == "ctx_url_present_sender"
    assert result.triggered is True


def test_similarity_boost_is_additive_and_anchored():
    thread = "S: 인증번호 알려주세요"
    base = analyze_thread(thread)
    assert base.score_total < 90
    pool = [SimIndexItem(id="otp-case", category="otp", vec=vec_from_signals(build_signals(base.hits_top)))]

    boosted = analyze_thread(thread, AnalyzeOptions().with_pools(sim_items=pool))
    assert boosted.similarity_top[0].id == "otp-case"
    assert boosted.score_total == min(100.0, round(base.score_total + 10, 2))
    assert boosted.signals_top[0].id == "sim_hint"


def test_semantic_neighbours_never_touch_the_score():
    thread = "S: 인증번호 알려주세요"
    base = analyze_thread(thread)
    pool = [SemIndexItem(id="n1", vec=[1.0, 0.0]), SemIndexItem(id="n2", vec=[0.0, 1.0])]
    result = analyze_thread(thread, AnalyzeOptions().with_pools(sem_items=pool, sem_query_vec=[1.0, 0.0]))
    assert [item.id for item in result.semantic_top] == ["n1", "n2"]
    assert result.score_total == base.score_total
    assert result.risk_level == base.risk_level


def test_prefilter_can_be_disabled():
    result = analyze_thread("S: 인증번호 알려주세요", AnalyzeOptions(prefilter_enabled=False))
    assert result.prefilter is None
    assert result.triggered is True


def test_stream_ends_with_final_result():
    events = list(analyze_stream("S: 안전계좌로 이체하세요"))
    assert events[-1]["type"] == "final"
    stages = [event.get("stage") for event in events[:-1]]
    assert stages[0] == "init"
    assert {"prefilter", "segment", "rule_score", "escalation", "report"} <= set(stages)
    assert events[-1]["result"].trace == events[:-1]


def test_report_package_mentions_level():
    result = analyze_thread("S: 안전계좌로 500만원 입금해주세요")
    assert result.package_text.startswith("[피싱 의심 분석 패키지]")
    assert result.risk_level.upper() in result.package_text
    assert len(result.actions) == 6


def _realtime_options():
    config, _ = load_config(profile_override="realtime")
    return AnalyzeOptions.from_config(config)


def test_recipient_quote_does_not_move_the_realtime_window():
    options = _realtime_options()
    lines = ["S: https://bit.ly/kb-check 에서 본인 인증하세요"] + [f"S: 확인 부탁드립니다 {i}" for i in range(6)]
    base = analyze_thread("\n".join(lines), options)
    noisy = analyze_thread("\n".join(lines + ["R: 안전계좌로 500만원 이체하라고요?"]), options)
    assert base.score_total > 0
    assert noisy.score_total == base.score_total
    assert noisy.risk_level == base.risk_level
    assert noisy.context.mode == "auto"


def test_word_markers_keep_recipient_links_out_of_sender_urls():
    result = analyze_thread("발신: 고객님 확인 부탁드립니다\n수신: http://evil-kb.top 눌렀고 이미 송금했어요")
    assert result.urls == []
    assert result.score_total == analyze_thread("발신: 고객님 확인 부탁드립니다").score_total
    assert result.r_gate_tag == "r:done:pay"
    assert result.ui_score_total >= 80


def test_continuation_line_links_count_as_sender_urls():
    result = analyze_thread("S: 아래 주소에서 본인 인증하세요\nhttps://bit.ly/kb-check\nR: 네")
    assert result.urls == ["https://bit.ly/kb-check"]
    assert result.triggered is True


def test_realtime_window_score_never_drops_as_sender_adds_evidence():
    options = _realtime_options()
    thread = "S: 고객님 계좌가 정지되었습니다"
    previous = analyze_thread(thread, options).score_total
    for line in (
        "S: https://bit.ly/kb-check 접속하세요",
        "R: 네 알겠습니다",
        "S: 인증번호 6자리 알려주세요",
        "S: 안전계좌로 500만원 이체하세요",
    ):
        thread += "\n" + line
        current = analyze_thread(thread, options).score_total
        assert current >= previous
        previous = current

from scam_thread_risk.domain.evidence import Hit
from scam_thread_risk.evidence.report import build_package_text, default_actions, format_number
from scam_thread_risk.evidence.summarize import (
    build_evidence_top3,
    build_signals,
    prepend_signal,
    select_signals_top,
    sender_url_hint,
    severity_for_weight,
)


def _hit(rule_id: str, weight: float, matched: tuple[str, ...] = ("m",), sample: str = "s") -> Hit:
    return Hit(rule_id=rule_id, label=f"label-{rule_id}", stage="verify", weight=weight, matched=matched, sample=sample)


def test_severity_buckets():
    assert severity_for_weight(25) == "high"
    assert severity_for_weight(15) == "medium"
    assert severity_for_weight(14.9) == "low"


def test_evidence_top3_format():
    items = build_evidence_top3([_hit("a", 5), _hit("call_otp", 30, ("(call) otp asked",), "체크"), _hit("b", 18), _hit("c", 2)])
    assert len(items) == 3
    assert items[0].text == 'label-call_otp · (call) otp asked · "체크"'
    assert items[0].kind == "call"
    assert [item.severity for item in items] == ["high", "medium", "low"]


def test_signals_group_by_rule():
    signals = build_signals([_hit("otp", 22, ("인증번호",)), _hit("otp", 10, ("otp",)), _hit("link", 25)])
    assert [item.id for item in signals] == ["otp", "link"]
    assert signals[0].weight_sum == 32
    assert signals[0].count == 2
    assert signals[0].examples == ["인증번호", "otp"]


def test_signals_top_limits():
    hits = [_hit(f"r{i}", 10 + i, tuple(f"x{j}" for j in range(5))) for i in range(12)]
    top = select_signals_top(build_signals(hits))
    assert len(top) == 8
    assert all(len(item.examples) <= 3 for item in top)


def test_url_hint_is_prepended_without_weight():
    hint = sender_url_hint(["https://a.example", "https://b.example"])
    out = prepend_signal(select_signals_top(build_signals([_hit("link", 25)])), hint)
    assert out[0].id == "ctx_url_present_sender"
    assert out[0].weight_sum == 0


def test_package_text_sections():
    text = build_package_text(
        risk_level="high",
        score_total=72.5,
        message_count=3,
        evidence_top3=build_evidence_top3([_hit("otp", 30)]),
        signals_top=build_signals([_hit("otp", 30)]),
        actions=default_actions(),
    )
    assert "- 위험도: HIGH (72.5/100)" in text
    assert "- 메시지 블록 수: 3" in text
    assert "1. label-otp" in text
    assert "- Call 112 (Police)" in text
    assert format_number(40.0) == "40"

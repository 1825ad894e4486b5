from scam_thread_risk.domain.evidence import Hit
from scam_thread_risk.orchestrator.escalation import RecipientGate
from scam_thread_risk.orchestrator.fusion import (
    compute_ui_score,
    evaluate_similarity_boost,
    has_action_anchor,
    risk_level,
    similarity_boost,
)
from scam_thread_risk.rules.weights import RiskThresholds


def test_risk_level_bands():
    assert risk_level(34.9) == "low"
    assert risk_level(35) == "medium"
    assert risk_level(65) == "high"
    assert risk_level(40, RiskThresholds(medium=45, high=70)) == "low"


def test_similarity_tiers():
    assert similarity_boost(0.97) == 10
    assert similarity_boost(0.94) == 8
    assert similarity_boost(0.91) == 6
    assert similarity_boost(0.88) == 4
    assert similarity_boost(0.5) == 0


def test_similarity_boost_requires_gate_and_anchor():
    assert evaluate_similarity_boost(0.95, gate=0.9, anchor=True).applied == 8
    assert evaluate_similarity_boost(0.95, gate=0.9, anchor=False).applied == 0
    blocked = evaluate_similarity_boost(0.95, gate=0.96, anchor=True)
    assert blocked.gate_pass is False
    assert blocked.applied == 0


def test_action_anchor():
    link = Hit(rule_id="link", label="URL", stage="verify", weight=25)
    urgent = Hit(rule_id="urgent", label="긴급", stage="info", weight=10)
    assert has_action_anchor([urgent, link]) is True
    assert has_action_anchor([urgent]) is False


def test_incident_floor_lifts_ui_score():
    ui = compute_ui_score(
        threat_score=0,
        threat_level="low",
        gate=RecipientGate(tag="r:done:pay", incident_floor=80),
        anchor=False,
    )
    assert ui.score == 80
    assert ui.level == "high"
    assert ui.show_intervention is True


def test_intent_boost_needs_a_reason_to_bump():
    gate = RecipientGate(tag="r:will:pay")
    quiet = compute_ui_score(threat_score=20, threat_level="low", gate=gate, anchor=False)
    assert quiet.score == 20
    assert quiet.boost == 0
    bumped = compute_ui_score(threat_score=40, threat_level="medium", gate=gate, anchor=False)
    assert bumped.score == 56
    assert bumped.level == "medium"


def test_ui_score_never_below_threat():
    for threat in (0, 12.5, 35, 64, 99, 100):
        for tag in ("", "r:resist", "r:ask", "r:will:pay", "r:done:otp"):
            gate = RecipientGate(tag=tag, incident_floor=65 if tag == "r:done:otp" else 0)
            ui = compute_ui_score(threat_score=threat, threat_level=risk_level(threat), gate=gate, anchor=True)
            assert threat <= ui.score <= 100

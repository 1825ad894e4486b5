"""Score fusion: threat level, similarity soft boost and the derived UI score."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from scam_thread_risk.domain.evidence import Hit, RiskLevel
from scam_thread_risk.orchestrator.escalation import EscalationPolicy, RecipientGate
from scam_thread_risk.rules.weights import RiskThresholds

ACTION_ANCHOR_RULES = frozenset(
    {
        "link",
        "shortener",
        "otp",
        "call_otp",
        "ctx_otp_relay",
        "ctx_otp_finance",
        "transfer",
        "safe_account",
        "ctx_payment_request",
        "ctx_transfer_phrase",
        "giftcard",
        "ctx_giftcard",
        "go_bank_atm",
        "visit_place",
        "ctx_visit_place",
        "remote",
        "call_remote",
        "install_app",
        "apk",
        "url_download_ext",
        "ctx_install_mention",
        "threat",
    }
)

SIM_BOOST_TIERS: tuple[tuple[float, float], ...] = ((0.96, 10.0), (0.93, 8.0), (0.90, 6.0), (0.87, 4.0))


def _bounded_score(raw: Any) -> float:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return 0.0
    if value < 0:
        return 0.0
    if value > 100:
        return 100.0
    return value


def risk_level(score: float, thresholds: RiskThresholds | None = None) -> RiskLevel:
    limits = (thresholds or RiskThresholds()).normalize()
    value = _bounded_score(score)
    if value >= limits.high:
        return "high"
    if value >= limits.medium:
        return "medium"
    return "low"


def has_action_anchor(hits: Iterable[Hit]) -> bool:
    return any(hit.rule_id in ACTION_ANCHOR_RULES for hit in hits)


def similarity_boost(similarity: float) -> float:
    for floor, boost in SIM_BOOST_TIERS:
        if similarity >= floor:
            return boost
    return 0.0


@dataclass(frozen=True)
class SimilarityBoost:
    similarity: float
    gate: float
    gate_pass: bool
    anchor: bool
    applied: float


def evaluate_similarity_boost(similarity: float, *, gate: float, anchor: bool) -> SimilarityBoost:
    """Tiered soft boost; applied only above the gate and with a sender action anchor."""

    tier = similarity_boost(similarity)
    gate_pass = similarity >= gate
    applied = tier if tier > 0 and gate_pass and anchor else 0.0
    return SimilarityBoost(similarity=similarity, gate=gate, gate_pass=gate_pass, anchor=anchor, applied=applied)


@dataclass(frozen=True)
class UiScore:
    score: float
    level: RiskLevel
    boost: float
    show_intervention: bool


def compute_ui_score(
    *,
    threat_score: float,
    threat_level: RiskLevel,
    gate: RecipientGate,
    anchor: bool,
    prefilter_triggered: bool = False,
    sender_url: bool = False,
    thresholds: RiskThresholds | None = None,
    policy: EscalationPolicy | None = None,
) -> UiScore:
    """Derive the display score; it never drops below the threat score."""

    limits = (thresholds or RiskThresholds()).normalize()
    rules = policy or EscalationPolicy()
    threat = _bounded_score(threat_score)
    floor = _bounded_score(gate.incident_floor)

    can_bump = floor > 0 or threat >= limits.medium or anchor
    boost = rules.boost_for(gate.tag) if can_bump else 0.0
    score = _bounded_score(max(threat + boost, floor))
    level: RiskLevel = "high" if floor >= limits.high else threat_level
    show = floor > 0 or gate.shows_intervention or prefilter_triggered or sender_url or threat >= limits.medium or anchor
    return UiScore(score=round(score, 2), level=level, boost=boost, show_intervention=show)


__all__ = [
    "ACTION_ANCHOR_RULES",
    "SIM_BOOST_TIERS",
    "SimilarityBoost",
    "UiScore",
    "compute_ui_score",
    "evaluate_similarity_boost",
    "has_action_anchor",
    "risk_level",
    "similarity_boost",
]

"""Evidence top-3 and per-rule signal summaries built from scored hits."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from scam_thread_risk.domain.evidence import EvidenceItem, Hit, Severity, SignalSummary, Stage

EVIDENCE_TOP_N = 3
SIGNALS_TOP_N = 8
SIGNAL_EXAMPLES_MAX = 3
SIGNAL_EXAMPLES_COLLECT = 12
EVIDENCE_MATCHES_MAX = 6
SEVERITY_HIGH = 25.0
SEVERITY_MEDIUM = 15.0


def severity_for_weight(weight: float) -> Severity:
    if weight >= SEVERITY_HIGH:
        return "high"
    if weight >= SEVERITY_MEDIUM:
        return "medium"
    return "low"


def build_evidence_top3(hits: Sequence[Hit], limit: int = EVIDENCE_TOP_N) -> list[EvidenceItem]:
    """``label · matched terms · "sample"`` for the heaviest hits."""

    ordered = sorted(hits, key=lambda hit: -hit.weight)
    items: list[EvidenceItem] = []
    for hit in ordered[:limit]:
        parts = [hit.label.strip() or hit.rule_id or "signal"]
        matched = ", ".join(item.strip() for item in hit.matched[:EVIDENCE_MATCHES_MAX] if item.strip())
        if matched:
            parts.append(matched)
        sample = hit.sample.strip()
        if sample:
            parts.append(f'"{sample}"')
        kind = "call" if hit.rule_id.startswith("call_") else "message"
        items.append(EvidenceItem(kind=kind, severity=severity_for_weight(hit.weight), text=" · ".join(parts)))
    return items


@dataclass
class _Aggregate:
    id: str
    label: str
    stage: Stage
    best_weight: float
    weight_sum: float = 0.0
    count: int = 0
    examples: dict[str, None] = field(default_factory=dict)


def build_signals(hits: Sequence[Hit], *, examples: int = 6) -> list[SignalSummary]:
    """Group hits by rule id; label and stage come from the heaviest hit."""

    grouped: dict[str, _Aggregate] = {}
    for hit in hits:
        rule_id = hit.rule_id.strip()
        if not rule_id:
            continue
        agg = grouped.get(rule_id)
        if agg is None:
            agg = _Aggregate(id=rule_id, label=hit.label, stage=hit.stage, best_weight=hit.weight)
            grouped[rule_id] = agg
        elif hit.weight > agg.best_weight:
            agg.best_weight = hit.weight
            agg.label = hit.label or agg.label
            agg.stage = hit.stage
        agg.count += 1
        agg.weight_sum += hit.weight
        for item in hit.matched:
            value = item.strip()
            if value and len(agg.examples) < SIGNAL_EXAMPLES_COLLECT:
                agg.examples[value] = None

    signals = [
        SignalSummary(
            id=agg.id,
            label=agg.label,
            stage=agg.stage,
            weight_sum=round(agg.weight_sum, 2),
            count=agg.count,
            examples=list(agg.examples)[:examples],
        )
        for agg in grouped.values()
    ]
    signals.sort(key=lambda item: (-item.weight_sum, -item.count))
    return signals


def select_signals_top(signals: Sequence[SignalSummary], limit: int = SIGNALS_TOP_N) -> list[SignalSummary]:
    return [
        item.model_copy(update={"examples": item.examples[:SIGNAL_EXAMPLES_MAX]}) for item in list(signals)[:limit]
    ]


def prepend_signal(signals: Sequence[SignalSummary], hint: SignalSummary, limit: int = SIGNALS_TOP_N) -> list[SignalSummary]:
    return [hint, *signals][:limit]


def sender_url_hint(urls: Sequence[str]) -> SignalSummary:
    """Zero-weight marker: the sender side carries a URL or bare domain."""

    return SignalSummary(
        id="ctx_url_present_sender",
        label="S: URL/도메인 포함",
        weight_sum=0.0,
        count=1,
        examples=list(urls[:SIGNAL_EXAMPLES_MAX]),
        stage="verify",
    )


__all__ = [
    "build_evidence_top3",
    "build_signals",
    "prepend_signal",
    "select_signals_top",
    "sender_url_hint",
    "severity_for_weight",
]

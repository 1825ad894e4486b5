"""Sparse signal-fingerprint similarity against a reference pool."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
import math

from scam_thread_risk.domain.evidence import SignalSummary, SimilarityMatch
from scam_thread_risk.retrieval.pools import SimIndexItem

SparseVec = dict[str, float]

QUERY_TOP_SIGNALS = 24
SHARED_SIGNALS_MAX = 3
TOP_K_MIN = 1
TOP_K_MAX = 20


def vec_from_signals(signals: Sequence[SignalSummary], top_k: int = QUERY_TOP_SIGNALS) -> SparseVec:
    """log1p-scaled weights of the heaviest signals, normalized against the heaviest."""

    ordered = sorted(signals, key=lambda item: -item.weight_sum)[:top_k]
    max_weight = max((item.weight_sum for item in ordered if math.isfinite(item.weight_sum)), default=0.0)
    if max_weight <= 0:
        return {}
    scale = math.log1p(max_weight)
    vec: SparseVec = {}
    for item in ordered:
        key = item.id.strip()
        if not key or not math.isfinite(item.weight_sum) or item.weight_sum <= 0:
            continue
        vec[key] = math.log1p(item.weight_sum) / scale
    return vec


def cosine(a: Mapping[str, float], b: Mapping[str, float]) -> float:
    dot = sum(value * b[key] for key, value in a.items() if key in b)
    na = sum(value * value for value in a.values())
    nb = sum(value * value for value in b.values())
    if na <= 0 or nb <= 0:
        return 0.0
    return dot / (math.sqrt(na) * math.sqrt(nb))


def shared_top_keys(a: Mapping[str, float], b: Mapping[str, float], n: int = SHARED_SIGNALS_MAX) -> list[str]:
    common = sorted((key for key in a if key in b), key=lambda key: -(a[key] + b[key]))
    return common[:n]


def rank_similar(
    signals: Sequence[SignalSummary],
    items: Sequence[SimIndexItem],
    *,
    top_k: int = 10,
    min_sim: float | None = None,
) -> list[SimilarityMatch]:
    """Top-K pool items by cosine; ``min_sim`` of None or 0 keeps every candidate."""

    if not items:
        return []
    query = vec_from_signals(signals)
    if not query:
        return []
    limit = max(TOP_K_MIN, min(TOP_K_MAX, int(top_k)))
    floor = max(0.0, min(1.0, min_sim)) if min_sim else None

    scored: list[SimilarityMatch] = []
    for item in items:
        similarity = cosine(query, item.vec)
        if not math.isfinite(similarity):
            continue
        if floor is not None and similarity < floor:
            continue
        label = (item.label or "").strip() or (f"{item.category} · {item.id}" if item.category else item.id)
        scored.append(
            SimilarityMatch(
                id=item.id,
                label=label,
                sample=(item.sample or "").strip() or None,
                similarity=round(similarity, 6),
                category=item.category,
                expected_risk=item.expected_risk,
                shared_signals=shared_top_keys(query, item.vec) or None,
            )
        )
    scored.sort(key=lambda match: -match.similarity)
    return scored[:limit]


def similarity_hint(
    top: SimilarityMatch,
    *,
    gate: float,
    gate_pass: bool,
    anchor: bool,
    applied: float,
) -> SignalSummary:
    examples = [
        f"sim={top.similarity:.3f}",
        f"gate={gate:.3f}",
        f"gatePass={'yes' if gate_pass else 'no'}",
        f"match={top.id or 'n/a'}",
        f"cat={top.category or 'n/a'}",
        f"boost=+{applied:g}" if applied > 0 else "boost=0",
        f"anchor={'yes' if anchor else 'no'}",
    ]
    examples.extend(f"shared:{item}" for item in (top.shared_signals or [])[:SHARED_SIGNALS_MAX])
    return SignalSummary(
        id="sim_hint",
        label="SIM hint (soft boost)" if applied > 0 else "SIM hint (no boost)",
        weight_sum=applied,
        count=1,
        examples=examples,
        stage="verify",
    )


__all__ = ["SparseVec", "cosine", "rank_similar", "shared_top_keys", "similarity_hint", "vec_from_signals"]

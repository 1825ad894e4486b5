"""Dense-vector ranking against a precomputed embedding pool."""

from __future__ import annotations

from collections.abc import Sequence
import logging
import math

from scam_thread_risk.domain.evidence import SimilarityMatch
from scam_thread_risk.retrieval.pools import SemIndexItem

logger = logging.getLogger(__name__)


def _clamp01(value: float) -> float:
    if not math.isfinite(value):
        return 0.0
    return max(0.0, min(1.0, value))


def dot(a: Sequence[float], b: Sequence[float]) -> float:
    return sum(x * y for x, y in zip(a, b))


def rank_semantic(
    query_vec: Sequence[float] | None,
    items: Sequence[SemIndexItem],
    *,
    top_k: int = 8,
    min_sim: float | None = None,
) -> list[SimilarityMatch]:
    """Vectors are unit-normalized, so the dot product is the cosine."""

    if not items or not query_vec:
        return []
    dim = len(query_vec)
    if any(len(item.vec) != dim for item in items):
        logger.warning("semantic query has %d dims but the pool does not; skipping", dim)
        return []
    limit = max(1, min(20, int(top_k)))
    floor = _clamp01(min_sim) if min_sim is not None else None

    scored: list[SimilarityMatch] = []
    for item in items:
        similarity = _clamp01(dot(query_vec, item.vec))
        if floor is not None and similarity < floor:
            continue
        scored.append(
            SimilarityMatch(
                id=item.id,
                label=f"{item.category} · {item.id}" if item.category else item.id,
                similarity=round(similarity, 6),
                category=item.category,
                expected_risk=item.expected_risk,
                shared_signals=[item.text_hint] if item.text_hint else None,
            )
        )
    scored.sort(key=lambda match: -match.similarity)
    return scored[:limit]


__all__ = ["dot", "rank_semantic"]

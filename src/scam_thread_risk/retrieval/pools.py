"""Reference pool records and tolerant pool-file parsing."""

from __future__ import annotations

import logging
import math
from typing import Any, Literal

from pydantic import Field, ValidationError, field_validator

from scam_thread_risk.domain.base import ContractModel

logger = logging.getLogger(__name__)

PoolKind = Literal["sim", "sem"]


class SimIndexItem(ContractModel):
    id: str
    category: str | None = None
    expected_risk: str | None = None
    label: str | None = None
    sample: str | None = None
    vec: dict[str, float] = Field(default_factory=dict)

    @field_validator("id")
    @classmethod
    def _require_id(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("id must not be empty")
        return value


class SemIndexItem(ContractModel):
    id: str
    category: str | None = None
    expected_risk: str | None = None
    text_hint: str | None = None
    vec: list[float]

    @field_validator("id")
    @classmethod
    def _require_id(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("id must not be empty")
        return value


def _fingerprint(raw: Any) -> dict[str, float] | None:
    """A weight map, or a list of signal ids (each weighted 1.0)."""

    if isinstance(raw, dict):
        out: dict[str, float] = {}
        for key, value in raw.items():
            try:
                number = float(value)
            except (TypeError, ValueError):
                continue
            if math.isfinite(number) and str(key).strip():
                out[str(key).strip()] = number
        return out
    if isinstance(raw, (list, tuple)):
        return {str(item).strip(): 1.0 for item in raw if str(item).strip()}
    return None


def _items(payload: Any) -> list[Any]:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict) and isinstance(payload.get("items"), list):
        return payload["items"]
    return []


def parse_sim_pool(payload: Any) -> list[SimIndexItem]:
    items: list[SimIndexItem] = []
    skipped = 0
    for raw in _items(payload):
        if not isinstance(raw, dict):
            skipped += 1
            continue
        vec = _fingerprint(raw.get("vec", raw.get("signalFingerprint", raw.get("signal_fingerprint"))))
        if vec is None:
            skipped += 1
            continue
        record = {key: value for key, value in raw.items() if key not in {"vec", "signalFingerprint", "signal_fingerprint"}}
        record["vec"] = vec
        try:
            items.append(SimIndexItem.model_validate(record))
        except ValidationError:
            skipped += 1
    if skipped:
        logger.warning("sparse pool: skipped %d malformed record(s)", skipped)
    return items


def parse_sem_pool(payload: Any) -> list[SemIndexItem]:
    dim = payload.get("dim") if isinstance(payload, dict) else None
    expected = dim if isinstance(dim, int) and dim > 0 else None
    items: list[SemIndexItem] = []
    skipped = 0
    for raw in _items(payload):
        if not isinstance(raw, dict):
            skipped += 1
            continue
        try:
            item = SemIndexItem.model_validate(raw)
        except ValidationError:
            skipped += 1
            continue
        if not item.vec or (expected is not None and len(item.vec) != expected):
            skipped += 1
            continue
        if not all(math.isfinite(value) for value in item.vec):
            skipped += 1
            continue
        items.append(item)
    if skipped:
        logger.warning("dense pool: skipped %d malformed record(s)", skipped)
    return items


def parse_pool(payload: Any, kind: PoolKind) -> list[SimIndexItem] | list[SemIndexItem]:
    if kind == "sem":
        return parse_sem_pool(payload)
    return parse_sim_pool(payload)


__all__ = ["PoolKind", "SemIndexItem", "SimIndexItem", "parse_pool", "parse_sem_pool", "parse_sim_pool"]

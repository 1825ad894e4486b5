"""Rule weight table and risk thresholds."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
import math
from types import MappingProxyType
from typing import Any

DEFAULT_WEIGHTS: Mapping[str, float] = MappingProxyType(
    {
        "link": 25,
        "shortener": 30,
        "urlHttp": 8,
        "urlIpHost": 18,
        "urlPunycode": 20,
        "urlAtSign": 16,
        "urlSuspiciousTld": 12,
        "urlDeepSubdomain": 10,
        "urlDownloadExt": 22,
        "urlBrandMismatch": 26,
        "otp": 22,
        "personalInfo": 20,
        "money": 18,
        "urgency": 10,
        "authority": 10,
        "threat": 14,
        "installRemote": 28,
        "safeAccount": 22,
        "investLure": 10,
        "jobLure": 20,
        "txnAlert": 6,
        "visitPlace": 12,
        "callOtp": 30,
        "callRemote": 35,
        "callUrgent": 15,
        "callFirstContact": 10,
    }
)


def _finite_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) and number >= 0 else None


def normalize_weights(overrides: Mapping[str, Any] | None = None) -> dict[str, float]:
    """Merge known-key overrides onto the default table; unknown keys are ignored."""

    weights = {key: float(value) for key, value in DEFAULT_WEIGHTS.items()}
    for key, value in (overrides or {}).items():
        number = _finite_number(value)
        if key in weights and number is not None:
            weights[key] = number
    return weights


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


@dataclass(frozen=True)
class RiskThresholds:
    medium: float = 35
    high: float = 65

    def normalize(self) -> "RiskThresholds":
        medium = _clamp(float(self.medium), 0, 99)
        high = _clamp(float(self.high), medium + 1, 200)
        return RiskThresholds(medium=medium, high=high)


__all__ = ["DEFAULT_WEIGHTS", "RiskThresholds", "normalize_weights"]

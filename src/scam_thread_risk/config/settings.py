"""Config loader from env + yaml."""

from __future__ import annotations

from pathlib import Path
import os
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from scam_thread_risk.core.errors import ConfigError

PACKAGE_ROOT = Path(__file__).resolve().parents[1]
DEFAULT_CONFIG_PATH = PACKAGE_ROOT / "config" / "defaults.yaml"
ENV_PREFIX = "SCAM_THREAD_RISK_"


class RuntimeSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX, extra="ignore")

    profile: str = Field(default="")
    default_config_path: str = Field(default="")
    log_level: str = Field(default="")


class AppConfig(BaseModel):

    profile: str = Field(default="default")
    log_level: str = Field(default="INFO")
    risk_medium_threshold: int = Field(default=35)
    risk_high_threshold: int = Field(default=65)
    weights: dict[str, float] = Field(default_factory=dict)
    prefilter_enabled: bool = Field(default=True)
    prefilter_threshold_soft: int = Field(default=28)
    prefilter_threshold_auto: int = Field(default=52)
    prefilter_recent_blocks_max: int = Field(default=16)
    turn_prefix_enabled: bool = Field(default=False)
    auto_default_speaker: bool = Field(default=False)
    default_speaker: str = Field(default="S")
    context_mode: str = Field(default="sticky")
    context_max_messages: int = Field(default=20)
    context_max_sticky_messages: int = Field(default=200)
    context_backtrack: int = Field(default=4)
    context_max_days: int = Field(default=3)
    sim_index_path: str = Field(default="")
    sim_top_k: int = Field(default=10)
    sim_gate: float = Field(default=0.9)
    sem_index_path: str = Field(default="")
    sem_top_k: int = Field(default=8)
    sem_min_sim: float = Field(default=0.0)
    sim_load_timeout_s: float = Field(default=9.0)
    sem_load_timeout_s: float = Field(default=12.0)
    default_config_path: str = Field(default=str(DEFAULT_CONFIG_PATH))


def load_yaml(path: str | Path) -> dict[str, Any]:
    p = Path(path)
    if not p.exists():
        return {}
    try:
        payload = yaml.safe_load(p.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid config yaml {p}: {exc}") from exc
    return payload if isinstance(payload, dict) else {}


def _pick_env(name: str, fallback: Any) -> Any:
    value = os.getenv(name)
    return value if value not in (None, "") else fallback


def _parse_int(raw: Any, fallback: int) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return fallback
    return value if value >= 0 else fallback


def _parse_float(raw: Any, fallback: float) -> float:
    try:
        return float(raw)
    except (TypeError, ValueError):
        return fallback


def _parse_bool(raw: Any, fallback: bool) -> bool:
    if isinstance(raw, bool):
        return raw
    if raw is None:
        return fallback
    value = str(raw).strip().lower()
    if value in {"1", "true", "yes", "on"}:
        return True
    if value in {"0", "false", "no", "off"}:
        return False
    return fallback


def _parse_str(raw: Any, fallback: str) -> str:
    value = str(raw if raw is not None else "").strip()
    return value or fallback


def _parse_weights(raw: Any) -> dict[str, float]:
    """Accept a mapping or a ``key=value,key=value`` string."""

    items: list[tuple[Any, Any]] = []
    if isinstance(raw, dict):
        items = list(raw.items())
    elif isinstance(raw, str):
        for part in raw.split(","):
            key, sep, value = part.partition("=")
            if sep:
                items.append((key, value))
    out: dict[str, float] = {}
    for key, value in items:
        name = str(key).strip()
        try:
            number = float(value)
        except (TypeError, ValueError):
            continue
        if name:
            out[name] = number
    return out


_INT_FIELDS: dict[str, int] = {
    "risk_medium_threshold": 35,
    "risk_high_threshold": 65,
    "prefilter_threshold_soft": 28,
    "prefilter_threshold_auto": 52,
    "prefilter_recent_blocks_max": 16,
    "context_max_messages": 20,
    "context_max_sticky_messages": 200,
    "context_backtrack": 4,
    "context_max_days": 3,
    "sim_top_k": 10,
    "sem_top_k": 8,
}
_FLOAT_FIELDS: dict[str, float] = {
    "sim_gate": 0.9,
    "sem_min_sim": 0.0,
    "sim_load_timeout_s": 9.0,
    "sem_load_timeout_s": 12.0,
}
_BOOL_FIELDS: dict[str, bool] = {
    "prefilter_enabled": True,
    "turn_prefix_enabled": False,
    "auto_default_speaker": False,
}
_STR_FIELDS: dict[str, str] = {
    "log_level": "INFO",
    "default_speaker": "S",
    "context_mode": "sticky",
}
_PATH_FIELDS = ("sim_index_path", "sem_index_path")


def _resolve_default_config_path(path: str | Path | None, runtime: RuntimeSettings) -> Path:
    if path is not None:
        return Path(path)
    if runtime.default_config_path:
        return Path(runtime.default_config_path)
    return DEFAULT_CONFIG_PATH


def load_config(
    path: str | Path | None = None,
    *,
    profile_override: str | None = None,
) -> tuple[AppConfig, dict[str, Any]]:
    runtime = RuntimeSettings()
    default_path = _resolve_default_config_path(path, runtime)
    merged = load_yaml(default_path)
    profiles = merged.get("profiles")
    profile_map = profiles if isinstance(profiles, dict) else {}

    active_profile = str(profile_override or runtime.profile or merged.get("profile", "default"))
    if profile_override and profile_map and active_profile not in profile_map:
        raise ConfigError(f"unknown profile: {active_profile}")
    selected_profile = profile_map.get(active_profile, {})
    selected = selected_profile if isinstance(selected_profile, dict) else {}

    def _raw(name: str, fallback: Any) -> Any:
        return _pick_env(f"{ENV_PREFIX}{name.upper()}", selected.get(name, merged.get(name, fallback)))

    payload: dict[str, Any] = {
        "profile": active_profile,
        "default_config_path": str(default_path),
    }
    for name, fallback in _INT_FIELDS.items():
        payload[name] = _parse_int(_raw(name, fallback), fallback)
    for name, fallback in _FLOAT_FIELDS.items():
        payload[name] = _parse_float(_raw(name, fallback), fallback)
    for name, fallback in _BOOL_FIELDS.items():
        payload[name] = _parse_bool(_raw(name, fallback), fallback)
    for name, fallback in _STR_FIELDS.items():
        payload[name] = _parse_str(_raw(name, fallback), fallback)
    for name in _PATH_FIELDS:
        payload[name] = str(_raw(name, "") or "").strip()
    if runtime.log_level:
        payload["log_level"] = runtime.log_level.strip().upper()
    else:
        payload["log_level"] = payload["log_level"].upper()

    weights = _parse_weights(merged.get("weights", {}))
    weights.update(_parse_weights(selected.get("weights", {})))
    weights.update(_parse_weights(os.getenv(f"{ENV_PREFIX}WEIGHTS", "")))
    payload["weights"] = weights

    return AppConfig.model_validate(payload), merged

from __future__ import annotations

import pytest

from scam_thread_risk.config.settings import ENV_PREFIX


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("PROFILE", "DEFAULT_CONFIG_PATH", "LOG_LEVEL", "WEIGHTS", "RISK_MEDIUM_THRESHOLD", "SIM_INDEX_PATH"):
        monkeypatch.delenv(f"{ENV_PREFIX}{name}", raising=False)


@pytest.fixture
def scam_thread() -> str:
    return "S: 안전계좌로 500만원 입금해주세요\nR: 네 지금 보낼게요"

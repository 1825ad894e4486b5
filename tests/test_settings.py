import pytest

from scam_thread_risk.config.settings import load_config
from scam_thread_risk.core.errors import ConfigError
from scam_thread_risk.orchestrator.pipeline import AnalyzeOptions


def test_load_config_defaults():
    config, merged = load_config()
    assert config.profile == "default"
    assert config.risk_medium_threshold == 35
    assert config.risk_high_threshold == 65
    assert config.prefilter_enabled is True
    assert isinstance(merged.get("profiles"), dict)


def test_profile_from_env(monkeypatch):
    monkeypatch.setenv("SCAM_THREAD_RISK_PROFILE", "strict")
    config, _ = load_config()
    assert config.profile == "strict"
    assert config.risk_medium_threshold == 30
    assert config.sim_gate == 0.87


def test_profile_override_wins(monkeypatch):
    monkeypatch.setenv("SCAM_THREAD_RISK_PROFILE", "strict")
    config, _ = load_config(profile_override="realtime")
    options = AnalyzeOptions.from_config(config)
    assert options.window.mode == "auto"
    assert options.segment.auto_speaker is True
    assert options.prefilter.recent_blocks_max == 8


def test_env_field_and_weight_overrides(monkeypatch):
    monkeypatch.setenv("SCAM_THREAD_RISK_RISK_MEDIUM_THRESHOLD", "40")
    monkeypatch.setenv("SCAM_THREAD_RISK_WEIGHTS", "otp=40,link=oops")
    monkeypatch.setenv("SCAM_THREAD_RISK_LOG_LEVEL", "debug")
    config, _ = load_config()
    assert config.risk_medium_threshold == 40
    assert config.weights == {"otp": 40.0}
    assert config.log_level == "DEBUG"
    assert AnalyzeOptions.from_config(config).weights["otp"] == 40.0


def test_custom_config_file(tmp_path):
    path = tmp_path / "custom.yaml"
    path.write_text(
        "profile: team\nrisk_high_threshold: 70\nweights:\n  link: 10\nprofiles:\n  team:\n    sim_top_k: 3\n",
        encoding="utf-8",
    )
    config, _ = load_config(path)
    assert config.profile == "team"
    assert config.risk_high_threshold == 70
    assert config.sim_top_k == 3
    assert config.weights == {"link": 10.0}
    assert config.default_config_path == str(path)


def test_missing_config_file_falls_back_to_defaults(tmp_path):
    config, merged = load_config(tmp_path / "nope.yaml")
    assert merged == {}
    assert config.risk_medium_threshold == 35


def test_unknown_profile_override_is_rejected():
    with pytest.raises(ConfigError):
        load_config(profile_override="nightly")


def test_broken_yaml_is_a_config_error(tmp_path):
    path = tmp_path / "broken.yaml"
    path.write_text("profiles: [strict\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(path)

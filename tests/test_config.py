from pathlib import Path

import pytest

from config import load_config

_KEYS = (
    "ALARM_GRACE_PERIOD_MS",
    "PARTIAL_WAKE_LOCK_TIMEOUT_MS",
    "FULL_WAKE_LOCK_TIMEOUT_MS",
    "SURFACE_WAKE_LOCK_TIMEOUT_MS",
    "VIBRATION_PATTERN_MS",
    "ALARM_OVERLAY_WHEN_UNLOCKED",
    "OUTCOME_STORE_PATH",
    "LOG_LEVEL",
    "DEBUG",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in _KEYS:
        # setenv first so values loaded from a .env file are undone as well
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)


def test_defaults(tmp_path):
    config = load_config(tmp_path / ".env")

    assert config.grace_period_ms == 3000
    assert config.grace_period == 3.0
    assert config.partial_wake_lock_timeout_ms == 60_000
    assert config.full_wake_lock_timeout_ms == 300_000
    assert config.vibration_pattern_ms == [0, 1000, 500, 1000, 500, 1000]
    assert config.outcomes_path == Path("data/alarm_outcomes.json")
    assert config.overlay_when_unlocked is False
    assert config.log_level == "INFO"


def test_env_file_overrides(tmp_path):
    env = tmp_path / ".env"
    env.write_text("ALARM_GRACE_PERIOD_MS=250\nVIBRATION_PATTERN_MS=0, 200, 100\nDEBUG=1\n", encoding="utf-8")

    config = load_config(env)

    assert config.grace_period == 0.25
    assert config.vibration_pattern_ms == [0, 200, 100]
    assert config.log_level == "DEBUG"


def test_invalid_integer_names_the_variable(tmp_path, monkeypatch):
    monkeypatch.setenv("ALARM_GRACE_PERIOD_MS", "soon")
    with pytest.raises(ValueError, match="ALARM_GRACE_PERIOD_MS"):
        load_config(tmp_path / ".env")


def test_unbounded_wake_lock_is_rejected(tmp_path, monkeypatch):
    monkeypatch.setenv("FULL_WAKE_LOCK_TIMEOUT_MS", "0")
    with pytest.raises(ValueError, match="FULL_WAKE_LOCK_TIMEOUT_MS"):
        load_config(tmp_path / ".env")


def test_bad_vibration_pattern(tmp_path, monkeypatch):
    monkeypatch.setenv("VIBRATION_PATTERN_MS", "0,-5")
    with pytest.raises(ValueError, match="VIBRATION_PATTERN_MS"):
        load_config(tmp_path / ".env")

import logging
import logging.handlers
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv


def _get_env_bool(name: str, default: bool = False) -> bool:
    val = os.getenv(name)
    if val is None:
        return default
    return val.strip() in {"1", "true", "True", "yes", "YES", "y"}


def _get_env_int(name: str, default: int) -> int:
    val = os.getenv(name)
    if val is None or val == "":
        return default
    try:
        return int(val)
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be an integer") from exc


def _get_env_pattern(name: str, default: List[int]) -> List[int]:
    val = os.getenv(name)
    if val is None or val.strip() == "":
        return list(default)
    try:
        pattern = [int(part) for part in val.replace(" ", "").split(",") if part]
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be a comma separated list of integers") from exc
    if not pattern or any(p < 0 for p in pattern):
        raise ValueError(f"Environment variable {name} must contain non-negative durations")
    return pattern


DEFAULT_VIBRATION_PATTERN_MS = [0, 1000, 500, 1000, 500, 1000]


@dataclass
class Config:
    grace_period_ms: int
    partial_wake_lock_timeout_ms: int
    full_wake_lock_timeout_ms: int
    surface_wake_lock_timeout_ms: int
    alarms_path: Path
    outcomes_path: Path
    alarm_sound_path: Path
    alarm_check_interval_ms: int
    overlay_when_unlocked: bool
    overlay_permission: bool
    full_screen_permission: bool
    output_target_rate: int
    debug: bool
    log_level: str
    vibration_pattern_ms: List[int] = field(default_factory=lambda: list(DEFAULT_VIBRATION_PATTERN_MS))

    @property
    def grace_period(self) -> float:
        return self.grace_period_ms / 1000.0


def load_config(env_path: Optional[Path] = None) -> Config:
    if env_path is None:
        env_path = Path(".env")
    if env_path.exists():
        load_dotenv(env_path)

    grace_period_ms = _get_env_int("ALARM_GRACE_PERIOD_MS", 3000)
    if grace_period_ms <= 0:
        raise ValueError("ALARM_GRACE_PERIOD_MS must be positive")

    partial_wake_lock_timeout_ms = _get_env_int("PARTIAL_WAKE_LOCK_TIMEOUT_MS", 60_000)
    full_wake_lock_timeout_ms = _get_env_int("FULL_WAKE_LOCK_TIMEOUT_MS", 5 * 60_000)
    surface_wake_lock_timeout_ms = _get_env_int("SURFACE_WAKE_LOCK_TIMEOUT_MS", 60_000)
    for name, value in (
        ("PARTIAL_WAKE_LOCK_TIMEOUT_MS", partial_wake_lock_timeout_ms),
        ("FULL_WAKE_LOCK_TIMEOUT_MS", full_wake_lock_timeout_ms),
        ("SURFACE_WAKE_LOCK_TIMEOUT_MS", surface_wake_lock_timeout_ms),
    ):
        # Wake locks are never held without a deadline.
        if value <= 0:
            raise ValueError(f"{name} must be positive")

    vibration_pattern_ms = _get_env_pattern("VIBRATION_PATTERN_MS", DEFAULT_VIBRATION_PATTERN_MS)
    alarms_path = Path(os.getenv("ALARM_STORAGE_PATH", "data/scheduled_alarms.json"))
    outcomes_path = Path(os.getenv("OUTCOME_STORE_PATH", "data/alarm_outcomes.json"))
    alarm_sound_path = Path(os.getenv("ALARM_SOUND_PATH", "data/alarm.wav"))
    alarm_check_interval_ms = _get_env_int("ALARM_CHECK_INTERVAL_MS", 800)
    overlay_when_unlocked = _get_env_bool("ALARM_OVERLAY_WHEN_UNLOCKED", False)
    overlay_permission = _get_env_bool("OVERLAY_PERMISSION", True)
    full_screen_permission = _get_env_bool("FULL_SCREEN_PERMISSION", True)
    output_target_rate = _get_env_int("OUTPUT_TARGET_RATE", 24000)
    debug = _get_env_bool("DEBUG", False)
    log_level = os.getenv("LOG_LEVEL", "DEBUG" if debug else "INFO").upper()

    return Config(
        grace_period_ms=grace_period_ms,
        partial_wake_lock_timeout_ms=partial_wake_lock_timeout_ms,
        full_wake_lock_timeout_ms=full_wake_lock_timeout_ms,
        surface_wake_lock_timeout_ms=surface_wake_lock_timeout_ms,
        alarms_path=alarms_path,
        outcomes_path=outcomes_path,
        alarm_sound_path=alarm_sound_path,
        alarm_check_interval_ms=alarm_check_interval_ms,
        overlay_when_unlocked=overlay_when_unlocked,
        overlay_permission=overlay_permission,
        full_screen_permission=full_screen_permission,
        output_target_rate=output_target_rate,
        debug=debug,
        log_level=log_level,
        vibration_pattern_ms=vibration_pattern_ms,
    )


def setup_logging(log_level: str = "INFO") -> None:
    logs_dir = Path("logs")
    logs_dir.mkdir(exist_ok=True)

    log_path = logs_dir / "alarm.log"
    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    file_handler = logging.handlers.RotatingFileHandler(
        log_path, maxBytes=1_000_000, backupCount=3, encoding="utf-8"
    )
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)

    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        handlers=[file_handler, console_handler],
    )

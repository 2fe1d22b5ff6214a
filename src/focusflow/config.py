# src/focusflow/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- No secrets required at import time.
- Every value has a sane local default so the console app runs out of the box.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "FOCUSFLOW"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    state_db_path: Path

    # ---- Calendar ----
    # IANA zone name used for day boundaries; empty means the machine's local zone.
    timezone: str

    # ---- Connectors / background loops ----
    console_enabled: bool
    reminders_enabled: bool
    reminder_poll_seconds: float
    reminder_retry_seconds: float

    # ---- Progress ----
    default_goal_minutes: int

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "focusflow") or "focusflow"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/focusflow"))
        state_db_path = _env_path(_k("STATE_DB_PATH"), data_dir / "state.sqlite3")

        timezone = _env(_k("TIMEZONE"), "").strip()

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)
        reminders_enabled = _env_bool(_k("REMINDERS_ENABLED"), True)
        reminder_poll_seconds = _env_float(_k("REMINDER_POLL_SECONDS"), 15.0)
        reminder_retry_seconds = _env_float(_k("REMINDER_RETRY_SECONDS"), 60.0)

        default_goal_minutes = _env_int(_k("DEFAULT_GOAL_MINUTES"), 60)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            state_db_path=state_db_path,
            timezone=timezone,
            console_enabled=console_enabled,
            reminders_enabled=reminders_enabled,
            reminder_poll_seconds=reminder_poll_seconds,
            reminder_retry_seconds=reminder_retry_seconds,
            default_goal_minutes=default_goal_minutes,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS

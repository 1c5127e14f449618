# src/gemdesk/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- No secrets required at import time.
- Engine timing knobs (sweep interval, delay cooldown) live here, not in the engine.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

ENV_PREFIX = "GEMDESK"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv_if_available() -> None:
    """Load .env locally if python-dotenv is installed. Safe no-op otherwise."""
    try:
        from dotenv import load_dotenv  # type: ignore
    except Exception:
        return
    load_dotenv(override=False)


_load_dotenv_if_available()


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_optional(name: str) -> Optional[str]:
    v = os.getenv(name)
    if v is None or v.strip() == "":
        return None
    return v.strip()


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

    # ---- Connector flags ----
    console_enabled: bool

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    db_path: Path
    custom_messages_path: Path

    # ---- Engine timing ----
    sweep_interval_seconds: float
    delay_cooldown_seconds: float

    # ---- Presentation-side knobs ----
    custom_message_limit: int
    timezone: Optional[str]

    # Restrict the task view to one gem (worker session); None = admin view.
    gem_id: Optional[str]

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "gemdesk").strip() or "gemdesk"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/gemdesk"))
        db_path = _env_path(_k("DB_PATH"), data_dir / "gemdesk.sqlite3")
        custom_messages_path = _env_path(_k("CUSTOM_MESSAGES_PATH"), data_dir / "custom_messages.json")

        sweep_interval_seconds = _env_float(_k("SWEEP_INTERVAL_SECONDS"), 60.0)
        delay_cooldown_seconds = _env_float(_k("DELAY_COOLDOWN_SECONDS"), 5.0)

        custom_message_limit = _env_int(_k("CUSTOM_MESSAGE_LIMIT"), 10)
        timezone = _env_optional(_k("TIMEZONE"))
        gem_id = _env_optional(_k("GEM_ID"))

        return Settings(
            app_name=app_name,
            log_level=log_level,
            console_enabled=console_enabled,
            data_dir=data_dir,
            db_path=db_path,
            custom_messages_path=custom_messages_path,
            sweep_interval_seconds=sweep_interval_seconds,
            delay_cooldown_seconds=delay_cooldown_seconds,
            custom_message_limit=custom_message_limit,
            timezone=timezone,
            gem_id=gem_id,
        )


SETTINGS = Settings.from_env()

# ---- Optional local overrides (never committed) ----
# Prefer .env for secrets; use config_local.py only for safe overrides.
try:
    import config_local as _config_local  # type: ignore

    if hasattr(_config_local, "CONSOLE_ENABLED"):
        object.__setattr__(SETTINGS, "console_enabled", bool(_config_local.CONSOLE_ENABLED))  # type: ignore[misc]
    if hasattr(_config_local, "SWEEP_INTERVAL_SECONDS"):
        object.__setattr__(  # type: ignore[misc]
            SETTINGS, "sweep_interval_seconds", float(_config_local.SWEEP_INTERVAL_SECONDS)
        )
except Exception:
    pass


def get_settings() -> Settings:
    return SETTINGS

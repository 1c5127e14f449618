# src/gemdesk/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the SQLite store into the task engine and the client/gem services,
- persists the custom reminder message history as JSON.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
from datetime import tzinfo
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..clients.client_service import ClientService
from ..config import get_settings
from ..core.state import AppState
from ..gems.gem_service import GemService
from ..notify.messages import CustomMessageHistory
from ..storage.sqlite_store import SQLiteRecordStore
from ..tasks.task_service import TaskEngine

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)
    settings.custom_messages_path.parent.mkdir(parents=True, exist_ok=True)


def _resolve_tz(name: str | None) -> tzinfo | None:
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r; falling back to local time.", name)
        return None


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    tz = _resolve_tz(settings.timezone)
    store = SQLiteRecordStore(settings.db_path)
    engine = TaskEngine(
        store,
        gem_id=settings.gem_id,
        sweep_interval_seconds=settings.sweep_interval_seconds,
        delay_cooldown_seconds=settings.delay_cooldown_seconds,
        tz=tz,
    )

    state = AppState(
        settings=settings,
        store=store,
        engine=engine,
        clients=ClientService(store, task_snapshot=engine.all_tasks),
        # No auth backend locally; gems are created without logins.
        gems=GemService(store),
        messages=CustomMessageHistory(limit=settings.custom_message_limit),
        tz=tz,
    )
    return state


def load_custom_messages(state: AppState) -> CustomMessageHistory:
    limit = state.messages.limit
    raw_path = getattr(state.settings, "custom_messages_path", None)
    if not raw_path:
        return CustomMessageHistory(limit=limit)
    path = Path(raw_path)
    if not path.exists():
        return CustomMessageHistory(limit=limit)
    try:
        data = json.loads(path.read_text("utf-8"))
        if not isinstance(data, list):
            return CustomMessageHistory(limit=limit)
        history = CustomMessageHistory(limit=limit, initial=[m for m in data if isinstance(m, str)])
        logger.info("Loaded custom messages: %d from %s", len(history), path)
        return history
    except Exception:
        logger.exception("Failed to load custom messages from %s", path)
        return CustomMessageHistory(limit=limit)


def save_custom_messages(state: AppState) -> None:
    raw_path = getattr(state.settings, "custom_messages_path", None)
    if not raw_path:
        return
    path = Path(raw_path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(json.dumps(state.messages.items(), ensure_ascii=False, indent=2), "utf-8")
        os.replace(tmp, path)
        with contextlib.suppress(Exception):
            # Messages may name clients and gems, keep the file private on disk.
            os.chmod(path, 0o600)
        logger.info("Saved custom messages: %d to %s", len(state.messages), path)
    except Exception:
        logger.exception("Failed to save custom messages to %s", path)

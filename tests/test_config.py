# tests/test_config.py

from __future__ import annotations

from pathlib import Path

import pytest

from gemdesk.config import Settings


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "GEMDESK_DATA_DIR",
        "GEMDESK_DB_PATH",
        "GEMDESK_SWEEP_INTERVAL_SECONDS",
        "GEMDESK_DELAY_COOLDOWN_SECONDS",
        "GEMDESK_CUSTOM_MESSAGE_LIMIT",
        "GEMDESK_GEM_ID",
        "GEMDESK_TIMEZONE",
    ):
        monkeypatch.delenv(name, raising=False)

    s = Settings.from_env()
    assert s.sweep_interval_seconds == 60.0
    assert s.delay_cooldown_seconds == 5.0
    assert s.custom_message_limit == 10
    assert s.db_path == Path(".local/gemdesk") / "gemdesk.sqlite3"
    assert s.gem_id is None
    assert s.timezone is None


def test_env_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("GEMDESK_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("GEMDESK_SWEEP_INTERVAL_SECONDS", "2.5")
    monkeypatch.setenv("GEMDESK_CUSTOM_MESSAGE_LIMIT", "oops")
    monkeypatch.setenv("GEMDESK_GEM_ID", "   ")
    monkeypatch.setenv("GEMDESK_CONSOLE_ENABLED", "no")

    s = Settings.from_env()
    assert s.data_dir == tmp_path
    assert s.db_path == tmp_path / "gemdesk.sqlite3"
    assert s.custom_messages_path == tmp_path / "custom_messages.json"
    assert s.sweep_interval_seconds == 2.5
    assert s.custom_message_limit == 10
    assert s.gem_id is None
    assert s.console_enabled is False

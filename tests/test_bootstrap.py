# tests/test_bootstrap.py

from __future__ import annotations

import json
import time
from types import SimpleNamespace

from gemdesk.cli.bootstrap import create_initial_state, load_custom_messages, save_custom_messages
from gemdesk.cli.commands import registry
from gemdesk.connectors.engine_runner import start_engine_in_background
from gemdesk.storage.sqlite_store import SQLiteRecordStore
from gemdesk.tasks.task_models import TaskDraft, TaskStatus


def test_create_initial_state_wires_sqlite(settings: SimpleNamespace) -> None:
    state = create_initial_state(settings=settings)

    assert isinstance(state.store, SQLiteRecordStore)
    assert settings.db_path.exists()
    assert state.messages.limit == settings.custom_message_limit
    assert state.tz is None
    assert state.runner is None


def test_unknown_timezone_falls_back_to_local(settings: SimpleNamespace) -> None:
    settings.timezone = "Mars/Olympus_Mons"
    assert create_initial_state(settings=settings).tz is None


def test_custom_messages_round_trip_through_json(settings: SimpleNamespace) -> None:
    state = create_initial_state(settings=settings)
    for text in ("first", "second", "third", "fourth"):
        state.messages.remember(text)

    save_custom_messages(state)
    assert json.loads(settings.custom_messages_path.read_text("utf-8")) == ["fourth", "third", "second"]

    fresh = create_initial_state(settings=settings)
    assert load_custom_messages(fresh).items() == ["fourth", "third", "second"]


def test_corrupt_custom_messages_file_is_ignored(settings: SimpleNamespace) -> None:
    settings.custom_messages_path.write_text("{not json", "utf-8")
    state = create_initial_state(settings=settings)
    assert load_custom_messages(state).items() == []


def _wait_for(predicate, timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def test_background_runner_hosts_engine_and_sweep(settings: SimpleNamespace) -> None:
    state = create_initial_state(settings=settings)
    runner = start_engine_in_background(state)
    assert runner is not None
    state.runner = runner
    try:
        assert _wait_for(lambda: state.engine.scanner.running)

        overdue_id = runner.call(
            state.engine.create_task(TaskDraft(gem_id="g1", title="Late cut", deadline=time.time() - 60))
        )
        assert _wait_for(lambda: state.engine.get_task(overdue_id).status == TaskStatus.DELAYED)

        assert "delayed (auto)" in (registry.handle(state, f"/task show {overdue_id[:8]}") or "")
        # Commands that write go through the runner loop when one is attached.
        assert "0 task(s) marked delayed" in (registry.handle(state, "/sweep") or "")
    finally:
        runner.stop()
        runner.join(timeout=5.0)

    assert not runner.thread.is_alive()
    assert not state.engine.scanner.running


def test_cli_gems_are_created_without_logins(settings: SimpleNamespace) -> None:
    state = create_initial_state(settings=settings)
    state.gems.attach()
    try:
        reply = registry.handle(state, "/gem add Ravi Kumar|555-0101|ravi@example.com") or ""
        gem_id = reply.rsplit(" ", 1)[-1]
        gem = state.gems.get_gem(gem_id)
        assert gem.user_id is None
        assert "secret" not in state.store.get("gems", gem_id)
    finally:
        state.gems.detach()
        state.store.close()

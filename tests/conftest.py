# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from gemdesk.clients.client_service import ClientService
from gemdesk.core.state import AppState
from gemdesk.gems.gem_service import GemService
from gemdesk.notify.messages import CustomMessageHistory
from gemdesk.tasks.task_service import TaskEngine

from .fakes import FakeClock, RecordingStore


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the CLI.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="gemdesk-test",
        data_dir=tmp_path,
        db_path=tmp_path / "gemdesk.sqlite3",
        custom_messages_path=tmp_path / "custom_messages.json",
        sweep_interval_seconds=0.01,
        delay_cooldown_seconds=5.0,
        custom_message_limit=3,
        timezone=None,
        gem_id=None,
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture()
def engine(store: RecordingStore, clock: FakeClock) -> TaskEngine:
    eng = TaskEngine(store, delay_cooldown_seconds=5.0, clock=clock)
    eng.attach()
    return eng


@pytest.fixture()
def client_service(store: RecordingStore, clock: FakeClock, engine: TaskEngine) -> ClientService:
    svc = ClientService(store, task_snapshot=engine.all_tasks, clock=clock)
    svc.attach()
    return svc


@pytest.fixture()
def gem_service(store: RecordingStore, clock: FakeClock) -> GemService:
    svc = GemService(store, clock=clock)
    svc.attach()
    return svc


@pytest.fixture()
def state(
    settings: SimpleNamespace,
    store: RecordingStore,
    engine: TaskEngine,
    client_service: ClientService,
    gem_service: GemService,
) -> AppState:
    """
    AppState wired to the in-memory store.

    No background runner: commands run their coroutines inline.
    """
    return AppState(
        settings=settings,
        store=store,
        engine=engine,
        clients=client_service,
        gems=gem_service,
        messages=CustomMessageHistory(limit=settings.custom_message_limit),
    )

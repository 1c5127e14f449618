# tests/fakes.py

from __future__ import annotations

import asyncio
import copy

from gemdesk.core.ports import Record
from gemdesk.storage.memory_store import MemoryRecordStore
from gemdesk.tasks.task_models import Task, TaskPriority, TaskStatus


class FakeClock:
    """Manually advanced clock; pass the instance wherever a `clock` callable is expected."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = float(now)

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingStore(MemoryRecordStore):
    """
    MemoryRecordStore with knobs for failure-path tests.

    - updates: every update call (collection, id, patch), including failed ones
    - fail_ids: record ids whose update raises RuntimeError
    - echo=False: apply updates without notifying subscribers (stale snapshot)
    - gate: when set, updates block until the event is set (slow backend)
    """

    def __init__(self) -> None:
        super().__init__()
        self.updates: list[tuple[str, str, Record]] = []
        self.fail_ids: set[str] = set()
        self.echo = True
        self.gate: asyncio.Event | None = None

    async def update(self, collection: str, record_id: str, patch: Record) -> None:
        self.updates.append((collection, record_id, dict(patch)))
        if self.gate is not None:
            await self.gate.wait()
        if record_id in self.fail_ids:
            raise RuntimeError(f"backend unavailable for {record_id}")
        if self.echo:
            await super().update(collection, record_id, patch)
            return
        current = self._data.get(collection, {}).get(record_id)
        if current is not None:
            current.update(copy.deepcopy(patch))

    def updates_for(self, record_id: str) -> list[Record]:
        return [patch for _, rid, patch in self.updates if rid == record_id]


class FakeAccounts:
    """AccountProvisioner that hands out predictable ids and remembers secrets it was given."""

    def __init__(self) -> None:
        self.created: list[tuple[str, str]] = []

    async def create_account(self, *, email: str, secret: str) -> str:
        self.created.append((email, secret))
        return f"uid-{len(self.created)}"


def make_task(task_id: str = "t1", **overrides) -> Task:
    """Task with sane defaults; override any field by keyword."""
    fields = dict(
        id=task_id,
        gem_id="g1",
        title="Edit reel",
        description="",
        deadline=1_700_000_000.0 + 3600,
        priority=TaskPriority.MEDIUM,
        status=TaskStatus.PENDING,
        created_at=1_700_000_000.0 - 3600,
        updated_at=1_700_000_000.0 - 3600,
    )
    fields.update(overrides)
    return Task(**fields)

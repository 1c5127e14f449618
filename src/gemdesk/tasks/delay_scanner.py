# src/gemdesk/tasks/delay_scanner.py

from __future__ import annotations

"""
Auto-delay scanner.

A small polling loop that:
- walks the currently loaded task snapshot,
- picks tasks that are past their deadline and still open,
- writes the delayed transition (auto_delayed=True) for each of them.

The snapshot comes from the live feed and lags behind our own writes. To
avoid writing the same transition twice, every task we touch gets a lease:
- lease value None   -> write in flight
- lease value float  -> write done, skip the task until this timestamp
A failed write drops the lease right away so the next sweep retries.
"""

import asyncio
import contextlib
import logging
import time
from collections.abc import Callable, Iterable

from ..core.errors import NotFoundError
from ..core.ports import RecordStore
from .task_lifecycle import delay_patch, is_overdue
from .task_models import TASKS, Task

logger = logging.getLogger(__name__)


class DelayScanner:
    def __init__(
            self,
            store: RecordStore,
            snapshot: Callable[[], Iterable[Task]],
            *,
            interval_seconds: float = 60.0,
            cooldown_seconds: float = 5.0,
            clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._snapshot = snapshot
        self._interval = max(0.01, float(interval_seconds))
        self._cooldown = max(0.0, float(cooldown_seconds))
        self._clock = clock
        self._leases: dict[str, float | None] = {}
        self._runner: asyncio.Task[None] | None = None

    @property
    def interval_seconds(self) -> float:
        return self._interval

    @property
    def cooldown_seconds(self) -> float:
        return self._cooldown

    @property
    def running(self) -> bool:
        return self._runner is not None and not self._runner.done()

    def in_flight(self) -> set[str]:
        """Task ids currently holding a lease (in flight or cooling down)."""
        self._prune(self._clock())
        return set(self._leases)

    def _prune(self, now_ts: float) -> None:
        expired = [
            task_id
            for task_id, expiry in self._leases.items()
            if expiry is not None and expiry <= now_ts
        ]
        for task_id in expired:
            del self._leases[task_id]

    async def sweep(self) -> int:
        """
        Run one pass over the snapshot.

        Returns the number of tasks transitioned. Store failures are logged and
        skipped; they never abort the pass.
        """
        now_ts = self._clock()
        self._prune(now_ts)
        written = 0

        for task in list(self._snapshot()):
            if not is_overdue(task, now_ts):
                continue
            if task.id in self._leases:
                continue

            # Take the lease before awaiting so an overlapping sweep skips it.
            self._leases[task.id] = None
            try:
                await self._store.update(TASKS, task.id, delay_patch(now_ts, auto=True))
            except NotFoundError:
                self._leases.pop(task.id, None)
                logger.info("Task %s vanished before auto-delay; skipping", task.id)
                continue
            except Exception:
                self._leases.pop(task.id, None)
                logger.exception("auto-delay write failed task_id=%s", task.id)
                continue

            self._leases[task.id] = self._clock() + self._cooldown
            written += 1
            logger.info("Task %s -> delayed (auto, deadline=%.0f)", task.id, task.deadline)

        if written:
            logger.debug("Delay sweep done: %d task(s) transitioned", written)
        return written

    async def run(self) -> None:
        """
        Sweep every interval_seconds until cancelled.

        A missed or failed sweep heals on the next one: the overdue condition
        persists until someone resolves it.
        """
        while True:
            try:
                await self.sweep()
            except Exception:
                logger.exception("delay sweep crashed")
            await asyncio.sleep(self._interval)

    def start(self) -> asyncio.Task[None]:
        """Schedule run() on the current event loop (idempotent)."""
        if self.running:
            assert self._runner is not None
            return self._runner
        self._runner = asyncio.create_task(self.run(), name="gemdesk-delay-scanner")
        logger.info(
            "Delay scanner started (interval=%.1fs cooldown=%.1fs)",
            self._interval,
            self._cooldown,
        )
        return self._runner

    async def stop(self) -> None:
        runner = self._runner
        self._runner = None
        if runner is None:
            return
        runner.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await runner
        self._leases.clear()
        logger.info("Delay scanner stopped.")

# src/gemdesk/tasks/task_service.py

from __future__ import annotations

"""
Task engine.

Holds a read-through view of the task and client collections (fed by store
subscriptions), validates operator actions against it, and writes the
results back through the store. Derived views (buckets, stats, progress)
are recomputed from the latest snapshot on every call.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import replace
from datetime import tzinfo
from typing import Any

from ..clients.client_models import CLIENTS, Client
from ..core.errors import NotFoundError, ValidationError, parse_enum, store_write
from ..core.ports import Record, RecordStore, Subscription
from .commitments import remaining_capacity, validate_completed_quantity, validate_quantity
from .delay_scanner import DelayScanner
from .progress import CommitmentProgress, client_progress
from .task_categories import TaskBuckets, TaskStats, categorize_task, group_tasks, task_stats
from .task_lifecycle import build_status_patch
from .task_models import (
    TASKS,
    CommitmentType,
    DriveMode,
    Task,
    TaskCategory,
    TaskDraft,
    TaskPriority,
    TaskStatus,
    blank_to_none,
)

logger = logging.getLogger(__name__)

# Fields an admin edit may touch; gem_id is immutable after creation.
EDITABLE_FIELDS = frozenset(
    {
        "title",
        "description",
        "deadline",
        "priority",
        "drive_mode",
        "asset_url",
        "upload_url",
        "client_id",
        "commitment_type",
        "quantity",
    }
)


class TaskEngine:
    def __init__(
            self,
            store: RecordStore,
            *,
            gem_id: str | None = None,
            sweep_interval_seconds: float = 60.0,
            delay_cooldown_seconds: float = 5.0,
            tz: tzinfo | None = None,
            clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._gem_id = gem_id
        self._tz = tz
        self._clock = clock

        self._tasks: dict[str, Task] = {}
        # Unscoped view; commitment ceilings span every gem.
        self._all_tasks: dict[str, Task] = {}
        self._clients: dict[str, Client] = {}
        self._subs: list[Subscription] = []

        self.scanner = DelayScanner(
            store,
            self.tasks,
            interval_seconds=sweep_interval_seconds,
            cooldown_seconds=delay_cooldown_seconds,
            clock=clock,
        )

    # ---- live feed ----

    @staticmethod
    def _parse_tasks(records: list[Record]) -> dict[str, Task]:
        tasks: dict[str, Task] = {}
        for rec in records:
            try:
                task = Task.from_record(rec)
            except (KeyError, TypeError, ValueError):
                logger.warning("Skipping malformed task record id=%s", rec.get("id"))
                continue
            tasks[task.id] = task
        return tasks

    def _on_tasks(self, records: list[Record]) -> None:
        self._tasks = self._parse_tasks(records)
        if not self._gem_id:
            self._all_tasks = self._tasks

    def _on_all_tasks(self, records: list[Record]) -> None:
        self._all_tasks = self._parse_tasks(records)

    def _on_clients(self, records: list[Record]) -> None:
        clients: dict[str, Client] = {}
        for rec in records:
            try:
                client = Client.from_record(rec)
            except (KeyError, TypeError, ValueError):
                logger.warning("Skipping malformed client record id=%s", rec.get("id"))
                continue
            clients[client.id] = client
        self._clients = clients

    def attach(self) -> None:
        """Subscribe to the live feed (idempotent)."""
        if self._subs:
            return
        where = {"gem_id": self._gem_id} if self._gem_id else None
        self._subs.append(self._store.subscribe(TASKS, self._on_tasks, where=where))
        if self._gem_id:
            self._subs.append(self._store.subscribe(TASKS, self._on_all_tasks))
        self._subs.append(self._store.subscribe(CLIENTS, self._on_clients))
        logger.info("TaskEngine attached (gem_id=%s tasks=%d)", self._gem_id, len(self._tasks))

    def detach(self) -> None:
        for sub in self._subs:
            sub.cancel()
        self._subs.clear()

    async def start(self) -> None:
        """Attach to the feed and start the auto-delay sweep on the running loop."""
        self.attach()
        self.scanner.start()

    async def stop(self) -> None:
        await self.scanner.stop()
        self.detach()
        logger.info("TaskEngine stopped.")

    # ---- read side ----

    def now(self) -> float:
        return self._clock()

    def tasks(self) -> list[Task]:
        return list(self._tasks.values())

    def all_tasks(self) -> list[Task]:
        """Every task regardless of the gem scope; used for ceilings and progress."""
        return list(self._all_tasks.values())

    def clients(self) -> list[Client]:
        return list(self._clients.values())

    def get_task(self, task_id: str) -> Task:
        task = self._tasks.get(task_id)
        if task is None:
            raise NotFoundError(TASKS, task_id)
        return task

    def get_client(self, client_id: str) -> Client:
        client = self._clients.get(client_id)
        if client is None:
            raise NotFoundError(CLIENTS, client_id)
        return client

    def tasks_for_gem(self, gem_id: str) -> list[Task]:
        return [t for t in self._tasks.values() if t.gem_id == gem_id]

    def categorize(self, task: Task) -> TaskCategory:
        return categorize_task(task, self._clock(), self._tz)

    def buckets(self, gem_id: str | None = None) -> TaskBuckets:
        tasks = self.tasks_for_gem(gem_id) if gem_id else self.tasks()
        return group_tasks(tasks, self._clock(), self._tz)

    def stats(self, gem_id: str | None = None) -> TaskStats:
        return task_stats(self.tasks_for_gem(gem_id) if gem_id else self.tasks())

    def remaining_capacity(
            self,
            client_id: str,
            commitment_type: CommitmentType,
            *,
            exclude_task_id: str | None = None,
    ) -> int | None:
        client = self.get_client(client_id)
        return remaining_capacity(
            client, self._all_tasks.values(), commitment_type, exclude_task_id=exclude_task_id
        )

    def progress(self, client_id: str) -> dict[CommitmentType, CommitmentProgress]:
        return client_progress(self.get_client(client_id), self._all_tasks.values())

    # ---- write helpers ----

    async def _write(self, action: str, task_id: str, patch: Record) -> None:
        with store_write(f"{action} task_id={task_id}"):
            await self._store.update(TASKS, task_id, patch)

    def _check_commitment(
            self,
            client_id: str | None,
            commitment_type: CommitmentType | None,
            quantity: int | None,
            *,
            exclude_task_id: str | None = None,
    ) -> int | None:
        """Validate the client/commitment/quantity triple; returns the quantity to store."""
        if commitment_type is None:
            if quantity is not None:
                raise ValidationError("quantity requires a commitment type")
            return None
        if client_id is None:
            raise ValidationError("a commitment type requires a client")

        client = self.get_client(client_id)
        remaining = remaining_capacity(
            client, self._all_tasks.values(), commitment_type, exclude_task_id=exclude_task_id
        )
        return validate_quantity(quantity, remaining)

    @staticmethod
    def _check_drive(mode: DriveMode, asset_url: str | None, upload_url: str | None) -> None:
        if mode == DriveMode.FIXED and (asset_url or upload_url):
            raise ValidationError("asset/upload URLs are only allowed in dynamic drive mode")

    # ---- operations ----

    async def create_task(self, draft: TaskDraft) -> str:
        """Create a task; new tasks always start pending."""
        gem_id = (draft.gem_id or "").strip()
        title = (draft.title or "").strip()
        if not gem_id:
            raise ValidationError("gem_id is required")
        if not title:
            raise ValidationError("title is required")

        client_id = blank_to_none(draft.client_id)
        asset_url = blank_to_none(draft.asset_url)
        upload_url = blank_to_none(draft.upload_url)
        priority = parse_enum(TaskPriority, draft.priority, "priority")
        drive_mode = parse_enum(DriveMode, draft.drive_mode, "drive mode")
        commitment_type = (
            parse_enum(CommitmentType, draft.commitment_type, "commitment type") if draft.commitment_type else None
        )
        self._check_drive(drive_mode, asset_url, upload_url)
        if client_id is not None:
            self.get_client(client_id)
        quantity = self._check_commitment(client_id, commitment_type, draft.quantity)

        now = self._clock()
        task = Task(
            id="",
            gem_id=gem_id,
            title=title,
            description=(draft.description or "").strip(),
            deadline=float(draft.deadline),
            priority=priority,
            status=TaskStatus.PENDING,
            created_at=now,
            updated_at=now,
            drive_mode=drive_mode,
            asset_url=asset_url,
            upload_url=upload_url,
            client_id=client_id,
            commitment_type=commitment_type,
            quantity=quantity,
            completed_quantity=0 if quantity is not None else None,
            admin_verified=False if client_id is not None else None,
        )

        with store_write(f"create_task gem_id={gem_id}"):
            task_id = await self._store.create(TASKS, task.to_record())

        logger.info("Task created id=%s gem_id=%s title=%r", task_id, gem_id, title)
        return task_id

    async def update_task(self, task_id: str, **changes: Any) -> None:
        """
        Admin edit of task details.

        Quantity is re-validated against remaining capacity with this task
        excluded from the sum.
        """
        task = self.get_task(task_id)
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"fields not editable: {', '.join(sorted(unknown))}")

        merged = replace(task)
        if "title" in changes:
            merged.title = str(changes["title"] or "").strip()
            if not merged.title:
                raise ValidationError("title is required")
        if "description" in changes:
            merged.description = str(changes["description"] or "").strip()
        if "deadline" in changes:
            merged.deadline = float(changes["deadline"])
        if "priority" in changes:
            merged.priority = parse_enum(TaskPriority, changes["priority"], "priority")
        if "drive_mode" in changes:
            merged.drive_mode = parse_enum(DriveMode, changes["drive_mode"], "drive mode")
        if "asset_url" in changes:
            merged.asset_url = blank_to_none(changes["asset_url"])
        if "upload_url" in changes:
            merged.upload_url = blank_to_none(changes["upload_url"])
        if "client_id" in changes:
            merged.client_id = blank_to_none(changes["client_id"])
        if "commitment_type" in changes:
            raw = changes["commitment_type"]
            merged.commitment_type = parse_enum(CommitmentType, raw, "commitment type") if raw else None
            if merged.commitment_type is None and "quantity" not in changes:
                merged.quantity = None
        if "quantity" in changes:
            merged.quantity = changes["quantity"]

        if merged.drive_mode == DriveMode.FIXED and not ({"asset_url", "upload_url"} & set(changes)):
            merged.asset_url = merged.upload_url = None
        self._check_drive(merged.drive_mode, merged.asset_url, merged.upload_url)

        if merged.status == TaskStatus.DELAYED and merged.priority != TaskPriority.URGENT:
            raise ValidationError("a delayed task must stay urgent")

        if merged.client_id is not None:
            self.get_client(merged.client_id)
        merged.quantity = self._check_commitment(
            merged.client_id, merged.commitment_type, merged.quantity, exclude_task_id=task.id
        )
        if merged.quantity is None:
            merged.completed_quantity = None
        elif merged.completed_quantity is not None and merged.completed_quantity > merged.quantity:
            raise ValidationError(
                f"quantity {merged.quantity} is below completed quantity {merged.completed_quantity}"
            )
        if merged.client_id is None:
            merged.admin_verified = None
        elif merged.admin_verified is None:
            merged.admin_verified = False

        merged.updated_at = self._clock()
        patch = merged.to_record()
        # Absent optionals must be cleared explicitly in a merge-style update.
        for key in ("asset_url", "upload_url", "client_id", "admin_verified",
                    "commitment_type", "quantity", "completed_quantity"):
            patch.setdefault(key, None)

        await self._write("update_task", task_id, patch)
        logger.info("Task updated id=%s fields=%s", task_id, ",".join(sorted(changes)))

    async def set_status(self, task_id: str, status: TaskStatus | str) -> None:
        task = self.get_task(task_id)
        new_status = parse_enum(TaskStatus, status, "status")
        patch = build_status_patch(task, new_status, self._clock())
        await self._write("set_status", task_id, patch)
        logger.info("Task %s -> %s", task_id, new_status.value)

    async def update_completed_quantity(self, task_id: str, value: int) -> None:
        task = self.get_task(task_id)
        completed = validate_completed_quantity(task, value)
        await self._write(
            "update_completed_quantity",
            task_id,
            {"completed_quantity": completed, "updated_at": self._clock()},
        )
        logger.info("Task %s completed_quantity=%s/%s", task_id, completed, task.quantity)

    async def set_verified(self, task_id: str, verified: bool = True) -> None:
        """Admin verification gate; only completed client work can be verified."""
        task = self.get_task(task_id)
        if task.client_id is None:
            raise ValidationError(f"Task {task_id} is not linked to a client")
        if verified and task.status != TaskStatus.COMPLETED:
            raise ValidationError(f"Task {task_id} must be completed before verification")
        await self._write(
            "set_verified",
            task_id,
            {"admin_verified": bool(verified), "updated_at": self._clock()},
        )
        logger.info("Task %s admin_verified=%s", task_id, bool(verified))

    async def delete_task(self, task_id: str) -> None:
        self.get_task(task_id)
        with store_write(f"delete_task task_id={task_id}"):
            await self._store.delete(TASKS, task_id)
        logger.info("Task deleted id=%s", task_id)

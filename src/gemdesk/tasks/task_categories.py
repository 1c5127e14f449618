# src/gemdesk/tasks/task_categories.py

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime, tzinfo

from .task_models import Task, TaskCategory, TaskStatus


def _local_day(ts: float, tz: tzinfo | None) -> date:
    # tz=None -> system local time
    return datetime.fromtimestamp(ts, tz).date()


def categorize(
        status: TaskStatus,
        deadline: float,
        now_ts: float,
        tz: tzinfo | None = None,
) -> TaskCategory:
    """
    Bucket a task by calendar day of its deadline.

    Overdue work that is not completed stays in PRESENT so it does not
    disappear into history.
    """
    deadline_day = _local_day(deadline, tz)
    today = _local_day(now_ts, tz)

    if deadline_day < today:
        return TaskCategory.PAST if status == TaskStatus.COMPLETED else TaskCategory.PRESENT
    if deadline_day == today:
        return TaskCategory.PRESENT
    return TaskCategory.FUTURE


def categorize_task(task: Task, now_ts: float, tz: tzinfo | None = None) -> TaskCategory:
    return categorize(task.status, task.deadline, now_ts, tz)


@dataclass(slots=True)
class TaskBuckets:
    present: list[Task] = field(default_factory=list)
    future: list[Task] = field(default_factory=list)
    past: list[Task] = field(default_factory=list)

    def get(self, category: TaskCategory) -> list[Task]:
        return getattr(self, category.value)


def group_tasks(tasks: Iterable[Task], now_ts: float, tz: tzinfo | None = None) -> TaskBuckets:
    """Split tasks into present/future/past, each ordered by deadline."""
    buckets = TaskBuckets()
    for task in sorted(tasks, key=lambda t: (t.deadline, t.created_at)):
        buckets.get(categorize_task(task, now_ts, tz)).append(task)
    return buckets


@dataclass(slots=True, frozen=True)
class TaskStats:
    total: int
    pending: int
    ongoing: int
    completed: int
    delayed: int


def task_stats(tasks: Iterable[Task]) -> TaskStats:
    counts = {s: 0 for s in TaskStatus}
    total = 0
    for task in tasks:
        counts[task.status] += 1
        total += 1
    return TaskStats(
        total=total,
        pending=counts[TaskStatus.PENDING],
        ongoing=counts[TaskStatus.ONGOING],
        completed=counts[TaskStatus.COMPLETED],
        delayed=counts[TaskStatus.DELAYED],
    )

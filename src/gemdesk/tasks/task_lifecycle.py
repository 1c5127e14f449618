# src/gemdesk/tasks/task_lifecycle.py

from __future__ import annotations

"""
Task status state machine.

    pending -> ongoing -> completed
       |          |          ^
       +--> delayed ---------+

- completed is terminal (no reopen).
- Explicit moves back (ongoing -> pending, delayed -> ongoing) are allowed
  because they are always an operator's decision, never automatic.

Transitions are expressed as store patches so that status and its side
effects (priority, delayed_at, auto_delayed) land in a single write.
Leaving delayed clears auto_delayed; delayed_at is kept as history.
"""

from typing import Any

from ..core.errors import ValidationError
from .task_models import Task, TaskPriority, TaskStatus

ALLOWED_TRANSITIONS: dict[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.PENDING: frozenset({TaskStatus.ONGOING, TaskStatus.COMPLETED, TaskStatus.DELAYED}),
    TaskStatus.ONGOING: frozenset({TaskStatus.PENDING, TaskStatus.COMPLETED, TaskStatus.DELAYED}),
    TaskStatus.DELAYED: frozenset({TaskStatus.ONGOING, TaskStatus.COMPLETED}),
    TaskStatus.COMPLETED: frozenset(),
}


def can_transition(current: TaskStatus, new_status: TaskStatus) -> bool:
    if current == new_status:
        return True
    return new_status in ALLOWED_TRANSITIONS[current]


def ensure_transition(task: Task, new_status: TaskStatus) -> None:
    if not can_transition(task.status, new_status):
        raise ValidationError(
            f"Task {task.id} cannot move from {task.status.value} to {new_status.value}"
        )


def delay_patch(now_ts: float, *, auto: bool) -> dict[str, Any]:
    return {
        "status": TaskStatus.DELAYED.value,
        "priority": TaskPriority.URGENT.value,
        "delayed_at": float(now_ts),
        "auto_delayed": bool(auto),
        "updated_at": float(now_ts),
    }


def build_status_patch(task: Task, new_status: TaskStatus, now_ts: float) -> dict[str, Any]:
    """
    Validate a manual transition and return the patch that applies it.

    Quantity and verification are deliberately untouched; those are separate
    operator actions.
    """
    ensure_transition(task, new_status)

    if new_status == TaskStatus.DELAYED and task.status != TaskStatus.DELAYED:
        return delay_patch(now_ts, auto=False)

    patch: dict[str, Any] = {"status": new_status.value, "updated_at": float(now_ts)}
    if task.status == TaskStatus.DELAYED and new_status != TaskStatus.DELAYED:
        patch["auto_delayed"] = False
    return patch


def is_overdue(task: Task, now_ts: float) -> bool:
    """True when the auto-delay sweep should pick this task up."""
    return task.is_open and now_ts > task.deadline

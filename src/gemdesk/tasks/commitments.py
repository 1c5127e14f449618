# src/gemdesk/tasks/commitments.py

from __future__ import annotations

"""
Commitment quantity bookkeeping.

A client may promise a fixed number of deliverables per commitment type
(e.g. 5 real videos). Tasks linked to the client carve quantities out of
that ceiling; remaining capacity is always recomputed from the task set.
"""

from collections.abc import Iterable

from ..clients.client_models import Client
from ..core.errors import ValidationError
from .task_models import CommitmentType, Task


def remaining_capacity(
        client: Client,
        tasks: Iterable[Task],
        commitment_type: CommitmentType,
        *,
        exclude_task_id: str | None = None,
) -> int | None:
    """
    ceiling - sum(quantity of other tasks of this client and type).

    Returns None for unlimited capacity (OTHER). Never negative: a ceiling
    lowered below what is already assigned yields 0.
    """
    ceiling = client.ceiling(commitment_type)
    if ceiling is None:
        return None

    used = 0
    for task in tasks:
        if task.id == exclude_task_id:
            continue
        if task.client_id != client.id or task.commitment_type != commitment_type:
            continue
        used += task.quantity or 0

    return max(0, ceiling - used)


def clamp_quantity(requested: int, remaining: int | None) -> int:
    """Form-side convenience: pull a typed value into [1, remaining]."""
    value = max(1, int(requested))
    if remaining is not None:
        value = min(value, max(1, remaining))
    return value


def validate_quantity(requested: int | None, remaining: int | None) -> int:
    """Authoritative write-time check; over-commitment is rejected, not clamped."""
    if requested is None:
        raise ValidationError("quantity is required when a commitment type is set")
    qty = int(requested)
    if qty < 1:
        raise ValidationError(f"quantity must be at least 1 (got {qty})")
    if remaining is not None and qty > remaining:
        raise ValidationError(
            f"quantity {qty} exceeds remaining capacity {remaining}"
        )
    return qty


def validate_completed_quantity(task: Task, value: int) -> int:
    if task.quantity is None:
        raise ValidationError(f"Task {task.id} has no committed quantity")
    completed = int(value)
    if completed < 0 or completed > task.quantity:
        raise ValidationError(
            f"completed quantity must be within [0, {task.quantity}] (got {completed})"
        )
    return completed

# src/gemdesk/tasks/progress.py

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from ..clients.client_models import Client
from .task_models import CommitmentType, Task, TaskStatus


@dataclass(slots=True)
class CommitmentProgress:
    commitment_type: CommitmentType
    target: int | None
    total: int = 0
    assigned: int = 0
    completed: int = 0
    verified: int = 0


def delivered_quantity(task: Task) -> int:
    """
    Units finished on a task.

    Legacy tasks without completed_quantity count their full quantity once
    they are completed.
    """
    if task.completed_quantity is not None:
        return task.completed_quantity
    if task.status == TaskStatus.COMPLETED:
        return task.quantity or 0
    return 0


def is_verified(task: Task) -> bool:
    return bool(task.admin_verified) and task.status == TaskStatus.COMPLETED


def client_progress(client: Client, tasks: Iterable[Task]) -> dict[CommitmentType, CommitmentProgress]:
    """
    Per commitment type rollup for one client.

    Types the client has a ceiling for are always present (possibly all zeros);
    other types appear only when a linked task uses them.
    """
    out: dict[CommitmentType, CommitmentProgress] = {}
    if client.social_media_commitment is not None:
        for ct in CommitmentType:
            if ct != CommitmentType.OTHER:
                out[ct] = CommitmentProgress(commitment_type=ct, target=client.ceiling(ct))

    for task in tasks:
        if task.client_id != client.id or task.commitment_type is None:
            continue
        ct = task.commitment_type
        row = out.get(ct)
        if row is None:
            row = out[ct] = CommitmentProgress(commitment_type=ct, target=client.ceiling(ct))

        done = delivered_quantity(task)
        row.total += 1
        row.assigned += task.quantity or 0
        row.completed += done
        if is_verified(task):
            row.verified += done

    return out

# src/gemdesk/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any

TASKS = "tasks"


class TaskStatus(StrEnum):
    PENDING = "pending"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    DELAYED = "delayed"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.PENDING
        try:
            return cls(raw)
        except ValueError:
            return cls.PENDING


class TaskPriority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    URGENT = "urgent"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskPriority:
        if not raw:
            return cls.MEDIUM
        try:
            return cls(raw)
        except ValueError:
            return cls.MEDIUM


class TaskCategory(StrEnum):
    PRESENT = "present"
    FUTURE = "future"
    PAST = "past"


class DriveMode(StrEnum):
    """
    Where a task's asset/upload links come from.

    FIXED   -> the gem's standing drive folder
    DYNAMIC -> task-specific asset_url / upload_url
    """

    FIXED = "fixed"
    DYNAMIC = "dynamic"


class CommitmentType(StrEnum):
    REAL_VIDEO = "realVideo"
    AI_VIDEO = "aiVideo"
    POSTER = "poster"
    DIGITAL_MARKETING = "digitalMarketing"
    OTHER = "other"


def blank_to_none(value: Any) -> Any:
    """Blank strings mean "absent"; never store them."""
    if isinstance(value, str) and not value.strip():
        return None
    return value


@dataclass(slots=True)
class Task:
    id: str
    gem_id: str
    title: str
    description: str
    deadline: float
    priority: TaskPriority
    status: TaskStatus
    created_at: float
    updated_at: float

    drive_mode: DriveMode = DriveMode.FIXED
    asset_url: str | None = None
    upload_url: str | None = None

    client_id: str | None = None
    commitment_type: CommitmentType | None = None
    quantity: int | None = None
    completed_quantity: int | None = None
    admin_verified: bool | None = None

    delayed_at: float | None = None
    auto_delayed: bool = False

    @property
    def is_open(self) -> bool:
        return self.status not in (TaskStatus.COMPLETED, TaskStatus.DELAYED)

    @classmethod
    def from_record(cls, rec: dict[str, Any]) -> Task:
        raw_type = rec.get("commitment_type")
        raw_mode = rec.get("drive_mode")
        quantity = rec.get("quantity")
        completed = rec.get("completed_quantity")
        return cls(
            id=str(rec["id"]),
            gem_id=str(rec.get("gem_id") or ""),
            title=str(rec.get("title") or ""),
            description=str(rec.get("description") or ""),
            deadline=float(rec.get("deadline") or 0.0),
            priority=TaskPriority.from_db(rec.get("priority")),
            status=TaskStatus.from_db(rec.get("status")),
            created_at=float(rec.get("created_at") or 0.0),
            updated_at=float(rec.get("updated_at") or 0.0),
            drive_mode=DriveMode(raw_mode) if raw_mode else DriveMode.FIXED,
            asset_url=blank_to_none(rec.get("asset_url")),
            upload_url=blank_to_none(rec.get("upload_url")),
            client_id=blank_to_none(rec.get("client_id")),
            commitment_type=CommitmentType(raw_type) if raw_type else None,
            quantity=int(quantity) if quantity is not None else None,
            completed_quantity=int(completed) if completed is not None else None,
            admin_verified=rec.get("admin_verified"),
            delayed_at=rec.get("delayed_at"),
            auto_delayed=bool(rec.get("auto_delayed", False)),
        )

    def to_record(self) -> dict[str, Any]:
        """Serialize for the store; absent optionals are left out entirely."""
        rec: dict[str, Any] = {
            "gem_id": self.gem_id,
            "title": self.title,
            "description": self.description,
            "deadline": self.deadline,
            "priority": self.priority.value,
            "status": self.status.value,
            "drive_mode": self.drive_mode.value,
            "auto_delayed": self.auto_delayed,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
        if self.drive_mode == DriveMode.DYNAMIC:
            if self.asset_url is not None:
                rec["asset_url"] = self.asset_url
            if self.upload_url is not None:
                rec["upload_url"] = self.upload_url
        if self.client_id is not None:
            rec["client_id"] = self.client_id
            rec["admin_verified"] = bool(self.admin_verified)
        if self.commitment_type is not None:
            rec["commitment_type"] = self.commitment_type.value
            rec["quantity"] = self.quantity
            rec["completed_quantity"] = self.completed_quantity or 0
        if self.delayed_at is not None:
            rec["delayed_at"] = self.delayed_at
        return rec


@dataclass(slots=True, frozen=True)
class TaskDraft:
    """What the admin submits when creating a task (ids/timestamps are assigned later)."""

    gem_id: str
    title: str
    deadline: float
    description: str = ""
    priority: TaskPriority = TaskPriority.MEDIUM
    drive_mode: DriveMode = DriveMode.FIXED
    asset_url: str | None = None
    upload_url: str | None = None
    client_id: str | None = None
    commitment_type: CommitmentType | None = None
    quantity: int | None = None

# src/gemdesk/gems/gem_models.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..tasks.task_models import DriveMode, Task, blank_to_none

GEMS = "gems"


@dataclass(slots=True)
class Gem:
    id: str
    name: str
    phone: str
    email: str
    created_at: float
    drive_folder_url: str | None = None
    user_id: str | None = None

    @classmethod
    def from_record(cls, rec: dict[str, Any]) -> Gem:
        return cls(
            id=str(rec["id"]),
            name=str(rec.get("name") or ""),
            phone=str(rec.get("phone") or ""),
            email=str(rec.get("email") or ""),
            created_at=float(rec.get("created_at") or 0.0),
            drive_folder_url=blank_to_none(rec.get("drive_folder_url")),
            user_id=blank_to_none(rec.get("user_id")),
        )

    def to_record(self) -> dict[str, Any]:
        rec: dict[str, Any] = {
            "name": self.name,
            "phone": self.phone,
            "email": self.email,
            "created_at": self.created_at,
        }
        if self.drive_folder_url is not None:
            rec["drive_folder_url"] = self.drive_folder_url
        if self.user_id is not None:
            rec["user_id"] = self.user_id
        return rec


@dataclass(slots=True, frozen=True)
class DriveLinks:
    asset_url: str | None
    upload_url: str | None


def resolve_drive_links(task: Task, gem: Gem | None) -> DriveLinks:
    """Fixed mode uses the gem's standing folder for both links; dynamic uses the task's own."""
    if task.drive_mode == DriveMode.DYNAMIC:
        return DriveLinks(asset_url=task.asset_url, upload_url=task.upload_url)
    folder = gem.drive_folder_url if gem is not None else None
    return DriveLinks(asset_url=folder, upload_url=folder)

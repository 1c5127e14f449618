# src/gemdesk/gems/gem_service.py

from __future__ import annotations

import logging
import re
import time
from collections.abc import Callable
from typing import Any

from ..core.errors import NotFoundError, ValidationError, store_write
from ..core.ports import AccountProvisioner, Record, RecordStore, Subscription
from ..tasks.task_models import TASKS, blank_to_none
from .gem_models import GEMS, Gem

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class GemService:
    """
    Gem roster.

    Logins are created through the AccountProvisioner port; the secret is
    handed over once and never stored on the gem record.
    """

    def __init__(
            self,
            store: RecordStore,
            *,
            accounts: AccountProvisioner | None = None,
            clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._accounts = accounts
        self._clock = clock
        self._gems: dict[str, Gem] = {}
        self._task_owners: dict[str, str] = {}
        self._subs: list[Subscription] = []

    def _on_gems(self, records: list[Record]) -> None:
        self._gems = {g.id: g for g in (Gem.from_record(r) for r in records)}

    def _on_tasks(self, records: list[Record]) -> None:
        self._task_owners = {str(r["id"]): str(r.get("gem_id") or "") for r in records}

    def attach(self) -> None:
        if self._subs:
            return
        self._subs.append(self._store.subscribe(GEMS, self._on_gems))
        self._subs.append(self._store.subscribe(TASKS, self._on_tasks))
        logger.info("GemService attached (gems=%d)", len(self._gems))

    def detach(self) -> None:
        for sub in self._subs:
            sub.cancel()
        self._subs.clear()

    # ---- read side ----

    def gems(self) -> list[Gem]:
        return sorted(self._gems.values(), key=lambda g: g.created_at, reverse=True)

    def get_gem(self, gem_id: str) -> Gem:
        gem = self._gems.get(gem_id)
        if gem is None:
            raise NotFoundError(GEMS, gem_id)
        return gem

    def find(self, gem_id: str | None) -> Gem | None:
        return self._gems.get(gem_id) if gem_id else None

    def search(self, query: str) -> list[Gem]:
        q = (query or "").strip().lower()
        if not q:
            return self.gems()
        return [g for g in self.gems() if q in g.name.lower() or q in g.email.lower() or q in g.phone]

    # ---- validation ----

    @staticmethod
    def _validate(name: str, phone: str, email: str) -> None:
        if not name:
            raise ValidationError("name is required")
        if not phone:
            raise ValidationError("phone is required")
        if not EMAIL_RE.match(email):
            raise ValidationError(f"invalid email: {email!r}")

    # ---- operations ----

    async def create_gem(
            self,
            *,
            name: str,
            phone: str,
            email: str,
            secret: str | None = None,
            drive_folder_url: str | None = None,
    ) -> str:
        name = (name or "").strip()
        phone = (phone or "").strip()
        email = (email or "").strip().lower()
        self._validate(name, phone, email)
        if any(g.email == email for g in self._gems.values()):
            raise ValidationError(f"a gem with email {email} already exists")

        user_id: str | None = None
        if self._accounts is not None:
            if not secret or len(secret) < 6:
                raise ValidationError("login secret must be at least 6 characters")
            with store_write(f"create_account email={email}"):
                user_id = await self._accounts.create_account(email=email, secret=secret)

        gem = Gem(
            id=user_id or "",
            name=name,
            phone=phone,
            email=email,
            created_at=self._clock(),
            drive_folder_url=blank_to_none(drive_folder_url),
            user_id=user_id,
        )
        record = gem.to_record()
        if user_id:
            # The auth account id doubles as the gem id.
            record["id"] = user_id

        with store_write(f"create_gem email={email}"):
            gem_id = await self._store.create(GEMS, record)
        logger.info("Gem created id=%s name=%r", gem_id, name)
        return gem_id

    async def update_gem(self, gem_id: str, **changes: Any) -> None:
        allowed = {"name", "phone", "email", "drive_folder_url"}
        unknown = set(changes) - allowed
        if unknown:
            raise ValidationError(f"fields not editable: {', '.join(sorted(unknown))}")

        gem = self.get_gem(gem_id)
        name = str(changes.get("name", gem.name) or "").strip()
        phone = str(changes.get("phone", gem.phone) or "").strip()
        email = str(changes.get("email", gem.email) or "").strip().lower()
        self._validate(name, phone, email)

        patch: dict[str, Any] = {"name": name, "phone": phone, "email": email}
        if "drive_folder_url" in changes:
            patch["drive_folder_url"] = blank_to_none(changes["drive_folder_url"])

        with store_write(f"update_gem id={gem_id}"):
            await self._store.update(GEMS, gem_id, patch)
        logger.info("Gem updated id=%s fields=%s", gem_id, ",".join(sorted(changes)))

    async def delete_gem(self, gem_id: str, *, cascade_tasks: bool = True) -> int:
        """
        Remove a gem; by default its tasks go with it.

        Returns the number of tasks deleted.
        """
        self.get_gem(gem_id)
        removed = 0
        if cascade_tasks:
            owned = [tid for tid, owner in self._task_owners.items() if owner == gem_id]
            for task_id in owned:
                with store_write(f"delete_task task_id={task_id}"):
                    try:
                        await self._store.delete(TASKS, task_id)
                    except NotFoundError:
                        continue
                removed += 1

        with store_write(f"delete_gem id={gem_id}"):
            await self._store.delete(GEMS, gem_id)
        logger.info("Gem deleted id=%s tasks_removed=%d", gem_id, removed)
        return removed

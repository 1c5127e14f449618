# src/gemdesk/clients/client_service.py

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from typing import Any

from ..core.errors import NotFoundError, ValidationError, parse_enum, store_write
from ..core.ports import Record, RecordStore, Subscription
from ..tasks.task_models import CommitmentType, Task, blank_to_none
from .client_models import (
    CLIENTS,
    TRANSACTION_CATEGORIES,
    TRANSACTIONS,
    Client,
    CompanySplit,
    DigitalMarketingCost,
    ProjectType,
    SocialMediaCommitment,
    Transaction,
    TransactionType,
    WorkSplit,
)
from .finance import ClientFinancials, FinancialSummary, client_financials, financial_summary

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ClientDraft:
    business_name: str
    phone: str
    project_type: ProjectType
    total_project_cost: float
    custom_project_type: str | None = None
    social_media_commitment: SocialMediaCommitment | None = None
    work_split: WorkSplit = WorkSplit()
    travelling_charges: float = 0.0


def _check_amount(amount: Any, what: str, *, allow_zero: bool = False) -> float:
    try:
        value = float(amount)
    except (TypeError, ValueError):
        raise ValidationError(f"{what} must be a number") from None
    if value < 0 or (value == 0 and not allow_zero):
        bound = ">= 0" if allow_zero else "> 0"
        raise ValidationError(f"{what} must be {bound} (got {value})")
    return value


class ClientService:
    """
    Clients, company-wide transactions and the financial ledger.

    task_snapshot (optional) lets the service refuse commitment ceilings
    lower than what linked tasks already carve out.
    """

    def __init__(
            self,
            store: RecordStore,
            *,
            task_snapshot: Callable[[], Iterable[Task]] | None = None,
            clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._task_snapshot = task_snapshot
        self._clock = clock
        self._clients: dict[str, Client] = {}
        self._transactions: dict[str, Transaction] = {}
        self._categories: list[str] = []
        self._subs: list[Subscription] = []

    # ---- live feed ----

    def _on_clients(self, records: list[Record]) -> None:
        self._clients = {c.id: c for c in (Client.from_record(r) for r in records)}

    def _on_transactions(self, records: list[Record]) -> None:
        self._transactions = {t.id: t for t in (Transaction.from_record(r) for r in records)}

    def _on_categories(self, records: list[Record]) -> None:
        names = {str(r.get("name") or "").strip() for r in records}
        self._categories = sorted((n for n in names if n), key=str.lower)

    def attach(self) -> None:
        if self._subs:
            return
        self._subs.append(self._store.subscribe(CLIENTS, self._on_clients))
        self._subs.append(self._store.subscribe(TRANSACTIONS, self._on_transactions))
        self._subs.append(self._store.subscribe(TRANSACTION_CATEGORIES, self._on_categories))
        logger.info("ClientService attached (clients=%d)", len(self._clients))

    def detach(self) -> None:
        for sub in self._subs:
            sub.cancel()
        self._subs.clear()

    # ---- read side ----

    def clients(self) -> list[Client]:
        # Newest first, as the dashboard lists them.
        return sorted(self._clients.values(), key=lambda c: c.created_at, reverse=True)

    def get_client(self, client_id: str) -> Client:
        client = self._clients.get(client_id)
        if client is None:
            raise NotFoundError(CLIENTS, client_id)
        return client

    def search(self, query: str) -> list[Client]:
        q = (query or "").strip().lower()
        if not q:
            return self.clients()
        return [
            c
            for c in self.clients()
            if q in c.business_name.lower()
            or q in c.phone
            or (c.custom_project_type and q in c.custom_project_type.lower())
        ]

    def transactions(self) -> list[Transaction]:
        return sorted(self._transactions.values(), key=lambda t: t.created_at, reverse=True)

    def categories(self) -> list[str]:
        return list(self._categories)

    def financials(self, client_id: str) -> ClientFinancials:
        return client_financials(self.get_client(client_id))

    def summary(self) -> FinancialSummary:
        return financial_summary(self._clients.values(), self._transactions.values())

    # ---- validation ----

    def _validate(self, client: Client) -> None:
        if not client.business_name.strip():
            raise ValidationError("business name is required")
        if not client.phone.strip():
            raise ValidationError("phone is required")
        if client.project_type == ProjectType.CUSTOM and not client.custom_project_type:
            raise ValidationError("custom project type needs a label")
        _check_amount(client.total_project_cost, "total project cost", allow_zero=True)
        _check_amount(client.company_split.travelling_charges, "travelling charges", allow_zero=True)

        smc = client.social_media_commitment
        if smc is None:
            return
        for ct in CommitmentType:
            ceiling = smc.ceiling(ct)
            if ceiling is not None and ceiling < 0:
                raise ValidationError(f"commitment for {ct.value} cannot be negative")

    def _check_ceilings(self, client: Client) -> None:
        """Refuse ceilings below what linked tasks already hold."""
        if self._task_snapshot is None:
            return
        assigned: dict[CommitmentType, int] = {}
        for task in self._task_snapshot():
            if task.client_id == client.id and task.commitment_type is not None:
                assigned[task.commitment_type] = assigned.get(task.commitment_type, 0) + (task.quantity or 0)
        for ct, used in assigned.items():
            ceiling = client.ceiling(ct)
            if ceiling is not None and used > ceiling:
                raise ValidationError(
                    f"{ct.value} ceiling {ceiling} is below the {used} already assigned"
                )

    # ---- client operations ----

    async def create_client(self, draft: ClientDraft) -> str:
        project_type = parse_enum(ProjectType, draft.project_type, "project type")
        now = self._clock()
        client = Client(
            id="",
            business_name=(draft.business_name or "").strip(),
            phone=(draft.phone or "").strip(),
            project_type=project_type,
            total_project_cost=float(draft.total_project_cost or 0.0),
            created_at=now,
            updated_at=now,
            custom_project_type=(
                blank_to_none(draft.custom_project_type) if project_type == ProjectType.CUSTOM else None
            ),
            social_media_commitment=draft.social_media_commitment,
            work_split=draft.work_split,
            company_split=CompanySplit(travelling_charges=float(draft.travelling_charges or 0.0)),
        )
        self._validate(client)

        with store_write("create_client"):
            client_id = await self._store.create(CLIENTS, client.to_record())
        logger.info("Client created id=%s name=%r", client_id, client.business_name)
        return client_id

    async def update_client(self, client_id: str, **changes: Any) -> None:
        """
        Edit client details.

        Accepts business_name, phone, project_type, custom_project_type,
        social_media_commitment, total_project_cost and work_split. Company
        costs have their own operations below.
        """
        allowed = {
            "business_name",
            "phone",
            "project_type",
            "custom_project_type",
            "social_media_commitment",
            "total_project_cost",
            "work_split",
        }
        unknown = set(changes) - allowed
        if unknown:
            raise ValidationError(f"fields not editable: {', '.join(sorted(unknown))}")

        current = self.get_client(client_id)
        if "project_type" in changes:
            changes["project_type"] = parse_enum(ProjectType, changes["project_type"], "project type")
        if "custom_project_type" in changes:
            changes["custom_project_type"] = blank_to_none(changes["custom_project_type"])
        if "total_project_cost" in changes:
            changes["total_project_cost"] = float(changes["total_project_cost"])

        updated = replace(current, **changes, updated_at=self._clock())
        if updated.project_type != ProjectType.CUSTOM:
            updated.custom_project_type = None
        self._validate(updated)
        self._check_ceilings(updated)

        patch = updated.to_record()
        patch.pop("created_at", None)
        patch.setdefault("custom_project_type", None)
        patch.setdefault("social_media_commitment", None)

        with store_write(f"update_client id={client_id}"):
            await self._store.update(CLIENTS, client_id, patch)
        logger.info("Client updated id=%s fields=%s", client_id, ",".join(sorted(changes)))

    async def delete_client(self, client_id: str) -> None:
        self.get_client(client_id)
        with store_write(f"delete_client id={client_id}"):
            await self._store.delete(CLIENTS, client_id)
        logger.info("Client deleted id=%s", client_id)

    async def add_digital_marketing_cost(
            self,
            client_id: str,
            *,
            amount: float,
            description: str = "",
            date: float | None = None,
    ) -> str:
        """Append a marketing cost entry; entries are never edited in place."""
        client = self.get_client(client_id)
        value = _check_amount(amount, "digital marketing cost")
        cost = DigitalMarketingCost(
            id=uuid.uuid4().hex,
            amount=value,
            description=(description or "").strip(),
            date=float(date) if date is not None else self._clock(),
        )
        split = replace(
            client.company_split,
            digital_marketing_costs=client.company_split.digital_marketing_costs + (cost,),
        )
        with store_write(f"add_digital_marketing_cost client_id={client_id}"):
            await self._store.update(
                CLIENTS,
                client_id,
                {"company_split": split.to_record(), "updated_at": self._clock()},
            )
        logger.info("Marketing cost added client_id=%s amount=%.2f", client_id, value)
        return cost.id

    async def set_travelling_charges(self, client_id: str, amount: float) -> None:
        client = self.get_client(client_id)
        value = _check_amount(amount, "travelling charges", allow_zero=True)
        split = replace(client.company_split, travelling_charges=value)
        with store_write(f"set_travelling_charges client_id={client_id}"):
            await self._store.update(
                CLIENTS,
                client_id,
                {"company_split": split.to_record(), "updated_at": self._clock()},
            )
        logger.info("Travelling charges set client_id=%s amount=%.2f", client_id, value)

    # ---- transactions ----

    async def _remember_category(self, category: str) -> None:
        if category.lower() in {c.lower() for c in self._categories}:
            return
        with store_write("create_transaction_category"):
            await self._store.create(
                TRANSACTION_CATEGORIES, {"name": category, "created_at": self._clock()}
            )
        logger.info("Transaction category registered: %s", category)

    @staticmethod
    def _check_transaction(type_: TransactionType | str, category: str, amount: Any) -> tuple[TransactionType, str, float]:
        tx_type = parse_enum(TransactionType, type_, "transaction type")
        name = (category or "").strip()
        if not name:
            raise ValidationError("category is required")
        return tx_type, name, _check_amount(amount, "amount")

    async def create_transaction(
            self,
            *,
            type: TransactionType | str,
            category: str,
            amount: float,
            description: str = "",
    ) -> str:
        tx_type, name, value = self._check_transaction(type, category, amount)
        record = {
            "type": tx_type.value,
            "category": name,
            "amount": value,
            "description": (description or "").strip(),
            "created_at": self._clock(),
        }
        with store_write("create_transaction"):
            tx_id = await self._store.create(TRANSACTIONS, record)
        await self._remember_category(name)
        logger.info("Transaction created id=%s %s %s %.2f", tx_id, tx_type.value, name, value)
        return tx_id

    async def update_transaction(
            self,
            tx_id: str,
            *,
            type: TransactionType | str,
            category: str,
            amount: float,
            description: str = "",
    ) -> None:
        if tx_id not in self._transactions:
            raise NotFoundError(TRANSACTIONS, tx_id)
        tx_type, name, value = self._check_transaction(type, category, amount)
        patch = {
            "type": tx_type.value,
            "category": name,
            "amount": value,
            "description": (description or "").strip(),
            "updated_at": self._clock(),
        }
        with store_write(f"update_transaction id={tx_id}"):
            await self._store.update(TRANSACTIONS, tx_id, patch)
        await self._remember_category(name)
        logger.info("Transaction updated id=%s", tx_id)

    async def delete_transaction(self, tx_id: str) -> None:
        if tx_id not in self._transactions:
            raise NotFoundError(TRANSACTIONS, tx_id)
        with store_write(f"delete_transaction id={tx_id}"):
            await self._store.delete(TRANSACTIONS, tx_id)
        logger.info("Transaction deleted id=%s", tx_id)

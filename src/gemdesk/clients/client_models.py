# src/gemdesk/clients/client_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from ..tasks.task_models import CommitmentType, blank_to_none

CLIENTS = "clients"
TRANSACTIONS = "transactions"
TRANSACTION_CATEGORIES = "transaction_categories"

# Share of total_project_cost that goes to each pool.
SPLIT_RATIO = 0.5


class ProjectType(StrEnum):
    WEBSITE = "website"
    SOCIAL_MEDIA_MANAGEMENT = "social_media_management"
    ADS = "ads"
    DIGITAL_MARKETING = "digital_marketing"
    ADS_DIGITAL_MARKETING = "ads_digital_marketing"
    CUSTOM = "custom"


PROJECT_TYPE_LABELS: dict[ProjectType, str] = {
    ProjectType.WEBSITE: "Website",
    ProjectType.SOCIAL_MEDIA_MANAGEMENT: "Social Media Management",
    ProjectType.ADS: "Ads",
    ProjectType.DIGITAL_MARKETING: "Digital Marketing",
    ProjectType.ADS_DIGITAL_MARKETING: "Ads & Digital Marketing",
    ProjectType.CUSTOM: "Custom",
}


class TransactionType(StrEnum):
    INCOME = "income"
    EXPENSE = "expense"


@dataclass(slots=True, frozen=True)
class SocialMediaCommitment:
    real_videos: int = 0
    ai_videos: int = 0
    posters: int = 0
    digital_marketing_views: int = 0

    def ceiling(self, commitment_type: CommitmentType) -> int | None:
        """Target count for a commitment type; None means unlimited."""
        if commitment_type == CommitmentType.REAL_VIDEO:
            return self.real_videos
        if commitment_type == CommitmentType.AI_VIDEO:
            return self.ai_videos
        if commitment_type == CommitmentType.POSTER:
            return self.posters
        if commitment_type == CommitmentType.DIGITAL_MARKETING:
            return self.digital_marketing_views
        return None

    @classmethod
    def from_record(cls, rec: dict[str, Any]) -> SocialMediaCommitment:
        return cls(
            real_videos=int(rec.get("real_videos") or 0),
            ai_videos=int(rec.get("ai_videos") or 0),
            posters=int(rec.get("posters") or 0),
            digital_marketing_views=int(rec.get("digital_marketing_views") or 0),
        )

    def to_record(self) -> dict[str, Any]:
        return {
            "real_videos": self.real_videos,
            "ai_videos": self.ai_videos,
            "posters": self.posters,
            "digital_marketing_views": self.digital_marketing_views,
        }


@dataclass(slots=True, frozen=True)
class DigitalMarketingCost:
    id: str
    amount: float
    description: str
    date: float

    @classmethod
    def from_record(cls, rec: dict[str, Any]) -> DigitalMarketingCost:
        return cls(
            id=str(rec.get("id") or ""),
            amount=float(rec.get("amount") or 0.0),
            description=str(rec.get("description") or ""),
            date=float(rec.get("date") or 0.0),
        )

    def to_record(self) -> dict[str, Any]:
        return {"id": self.id, "amount": self.amount, "description": self.description, "date": self.date}


@dataclass(slots=True, frozen=True)
class WorkSplit:
    """Who gets paid from the work pool (informational only)."""

    client_manager: str | None = None
    project_manager: str | None = None
    assigned_gems: tuple[str, ...] = ()

    @classmethod
    def from_record(cls, rec: dict[str, Any]) -> WorkSplit:
        return cls(
            client_manager=blank_to_none(rec.get("client_manager")),
            project_manager=blank_to_none(rec.get("project_manager")),
            assigned_gems=tuple(str(g) for g in rec.get("assigned_gems") or ()),
        )

    def to_record(self) -> dict[str, Any]:
        rec: dict[str, Any] = {"assigned_gems": list(self.assigned_gems)}
        if self.client_manager is not None:
            rec["client_manager"] = self.client_manager
        if self.project_manager is not None:
            rec["project_manager"] = self.project_manager
        return rec


@dataclass(slots=True, frozen=True)
class CompanySplit:
    digital_marketing_costs: tuple[DigitalMarketingCost, ...] = ()
    travelling_charges: float = 0.0

    @classmethod
    def from_record(cls, rec: dict[str, Any]) -> CompanySplit:
        return cls(
            digital_marketing_costs=tuple(
                DigitalMarketingCost.from_record(c) for c in rec.get("digital_marketing_costs") or ()
            ),
            travelling_charges=float(rec.get("travelling_charges") or 0.0),
        )

    def to_record(self) -> dict[str, Any]:
        return {
            "digital_marketing_costs": [c.to_record() for c in self.digital_marketing_costs],
            "travelling_charges": self.travelling_charges,
        }


@dataclass(slots=True)
class Client:
    id: str
    business_name: str
    phone: str
    project_type: ProjectType
    total_project_cost: float
    created_at: float
    updated_at: float

    custom_project_type: str | None = None
    social_media_commitment: SocialMediaCommitment | None = None
    work_split: WorkSplit = field(default_factory=WorkSplit)
    company_split: CompanySplit = field(default_factory=CompanySplit)

    @property
    def project_label(self) -> str:
        if self.project_type == ProjectType.CUSTOM and self.custom_project_type:
            return self.custom_project_type
        return PROJECT_TYPE_LABELS[self.project_type]

    def ceiling(self, commitment_type: CommitmentType) -> int | None:
        """
        Commitment ceiling for this client.

        OTHER is always unlimited; any other type without a commitment on the
        client has a ceiling of zero.
        """
        if commitment_type == CommitmentType.OTHER:
            return None
        if self.social_media_commitment is None:
            return 0
        return self.social_media_commitment.ceiling(commitment_type)

    @classmethod
    def from_record(cls, rec: dict[str, Any]) -> Client:
        raw_type = rec.get("project_type")
        try:
            project_type = ProjectType(raw_type) if raw_type else ProjectType.WEBSITE
        except ValueError:
            project_type = ProjectType.CUSTOM
        smc = rec.get("social_media_commitment")
        return cls(
            id=str(rec["id"]),
            business_name=str(rec.get("business_name") or ""),
            phone=str(rec.get("phone") or ""),
            project_type=project_type,
            total_project_cost=float(rec.get("total_project_cost") or 0.0),
            created_at=float(rec.get("created_at") or 0.0),
            updated_at=float(rec.get("updated_at") or 0.0),
            custom_project_type=blank_to_none(rec.get("custom_project_type")),
            social_media_commitment=SocialMediaCommitment.from_record(smc) if smc else None,
            work_split=WorkSplit.from_record(rec.get("work_split") or {}),
            company_split=CompanySplit.from_record(rec.get("company_split") or {}),
        )

    def to_record(self) -> dict[str, Any]:
        rec: dict[str, Any] = {
            "business_name": self.business_name,
            "phone": self.phone,
            "project_type": self.project_type.value,
            "total_project_cost": self.total_project_cost,
            "work_split": self.work_split.to_record(),
            "company_split": self.company_split.to_record(),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
        if self.custom_project_type is not None:
            rec["custom_project_type"] = self.custom_project_type
        if self.social_media_commitment is not None:
            rec["social_media_commitment"] = self.social_media_commitment.to_record()
        return rec


@dataclass(slots=True)
class Transaction:
    id: str
    type: TransactionType
    category: str
    amount: float
    description: str
    created_at: float
    updated_at: float | None = None

    @classmethod
    def from_record(cls, rec: dict[str, Any]) -> Transaction:
        return cls(
            id=str(rec["id"]),
            type=TransactionType(rec.get("type") or TransactionType.EXPENSE.value),
            category=str(rec.get("category") or ""),
            amount=float(rec.get("amount") or 0.0),
            description=str(rec.get("description") or ""),
            created_at=float(rec.get("created_at") or 0.0),
            updated_at=rec.get("updated_at"),
        )

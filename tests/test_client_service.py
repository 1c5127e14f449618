# tests/test_client_service.py

from __future__ import annotations

import pytest

from gemdesk.clients.client_models import (
    CLIENTS,
    ProjectType,
    SocialMediaCommitment,
    TransactionType,
    WorkSplit,
)
from gemdesk.clients.client_service import ClientDraft, ClientService
from gemdesk.core.errors import NotFoundError, ValidationError
from gemdesk.tasks.task_models import CommitmentType, TaskDraft
from gemdesk.tasks.task_service import TaskEngine

from .fakes import FakeClock, RecordingStore


def _draft(**kw) -> ClientDraft:
    fields = dict(
        business_name="Cafe Aroma",
        phone="555-0101",
        project_type=ProjectType.WEBSITE,
        total_project_cost=50_000,
    )
    fields.update(kw)
    return ClientDraft(**fields)


@pytest.mark.asyncio
async def test_create_and_read_back(client_service: ClientService, clock: FakeClock) -> None:
    client_id = await client_service.create_client(
        _draft(
            work_split=WorkSplit(client_manager="Asha", assigned_gems=("g1", "g2")),
            travelling_charges=1_200,
        )
    )
    client = client_service.get_client(client_id)

    assert client.business_name == "Cafe Aroma"
    assert client.project_label == "Website"
    assert client.work_split.assigned_gems == ("g1", "g2")
    assert client.company_split.travelling_charges == 1_200
    assert client.created_at == clock.now


@pytest.mark.asyncio
async def test_custom_project_type_needs_label(client_service: ClientService) -> None:
    with pytest.raises(ValidationError):
        await client_service.create_client(_draft(project_type=ProjectType.CUSTOM))

    client_id = await client_service.create_client(
        _draft(project_type=ProjectType.CUSTOM, custom_project_type="App launch")
    )
    assert client_service.get_client(client_id).project_label == "App launch"


@pytest.mark.asyncio
async def test_required_fields_and_amounts(client_service: ClientService, store: RecordingStore) -> None:
    with pytest.raises(ValidationError):
        await client_service.create_client(_draft(business_name=" "))
    with pytest.raises(ValidationError):
        await client_service.create_client(_draft(total_project_cost=-1))
    with pytest.raises(ValidationError):
        await client_service.create_client(
            _draft(social_media_commitment=SocialMediaCommitment(posters=-2))
        )
    assert store.count(CLIENTS) == 0


@pytest.mark.asyncio
async def test_clients_are_listed_newest_first_and_searchable(
    client_service: ClientService, clock: FakeClock
) -> None:
    await client_service.create_client(_draft(business_name="Old Mill"))
    clock.advance(10)
    await client_service.create_client(_draft(business_name="New Leaf", phone="999"))

    assert [c.business_name for c in client_service.clients()] == ["New Leaf", "Old Mill"]
    assert [c.business_name for c in client_service.search("mill")] == ["Old Mill"]
    assert [c.business_name for c in client_service.search("999")] == ["New Leaf"]


@pytest.mark.asyncio
async def test_ceiling_cannot_drop_below_assigned(
    client_service: ClientService, engine: TaskEngine, clock: FakeClock
) -> None:
    client_id = await client_service.create_client(
        _draft(social_media_commitment=SocialMediaCommitment(real_videos=5))
    )
    await engine.create_task(
        TaskDraft(
            gem_id="g1",
            title="Reels",
            deadline=clock.now + 3600,
            client_id=client_id,
            commitment_type=CommitmentType.REAL_VIDEO,
            quantity=4,
        )
    )

    with pytest.raises(ValidationError, match="below"):
        await client_service.update_client(
            client_id, social_media_commitment=SocialMediaCommitment(real_videos=3)
        )

    await client_service.update_client(client_id, social_media_commitment=SocialMediaCommitment(real_videos=4))
    assert engine.remaining_capacity(client_id, CommitmentType.REAL_VIDEO) == 0


@pytest.mark.asyncio
async def test_update_client_fields(client_service: ClientService) -> None:
    client_id = await client_service.create_client(
        _draft(project_type=ProjectType.CUSTOM, custom_project_type="Launch")
    )
    await client_service.update_client(client_id, project_type="ads", total_project_cost="75000")

    client = client_service.get_client(client_id)
    assert client.project_type == ProjectType.ADS
    assert client.custom_project_type is None
    assert client.total_project_cost == 75_000

    with pytest.raises(ValidationError):
        await client_service.update_client(client_id, company_split=None)


@pytest.mark.asyncio
async def test_marketing_costs_and_travel(client_service: ClientService) -> None:
    client_id = await client_service.create_client(_draft(total_project_cost=10_000))
    cost_id = await client_service.add_digital_marketing_cost(client_id, amount=500, description="Boost")
    await client_service.add_digital_marketing_cost(client_id, amount=250)
    await client_service.set_travelling_charges(client_id, 300)

    client = client_service.get_client(client_id)
    assert [c.amount for c in client.company_split.digital_marketing_costs] == [500, 250]
    assert client.company_split.digital_marketing_costs[0].id == cost_id

    fin = client_service.financials(client_id)
    assert fin.company_split == 5_000
    assert fin.net_profit == 5_000 - 750 - 300

    with pytest.raises(ValidationError):
        await client_service.add_digital_marketing_cost(client_id, amount=0)


@pytest.mark.asyncio
async def test_transactions_register_categories_once(client_service: ClientService, store: RecordingStore) -> None:
    tx_id = await client_service.create_transaction(type="expense", category="Software", amount=99)
    await client_service.create_transaction(type=TransactionType.EXPENSE, category="software", amount=1)
    await client_service.create_transaction(type="income", category="Workshop", amount=400)

    assert client_service.categories() == ["Software", "Workshop"]
    assert len(client_service.transactions()) == 3

    await client_service.update_transaction(tx_id, type="expense", category="Hosting", amount=120)
    assert "Hosting" in client_service.categories()

    await client_service.delete_transaction(tx_id)
    assert len(client_service.transactions()) == 2
    with pytest.raises(NotFoundError):
        await client_service.delete_transaction(tx_id)


@pytest.mark.asyncio
async def test_transaction_validation(client_service: ClientService) -> None:
    with pytest.raises(ValidationError):
        await client_service.create_transaction(type="income", category=" ", amount=10)
    with pytest.raises(ValidationError):
        await client_service.create_transaction(type="income", category="Gift", amount="lots")
    with pytest.raises(ValidationError, match="unknown transaction type"):
        await client_service.create_transaction(type="refund", category="Gift", amount=10)


@pytest.mark.asyncio
async def test_unknown_project_type_is_a_validation_error(client_service: ClientService) -> None:
    with pytest.raises(ValidationError, match="unknown project type"):
        await client_service.create_client(_draft(project_type="podcast"))

    client_id = await client_service.create_client(_draft())
    with pytest.raises(ValidationError, match="unknown project type"):
        await client_service.update_client(client_id, project_type="podcast")
    assert client_service.get_client(client_id).project_type == ProjectType.WEBSITE


@pytest.mark.asyncio
async def test_delete_client(client_service: ClientService) -> None:
    client_id = await client_service.create_client(_draft())
    await client_service.delete_client(client_id)
    with pytest.raises(NotFoundError):
        client_service.get_client(client_id)

# src/gemdesk/clients/finance.py

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from .client_models import SPLIT_RATIO, Client, Transaction, TransactionType


@dataclass(slots=True, frozen=True)
class ClientFinancials:
    total_project_cost: float
    work_split: float
    company_split: float
    digital_marketing_total: float
    travelling_charges: float
    net_profit: float


def client_financials(client: Client) -> ClientFinancials:
    """
    50/50 split of a client's project cost.

    The work pool is paid out to assigned gems and is informational here;
    company costs come out of the company pool only.
    """
    cost = client.total_project_cost
    work = cost * SPLIT_RATIO
    company = cost * SPLIT_RATIO
    marketing = sum(c.amount for c in client.company_split.digital_marketing_costs)
    travel = client.company_split.travelling_charges
    return ClientFinancials(
        total_project_cost=cost,
        work_split=work,
        company_split=company,
        digital_marketing_total=marketing,
        travelling_charges=travel,
        net_profit=company - marketing - travel,
    )


@dataclass(slots=True, frozen=True)
class FinancialSummary:
    total_revenue: float
    total_project_costs: float
    total_work_split: float
    total_company_split: float
    total_digital_marketing_costs: float
    total_travelling_charges: float
    total_other_income: float
    total_other_expenses: float
    net_profit: float


def financial_summary(clients: Iterable[Client], transactions: Iterable[Transaction]) -> FinancialSummary:
    project_costs = 0.0
    marketing = 0.0
    travel = 0.0
    for client in clients:
        project_costs += client.total_project_cost
        marketing += sum(c.amount for c in client.company_split.digital_marketing_costs)
        travel += client.company_split.travelling_charges

    other_income = 0.0
    other_expenses = 0.0
    for tx in transactions:
        if tx.type == TransactionType.INCOME:
            other_income += tx.amount
        else:
            other_expenses += tx.amount

    company = project_costs * SPLIT_RATIO
    return FinancialSummary(
        total_revenue=project_costs + other_income,
        total_project_costs=project_costs,
        total_work_split=project_costs * SPLIT_RATIO,
        total_company_split=company,
        total_digital_marketing_costs=marketing,
        total_travelling_charges=travel,
        total_other_income=other_income,
        total_other_expenses=other_expenses,
        net_profit=company - marketing - travel - other_expenses,
    )

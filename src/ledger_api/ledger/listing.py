"""
Contractor Listing

Search, status filter and sort over the contractors of a project, plus the over-billing alert.
"""

import locale
from typing import List
from typing import Optional
from typing import Sequence

from loguru import logger
from pydantic import BaseModel

from ledger_api.ledger.enums import BudgetStatus
from ledger_api.ledger.enums import SortKey
from ledger_api.ledger.enums import StatusFilter
from ledger_api.ledger.models import ChangeOrder
from ledger_api.ledger.models import Contractor
from ledger_api.ledger.models import Invoice
from ledger_api.ledger.rollup import ContractorMetrics
from ledger_api.ledger.rollup import calculate_contractor_metrics

# Status filter value -> balance classification it selects
_FILTER_TO_STATUS = {
    StatusFilter.ACTIVE: BudgetStatus.ACTIVE,
    StatusFilter.COMPLETED: BudgetStatus.COMPLETED,
    StatusFilter.OVERDUE: BudgetStatus.OVER_BUDGET,
}


class ContractorRollup(BaseModel):
    contractor: Contractor
    metrics: ContractorMetrics


class OverBilledAlert(BaseModel):
    contractor: Contractor
    amount: float
    latest_invoice: Optional[Invoice] = None


def matches_search(contractor: Contractor, search_term: str) -> bool:
    """Case-insensitive substring match against name, email and phone; an empty term matches all."""
    term = (search_term or "").strip().casefold()
    if not term:
        return True
    return any(term in (field or "").casefold() for field in (contractor.name, contractor.email, contractor.phone))


def matches_status(metrics: ContractorMetrics, status_filter: StatusFilter) -> bool:
    if status_filter == StatusFilter.ALL:
        return True
    return metrics.status == _FILTER_TO_STATUS[status_filter]


def configure_collation(name: str = "") -> str:
    """
    Select the collation used by name sorting for the whole process.

    An empty name takes the locale from the environment; when that locale is not installed the
    current collation is kept. An explicitly configured locale must exist.

    Returns:
        The active LC_COLLATE locale
    """
    try:
        return locale.setlocale(locale.LC_COLLATE, name)
    except locale.Error:
        if name:
            raise
        active = locale.setlocale(locale.LC_COLLATE)
        logger.warning("Environment locale unavailable for collation", collation=active)
        return active


def collation_key(name: str) -> str:
    """
    Sort key for a name under the process LC_COLLATE locale (see configure_collation).

    Case-folded first, so under the C locale this is code-point order that still groups
    "alpha" with "Alpha".
    """
    return locale.strxfrm((name or "").casefold())


def rollup_contractors(
    contractors: Sequence[Contractor],
    change_orders: Sequence[ChangeOrder],
    invoices: Sequence[Invoice],
    project_id=None,
) -> List[ContractorRollup]:
    return [
        ContractorRollup(
            contractor=contractor,
            metrics=calculate_contractor_metrics(contractor, change_orders, invoices, project_id=project_id),
        )
        for contractor in contractors
    ]


def filter_and_sort_contractors(
    rollups: Sequence[ContractorRollup],
    search_term: str = "",
    status_filter: StatusFilter = StatusFilter.ALL,
    sort_by: SortKey = SortKey.NAME,
) -> List[ContractorRollup]:
    """
    Apply search and status filter, then sort.

    Sorting by value is descending on total contract value. Python's sort is stable, so ties keep
    their input order.
    """
    selected = [
        rollup
        for rollup in rollups
        if matches_search(rollup.contractor, search_term) and matches_status(rollup.metrics, status_filter)
    ]

    if sort_by == SortKey.VALUE:
        return sorted(selected, key=lambda r: r.metrics.total_contract_value, reverse=True)
    return sorted(selected, key=lambda r: collation_key(r.contractor.name))


def find_over_billed_contractors(
    rollups: Sequence[ContractorRollup],
    invoices: Sequence[Invoice],
) -> List[OverBilledAlert]:
    """
    Contractors whose remaining balance is below zero.

    `latest_invoice` is the last invoice of that contractor in the loaded order, not the
    chronologically newest one.
    """
    alerts = []
    for rollup in rollups:
        if rollup.metrics.status != BudgetStatus.OVER_BUDGET:
            continue
        own_invoices = [invoice for invoice in invoices if invoice.contractor_id == rollup.contractor.id]
        alerts.append(
            OverBilledAlert(
                contractor=rollup.contractor,
                amount=abs(rollup.metrics.remaining_balance),
                latest_invoice=own_invoices[-1] if own_invoices else None,
            )
        )
    return alerts

"""
Financial Rollups

Pure functions deriving contract totals, invoiced totals, remaining balances and profit from the
loaded records. Nothing here touches the gateway and nothing is cached: callers recompute after
every reload.

Every change order and invoice whose foreign key matches counts, whatever its status or date.
A missing amount counts as 0.
"""

from typing import Iterable
from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from ledger_api.ledger.enums import BudgetStatus
from ledger_api.ledger.enums import ChangeOrderSide
from ledger_api.ledger.models import ChangeOrder
from ledger_api.ledger.models import Contractor
from ledger_api.ledger.models import Invoice
from ledger_api.ledger.models import Project

# Balances within half a cent of zero are treated as settled
BALANCE_TOLERANCE = 0.005


class ContractorMetrics(BaseModel):
    original_contract_value: float
    total_change_orders: float
    total_contract_value: float
    total_invoices: float
    remaining_balance: float
    status: BudgetStatus


class ProjectMetrics(BaseModel):
    original_value: float
    total_change_orders: float
    total_value: float
    invoices_total: float
    profit: float
    profit_percentage: float


def _amount(value: Optional[float]) -> float:
    return float(value or 0)


def sum_change_orders(
    change_orders: Iterable[ChangeOrder],
    side: ChangeOrderSide,
    project_id: Optional[UUID] = None,
    contractor_id: Optional[UUID] = None,
) -> float:
    """
    Sum one side of the change orders, optionally restricted by project and/or contractor.

    Args:
        change_orders: Loaded change orders
        side: PROJECT sums project_amount, CONTRACTOR sums contractor_amount
        project_id: Only count change orders of this project
        contractor_id: Only count change orders of this contractor
    """
    total = 0.0
    for co in change_orders:
        if project_id is not None and co.project_id != project_id:
            continue
        if contractor_id is not None and co.contractor_id != contractor_id:
            continue
        total += _amount(co.project_amount if side == ChangeOrderSide.PROJECT else co.contractor_amount)
    return total


def sum_invoices(
    invoices: Iterable[Invoice],
    project_id: Optional[UUID] = None,
    contractor_id: Optional[UUID] = None,
) -> float:
    """Sum signed invoice amounts; credits subtract."""
    total = 0.0
    for invoice in invoices:
        if project_id is not None and invoice.project_id != project_id:
            continue
        if contractor_id is not None and invoice.contractor_id != contractor_id:
            continue
        total += _amount(invoice.amount)
    return total


def classify_balance(remaining_balance: float) -> BudgetStatus:
    if remaining_balance < -BALANCE_TOLERANCE:
        return BudgetStatus.OVER_BUDGET
    if remaining_balance > BALANCE_TOLERANCE:
        return BudgetStatus.ACTIVE
    return BudgetStatus.COMPLETED


def profit_percentage(profit: float, total_value: float) -> float:
    """Profit as a percentage of total value; 0 when the total is not positive."""
    if total_value <= 0:
        return 0.0
    return profit / total_value * 100


def calculate_contractor_metrics(
    contractor: Contractor,
    change_orders: Iterable[ChangeOrder],
    invoices: Iterable[Invoice],
    project_id: Optional[UUID] = None,
) -> ContractorMetrics:
    """
    Rollup for one contractor from the contractor's side of the change orders.

    Pass `project_id` to restrict the rollup to one project (project detail view); leave it
    unset for the global per-contractor view.
    """
    original = _amount(contractor.contract_value)
    change_total = sum_change_orders(
        change_orders, ChangeOrderSide.CONTRACTOR, project_id=project_id, contractor_id=contractor.id
    )
    total_contract_value = original + change_total
    total_invoices = sum_invoices(invoices, project_id=project_id, contractor_id=contractor.id)
    remaining = total_contract_value - total_invoices

    return ContractorMetrics(
        original_contract_value=original,
        total_change_orders=change_total,
        total_contract_value=total_contract_value,
        total_invoices=total_invoices,
        remaining_balance=remaining,
        status=classify_balance(remaining),
    )


def calculate_project_metrics(
    project: Project,
    change_orders: Iterable[ChangeOrder],
    invoices: Iterable[Invoice],
) -> ProjectMetrics:
    """Rollup for one project from the project's side of the change orders."""
    original = _amount(project.contract_value)
    change_total = sum_change_orders(change_orders, ChangeOrderSide.PROJECT, project_id=project.id)
    total_value = original + change_total
    invoices_total = sum_invoices(invoices, project_id=project.id)
    profit = total_value - invoices_total

    return ProjectMetrics(
        original_value=original,
        total_change_orders=change_total,
        total_value=total_value,
        invoices_total=invoices_total,
        profit=profit,
        profit_percentage=profit_percentage(profit, total_value),
    )

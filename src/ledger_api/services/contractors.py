"""
Contractor Views

Contractor detail (rolled up across every project the contractor works on) and the contractor
mutations reachable from the project and contractor pages.
"""

from datetime import date
from datetime import timedelta
from typing import List
from typing import Optional
from uuid import UUID

from loguru import logger
from pydantic import BaseModel

from ledger_api.errors import AlreadyExistsError
from ledger_api.errors import NotFoundError
from ledger_api.errors import ValidationFailed
from ledger_api.gateway import LedgerGateway
from ledger_api.ledger.compensation import CompensatingActions
from ledger_api.ledger.editors import Attachment
from ledger_api.ledger.editors import ContractorEditor
from ledger_api.ledger.editors import ContractorForm
from ledger_api.ledger.editors import InvoiceEditor
from ledger_api.ledger.editors import InvoiceForm
from ledger_api.ledger.enums import InvoiceStatus
from ledger_api.ledger.models import ChangeOrder
from ledger_api.ledger.models import Contractor
from ledger_api.ledger.models import CurrentUser
from ledger_api.ledger.models import Invoice
from ledger_api.ledger.models import Project
from ledger_api.ledger.patches import ContractorPatch
from ledger_api.ledger.patches import InvoicePatch
from ledger_api.ledger.rollup import ContractorMetrics
from ledger_api.ledger.rollup import calculate_contractor_metrics
from ledger_api.services.projects import get_project_or_404

MSG_CONTRACTOR_NOT_FOUND = "Contractor not found"
MSG_DUPLICATE_CONTRACTOR_EMAIL = "A contractor with this email already exists"
MSG_NO_PROJECT_FOR_INVOICE = "No project found for this invoice. Please add a project first."


class InvoiceWithProject(BaseModel):
    invoice: Invoice
    project: Optional[Project] = None


class ContractorDetail(BaseModel):
    contractor: Contractor
    metrics: ContractorMetrics
    projects: List[Project]
    invoices: List[InvoiceWithProject]
    change_orders: List[ChangeOrder]


async def get_contractor_or_404(gateway: LedgerGateway, contractor_id: UUID) -> Contractor:
    contractor = await gateway.contractors.get(contractor_id)
    if contractor is None:
        raise NotFoundError(MSG_CONTRACTOR_NOT_FOUND)
    return contractor


async def load_contractor_detail(gateway: LedgerGateway, contractor_id: UUID) -> ContractorDetail:
    """Contractor page: metrics over all of the contractor's invoices and change orders."""
    contractor = await get_contractor_or_404(gateway, contractor_id)
    invoices = await gateway.invoices.list_for_contractor(contractor_id)
    change_orders = await gateway.change_orders.list_for_contractor(contractor_id)
    projects = await gateway.projects.list_for_contractor(contractor_id)

    # invoices may point at projects the contractor is no longer linked to
    projects_by_id = {project.id: project for project in projects}
    for project_id in {invoice.project_id for invoice in invoices} - set(projects_by_id):
        project = await gateway.projects.get(project_id)
        if project is not None:
            projects_by_id[project_id] = project

    return ContractorDetail(
        contractor=contractor,
        metrics=calculate_contractor_metrics(contractor, change_orders, invoices),
        projects=projects,
        invoices=[InvoiceWithProject(invoice=inv, project=projects_by_id.get(inv.project_id)) for inv in invoices],
        change_orders=change_orders,
    )


async def add_contractor_to_project(
    gateway: LedgerGateway,
    project_id: UUID,
    form: ContractorForm,
    user: CurrentUser,
) -> Contractor:
    """
    Create a contractor and link it to the project.

    When the link insert fails the new contractor row is deleted again.

    Raises:
        ValidationFailed: contractor name missing
        NotFoundError: no such project
        AlreadyExistsError: another contractor already uses this email
    """
    await get_project_or_404(gateway, project_id)

    async def save(patch: ContractorPatch) -> Contractor:
        try:
            contractor = await gateway.contractors.create(patch, user_id=user.id)
        except AlreadyExistsError as e:
            raise AlreadyExistsError(MSG_DUPLICATE_CONTRACTOR_EMAIL) from e

        async with CompensatingActions("add contractor to project") as undo:
            undo.add("delete contractor", lambda: gateway.contractors.delete(contractor.id))
            await gateway.project_contractors.link(project_id, contractor.id)
        return contractor

    contractor = await ContractorEditor(form=form).submit(save)
    logger.success("Contractor added to project", project_id=project_id, contractor_id=contractor.id)
    return contractor


async def update_contractor(gateway: LedgerGateway, contractor_id: UUID, form: ContractorForm) -> Contractor:
    existing = await get_contractor_or_404(gateway, contractor_id)

    async def save(patch: ContractorPatch) -> Contractor:
        try:
            updated = await gateway.contractors.update_from_patch(contractor_id, patch)
        except AlreadyExistsError as e:
            raise AlreadyExistsError(MSG_DUPLICATE_CONTRACTOR_EMAIL) from e
        if updated is None:
            raise NotFoundError(MSG_CONTRACTOR_NOT_FOUND)
        return updated

    contractor = await ContractorEditor(existing, form=form).submit(save)
    logger.info("Contractor updated", contractor_id=contractor_id)
    return contractor


async def remove_contractor_from_project(gateway: LedgerGateway, project_id: UUID, contractor_id: UUID) -> None:
    """Delete the project <-> contractor link only; the contractor and its records stay."""
    if not await gateway.project_contractors.unlink(project_id, contractor_id):
        raise NotFoundError("Contractor is not part of this project")
    logger.info("Contractor removed from project", project_id=project_id, contractor_id=contractor_id)


async def delete_contractor(gateway: LedgerGateway, contractor_id: UUID) -> None:
    if not await gateway.contractors.delete(contractor_id):
        raise NotFoundError(MSG_CONTRACTOR_NOT_FOUND)
    logger.info("Contractor deleted", contractor_id=contractor_id)


async def add_invoice_for_contractor(
    gateway: LedgerGateway,
    contractor_id: UUID,
    form: InvoiceForm,
    due_days: int,
    attachment: Optional[Attachment] = None,
    storage=None,
) -> Invoice:
    """
    Add an invoice from the contractor page.

    The invoice is booked against the first project the contractor is linked to, as pending and
    due `due_days` from today.
    """
    await get_contractor_or_404(gateway, contractor_id)
    projects = await gateway.projects.list_for_contractor(contractor_id)
    if not projects:
        raise ValidationFailed(MSG_NO_PROJECT_FOR_INVOICE)
    project_id = projects[0].id

    async def save(patch: InvoicePatch) -> Invoice:
        patch.status = InvoiceStatus.PENDING.value
        patch.due_date = date.today() + timedelta(days=due_days)
        return await gateway.invoices.create(project_id, contractor_id, patch)

    invoice = await InvoiceEditor(form=form).submit(save, attachment=attachment, storage=storage)
    logger.success("Invoice added", invoice_id=invoice.id, project_id=project_id, contractor_id=contractor_id)
    return invoice

"""
Change Orders and Invoices

Create/update/delete of the records booked against a contractor within a project.
"""

from typing import Optional
from uuid import UUID

from loguru import logger

from ledger_api.errors import NotFoundError
from ledger_api.gateway import LedgerGateway
from ledger_api.ledger.editors import Attachment
from ledger_api.ledger.editors import ChangeOrderEditor
from ledger_api.ledger.editors import ChangeOrderForm
from ledger_api.ledger.editors import InvoiceEditor
from ledger_api.ledger.editors import InvoiceForm
from ledger_api.ledger.models import ChangeOrder
from ledger_api.ledger.models import Invoice
from ledger_api.ledger.patches import ChangeOrderPatch
from ledger_api.ledger.patches import InvoicePatch
from ledger_api.services.contractors import get_contractor_or_404
from ledger_api.services.projects import get_project_or_404

MSG_CHANGE_ORDER_NOT_FOUND = "Change order not found"
MSG_INVOICE_NOT_FOUND = "Invoice not found"


# ════════════════════════════════════════════════════════════════════════════
# Change Orders
# ════════════════════════════════════════════════════════════════════════════


async def create_change_order(
    gateway: LedgerGateway,
    project_id: UUID,
    contractor_id: UUID,
    form: ChangeOrderForm,
) -> ChangeOrder:
    await get_project_or_404(gateway, project_id)
    await get_contractor_or_404(gateway, contractor_id)

    async def save(patch: ChangeOrderPatch) -> ChangeOrder:
        return await gateway.change_orders.create(project_id, contractor_id, patch)

    change_order = await ChangeOrderEditor(form=form).submit(save)
    logger.info("Change order created", change_order_id=change_order.id, project_id=project_id)
    return change_order


async def update_change_order(gateway: LedgerGateway, change_order_id: UUID, form: ChangeOrderForm) -> ChangeOrder:
    existing = await gateway.change_orders.get(change_order_id)
    if existing is None:
        raise NotFoundError(MSG_CHANGE_ORDER_NOT_FOUND)

    async def save(patch: ChangeOrderPatch) -> ChangeOrder:
        updated = await gateway.change_orders.update_from_patch(change_order_id, patch)
        if updated is None:
            raise NotFoundError(MSG_CHANGE_ORDER_NOT_FOUND)
        return updated

    return await ChangeOrderEditor(existing, form=form).submit(save)


async def delete_change_order(gateway: LedgerGateway, change_order_id: UUID) -> None:
    if not await gateway.change_orders.delete(change_order_id):
        raise NotFoundError(MSG_CHANGE_ORDER_NOT_FOUND)
    logger.info("Change order deleted", change_order_id=change_order_id)


# ════════════════════════════════════════════════════════════════════════════
# Invoices
# ════════════════════════════════════════════════════════════════════════════


async def create_invoice(
    gateway: LedgerGateway,
    project_id: UUID,
    contractor_id: UUID,
    form: InvoiceForm,
    attachment: Optional[Attachment] = None,
    storage=None,
) -> Invoice:
    """Create an invoice, uploading the attachment first when one is given."""
    await get_project_or_404(gateway, project_id)
    await get_contractor_or_404(gateway, contractor_id)

    async def save(patch: InvoicePatch) -> Invoice:
        return await gateway.invoices.create(project_id, contractor_id, patch)

    invoice = await InvoiceEditor(form=form).submit(save, attachment=attachment, storage=storage)
    logger.info("Invoice created", invoice_id=invoice.id, project_id=project_id, contractor_id=contractor_id)
    return invoice


async def update_invoice(
    gateway: LedgerGateway,
    invoice_id: UUID,
    form: InvoiceForm,
    attachment: Optional[Attachment] = None,
    storage=None,
) -> Invoice:
    """Update an invoice. Without a new attachment the stored file_url is left unchanged."""
    existing = await gateway.invoices.get(invoice_id)
    if existing is None:
        raise NotFoundError(MSG_INVOICE_NOT_FOUND)

    async def save(patch: InvoicePatch) -> Invoice:
        updated = await gateway.invoices.update_from_patch(invoice_id, patch)
        if updated is None:
            raise NotFoundError(MSG_INVOICE_NOT_FOUND)
        return updated

    return await InvoiceEditor(existing, form=form).submit(save, attachment=attachment, storage=storage)


async def delete_invoice(gateway: LedgerGateway, invoice_id: UUID, storage=None) -> None:
    """Delete an invoice and, when it lives in our bucket, its attachment."""
    invoice = await gateway.invoices.get(invoice_id)
    if invoice is None or not await gateway.invoices.delete(invoice_id):
        raise NotFoundError(MSG_INVOICE_NOT_FOUND)
    logger.info("Invoice deleted", invoice_id=invoice_id)

    if storage is not None:
        path = storage.path_from_url(invoice.file_url)
        if path and not await storage.remove(path):
            logger.warning("Invoice attachment left in storage", invoice_id=invoice_id, path=path)

"""
Invoice API Routes

Invoices are submitted as multipart forms so that an attachment can travel with them. The amount
is a non-negative magnitude; `is_credit` turns it into a credit.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter
from fastapi import Depends
from fastapi import File
from fastapi import Form
from fastapi import UploadFile
from fastapi import status

from ledger_api.dependencies import get_current_user
from ledger_api.dependencies import get_gateway
from ledger_api.dependencies import get_settings
from ledger_api.dependencies import get_storage
from ledger_api.gateway import LedgerGateway
from ledger_api.ledger.attachments import validate_upload
from ledger_api.ledger.editors import Attachment
from ledger_api.ledger.editors import InvoiceForm
from ledger_api.schemas.schemas import InvoiceResponse
from ledger_api.schemas.schemas import MessageResponse
from ledger_api.services import entries as entry_service
from ledger_api.settings import Settings
from ledger_api.storage.object_storage import ObjectStorageClient

ROUTER_INVOICES = APIRouter(tags=["Invoices"], dependencies=[Depends(get_current_user)])


def invoice_form(
    invoice_number: str = Form("", description="Free-text invoice number"),
    description: str = Form(""),
    amount: str = Form("", description="Magnitude; unparsable input counts as 0"),
    is_credit: bool = Form(False, description="Book the amount as a credit (negative)"),
) -> InvoiceForm:
    return InvoiceForm(invoice_number=invoice_number, description=description, amount=amount, is_credit=is_credit)


async def read_attachment(file: Optional[UploadFile], settings: Settings) -> Optional[Attachment]:
    """Read and validate an uploaded attachment; None when no file was chosen."""
    if file is None or not file.filename:
        return None
    content = await file.read()
    validate_upload(file.filename, file.content_type, len(content), settings.storage_max_upload_mb)
    return Attachment(filename=file.filename, content_type=file.content_type, content=content)


@ROUTER_INVOICES.post(
    "/projects/{project_id}/contractors/{contractor_id}/invoices",
    response_model=InvoiceResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add an invoice for a contractor within a project",
    responses={
        404: {"description": "Project or contractor not found"},
        422: {"description": "Required field missing or attachment rejected"},
        502: {"description": "Attachment upload failed"},
    },
)
async def create_invoice(
    project_id: UUID,
    contractor_id: UUID,
    form: InvoiceForm = Depends(invoice_form),
    file: Optional[UploadFile] = File(None, description="PDF or image attachment"),
    gateway: LedgerGateway = Depends(get_gateway),
    storage: Optional[ObjectStorageClient] = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    form.to_patch()  # required fields are checked before the attachment is read
    attachment = await read_attachment(file, settings)
    invoice = await entry_service.create_invoice(gateway, project_id, contractor_id, form, attachment, storage)
    return InvoiceResponse(Message="Invoice created successfully", Invoice=invoice)


@ROUTER_INVOICES.put(
    "/invoices/{invoice_id}",
    response_model=InvoiceResponse,
    summary="Update an invoice",
    responses={404: {"description": "Invoice not found"}},
)
async def update_invoice(
    invoice_id: UUID,
    form: InvoiceForm = Depends(invoice_form),
    file: Optional[UploadFile] = File(None, description="Replacement attachment"),
    gateway: LedgerGateway = Depends(get_gateway),
    storage: Optional[ObjectStorageClient] = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    form.to_patch()
    attachment = await read_attachment(file, settings)
    invoice = await entry_service.update_invoice(gateway, invoice_id, form, attachment, storage)
    return InvoiceResponse(Message="Invoice updated successfully", Invoice=invoice)


@ROUTER_INVOICES.delete(
    "/invoices/{invoice_id}",
    response_model=MessageResponse,
    summary="Delete an invoice",
    responses={404: {"description": "Invoice not found"}},
)
async def delete_invoice(
    invoice_id: UUID,
    gateway: LedgerGateway = Depends(get_gateway),
    storage: Optional[ObjectStorageClient] = Depends(get_storage),
):
    await entry_service.delete_invoice(gateway, invoice_id, storage)
    return MessageResponse(Message="Invoice deleted successfully")

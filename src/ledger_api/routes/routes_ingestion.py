"""AI invoice upload: one PDF in, one invoice (and possibly one new contractor) out."""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter
from fastapi import Depends
from fastapi import File
from fastapi import UploadFile
from fastapi import status

from ledger_api.dependencies import get_current_user
from ledger_api.dependencies import get_extraction_client
from ledger_api.dependencies import get_gateway
from ledger_api.dependencies import get_settings
from ledger_api.dependencies import get_storage
from ledger_api.errors import StorageError
from ledger_api.extraction.extraction_client import ExtractionClient
from ledger_api.gateway import LedgerGateway
from ledger_api.ledger.models import CurrentUser
from ledger_api.schemas.schemas import InvoiceIngestionResponse
from ledger_api.services.ingestion import InvoiceIngestionPipeline
from ledger_api.settings import Settings
from ledger_api.storage.object_storage import ObjectStorageClient

ROUTER_INGESTION = APIRouter(tags=["Invoice Ingestion"])


@ROUTER_INGESTION.post(
    "/projects/{project_id}/invoices/auto",
    response_model=InvoiceIngestionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an invoice from an uploaded PDF",
    responses={
        201: {"description": "Invoice extracted and created"},
        400: {"description": "A pipeline step failed; `step` names it"},
        404: {"description": "Project not found"},
        422: {"description": "File missing, too large or not a PDF"},
    },
)
async def ingest_invoice(
    project_id: UUID,
    file: UploadFile = File(..., description="Invoice PDF (max size set by storage_max_upload_mb)"),
    gateway: LedgerGateway = Depends(get_gateway),
    storage: Optional[ObjectStorageClient] = Depends(get_storage),
    extraction: ExtractionClient = Depends(get_extraction_client),
    settings: Settings = Depends(get_settings),
    user: CurrentUser = Depends(get_current_user),
):
    """
    Upload the document, transcribe it, extract the invoice fields, resolve the vendor to a
    contractor of the project and create a pending invoice due in `invoice_due_days` days.

    Nothing is rolled back when a later step fails.
    """
    if storage is None:
        raise StorageError("File storage is not configured")

    content = await file.read()
    pipeline = InvoiceIngestionPipeline(
        gateway,
        storage,
        extraction,
        max_upload_mb=settings.storage_max_upload_mb,
        due_days=settings.invoice_due_days,
    )
    result = await pipeline.run(project_id, file.filename, file.content_type, content, user)

    return InvoiceIngestionResponse(
        Message="Invoice processed successfully",
        InvoiceNumber=result.extracted.invoice_number,
        Amount=result.extracted.amount,
        VendorName=result.extracted.vendor_name,
        Description=result.extracted.description,
        ContractorCreated=result.contractor_created,
        Invoice=result.invoice,
    )

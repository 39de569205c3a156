"""
Invoice Ingestion Pipeline

Turns an uploaded invoice document into an invoice row:

1. upload             store the document under auto/<projectId>/<timestamp>_<name>
2. transcribe         document -> raw text (extraction API, vision model)
3. extract            raw text -> invoice number, description, amount, vendor details
4. resolve_contractor find the vendor by name (case-insensitive) or create it; link it to the project
5. create_invoice     pending invoice, due `invoice_due_days` from today, pointing at the upload

Steps run strictly in order. The first failing step aborts the run with a PipelineError naming
that step; rows and files written by earlier steps are kept.
"""

from datetime import date
from datetime import timedelta
from typing import Optional
from uuid import UUID

from loguru import logger
from pydantic import BaseModel

from ledger_api.errors import ExtractionError
from ledger_api.errors import PipelineError
from ledger_api.errors import StorageError
from ledger_api.extraction.extraction_client import ExtractedInvoice
from ledger_api.extraction.extraction_client import ExtractionClient
from ledger_api.gateway import LedgerGateway
from ledger_api.ledger.attachments import build_object_path
from ledger_api.ledger.attachments import validate_upload
from ledger_api.ledger.enums import IngestionStep
from ledger_api.ledger.enums import InvoiceStatus
from ledger_api.ledger.models import Contractor
from ledger_api.ledger.models import CurrentUser
from ledger_api.ledger.models import Invoice
from ledger_api.ledger.patches import ContractorPatch
from ledger_api.ledger.patches import InvoicePatch
from ledger_api.services.projects import get_project_or_404

AUTO_UPLOAD_NAMESPACE = "auto"
AUTO_CONTRACTOR_DESCRIPTION = "Auto-created from invoice upload"
INGESTION_CONTENT_TYPES = ("application/pdf",)

# Message reported when a step fails for a reason other than storage or extraction
STEP_FAILURE_MESSAGES = {
    IngestionStep.UPLOAD: "Failed to upload file",
    IngestionStep.TRANSCRIBE: "Failed to extract text from PDF",
    IngestionStep.EXTRACT: "Failed to process invoice data",
    IngestionStep.RESOLVE_CONTRACTOR: "Failed to find or create contractor",
    IngestionStep.CREATE_INVOICE: "Failed to create invoice",
}


class IngestionResult(BaseModel):
    invoice: Invoice
    contractor: Contractor
    contractor_created: bool
    extracted: ExtractedInvoice
    file_url: str


class InvoiceIngestionPipeline:
    """
    One ingestion run per call to `run`.

    Args:
        gateway: Row store access
        storage: ObjectStorageClient for the uploaded document
        extraction: ExtractionClient for transcription and field extraction
        max_upload_mb: Largest accepted document
        due_days: Days from today until the created invoice is due
    """

    def __init__(
        self,
        gateway: LedgerGateway,
        storage,
        extraction: ExtractionClient,
        max_upload_mb: int = 10,
        due_days: int = 30,
    ):
        self.gateway = gateway
        self.storage = storage
        self.extraction = extraction
        self.max_upload_mb = max_upload_mb
        self.due_days = due_days

    async def run(
        self,
        project_id: UUID,
        filename: Optional[str],
        content_type: Optional[str],
        content: bytes,
        user: CurrentUser,
    ) -> IngestionResult:
        """
        Run all five steps for one document.

        Raises:
            ValidationFailed: the file is empty, too large or not a PDF (nothing is uploaded)
            NotFoundError: no such project
            PipelineError: a step failed; `step` names it
        """
        validate_upload(filename, content_type, len(content), self.max_upload_mb, INGESTION_CONTENT_TYPES)
        await get_project_or_404(self.gateway, project_id)

        logger.info("Invoice ingestion started", project_id=project_id, filename=filename, size=len(content))

        async with self._step(IngestionStep.UPLOAD, project_id):
            path = build_object_path(AUTO_UPLOAD_NAMESPACE, project_id, filename)
            file_url = await self.storage.put(path, content, content_type)

        # the bucket is private, so the uploaded bytes are transcribed rather than the public URL
        async with self._step(IngestionStep.TRANSCRIBE, project_id):
            text = await self.extraction.transcribe_document(content, content_type)

        async with self._step(IngestionStep.EXTRACT, project_id):
            extracted = await self.extraction.extract_invoice_fields(text)

        async with self._step(IngestionStep.RESOLVE_CONTRACTOR, project_id):
            contractor, created = await self.resolve_contractor(project_id, extracted, user)

        async with self._step(IngestionStep.CREATE_INVOICE, project_id):
            invoice = await self.gateway.invoices.create(
                project_id,
                contractor.id,
                InvoicePatch(
                    invoice_number=extracted.invoice_number,
                    description=extracted.description,
                    amount=extracted.amount,
                    file_url=file_url,
                    status=InvoiceStatus.PENDING.value,
                    due_date=date.today() + timedelta(days=self.due_days),
                ),
            )

        logger.success(
            "Invoice ingested",
            project_id=project_id,
            invoice_id=invoice.id,
            contractor_id=contractor.id,
            contractor_created=created,
            amount=extracted.amount,
        )
        return IngestionResult(
            invoice=invoice,
            contractor=contractor,
            contractor_created=created,
            extracted=extracted,
            file_url=file_url,
        )

    async def resolve_contractor(
        self,
        project_id: UUID,
        extracted: ExtractedInvoice,
        user: CurrentUser,
    ) -> tuple[Contractor, bool]:
        """
        The oldest contractor named like the vendor, or a new one; linked to the project either way.

        Returns:
            (contractor, created)
        """
        matches = await self.gateway.contractors.find_by_name(extracted.vendor_name)
        if matches:
            contractor, created = matches[0], False
            logger.info("Matched existing contractor", contractor_id=contractor.id, vendor_name=extracted.vendor_name)
        else:
            contractor = await self.gateway.contractors.create(
                ContractorPatch(
                    name=extracted.vendor_name,
                    email=extracted.vendor_email,
                    phone=extracted.vendor_phone,
                    description=AUTO_CONTRACTOR_DESCRIPTION,
                    contract_value=0,
                ),
                user_id=user.id,
            )
            created = True
            logger.info("Created contractor from invoice", contractor_id=contractor.id, vendor_name=extracted.vendor_name)

        if not await self.gateway.project_contractors.is_linked(project_id, contractor.id):
            await self.gateway.project_contractors.link(project_id, contractor.id)
            logger.info("Associated contractor with project", project_id=project_id, contractor_id=contractor.id)

        return contractor, created

    def _step(self, step: IngestionStep, project_id: UUID) -> "_PipelineStep":
        return _PipelineStep(step, project_id)


class _PipelineStep:
    """Runs one step and converts its failure into a PipelineError."""

    def __init__(self, step: IngestionStep, project_id: UUID):
        self.step = step
        self.project_id = project_id

    async def __aenter__(self) -> "_PipelineStep":
        logger.debug(f"Ingestion step: {self.step.value}", project_id=self.project_id)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        if exc is None or not isinstance(exc, Exception):
            return False

        # storage and extraction failures already carry a message meant for the caller
        if isinstance(exc, (StorageError, ExtractionError)):
            message = exc.message
        else:
            message = STEP_FAILURE_MESSAGES[self.step]
        logger.error(
            f"Invoice ingestion failed at {self.step.value}",
            project_id=self.project_id,
            step=self.step.value,
            error_type=type(exc).__name__,
            error=str(exc),
        )
        raise PipelineError(message, step=self.step.value) from exc

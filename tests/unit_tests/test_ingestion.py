"""Tests for the invoice ingestion pipeline."""

from datetime import date
from datetime import timedelta
from uuid import uuid4

import pytest

from ledger_api.errors import ExtractionError
from ledger_api.errors import GatewayError
from ledger_api.errors import NotFoundError
from ledger_api.errors import PipelineError
from ledger_api.errors import StorageError
from ledger_api.errors import ValidationFailed
from ledger_api.ledger.models import CurrentUser
from ledger_api.services.ingestion import AUTO_CONTRACTOR_DESCRIPTION
from ledger_api.services.ingestion import InvoiceIngestionPipeline

PDF = b"%PDF-1.7 invoice"


@pytest.fixture
def user():
    return CurrentUser(id=uuid4(), email="owner@example.com")


@pytest.fixture
def project(mock_gateway, make_project):
    project = make_project()
    mock_gateway.projects.get.return_value = project
    return project


@pytest.fixture
def pipeline(mock_gateway, mock_storage, mock_extraction):
    return InvoiceIngestionPipeline(mock_gateway, mock_storage, mock_extraction, max_upload_mb=10, due_days=30)


@pytest.fixture
def created_invoice(mock_gateway, project, make_invoice):
    def _create(project_id, contractor_id, patch):
        return make_invoice(project_id, contractor_id, amount=patch.amount, invoice_number=patch.invoice_number)

    mock_gateway.invoices.create.side_effect = _create


class TestIngestionSuccess:
    """Tests for a complete ingestion run."""

    @pytest.mark.asyncio
    async def test_new_vendor_creates_contractor(
        self, pipeline, mock_gateway, mock_storage, project, user, make_contractor, created_invoice
    ):
        """An unknown vendor becomes a contractor linked to the project."""
        new_contractor = make_contractor(name="Acme Plumbing", contract_value=0)
        mock_gateway.contractors.create.return_value = new_contractor

        result = await pipeline.run(project.id, "March invoice.pdf", "application/pdf", PDF, user)

        assert result.contractor_created is True
        assert result.contractor == new_contractor
        patch = mock_gateway.contractors.create.call_args.args[0]
        assert patch.name == "Acme Plumbing"
        assert patch.email == "billing@acme.test"
        assert patch.description == AUTO_CONTRACTOR_DESCRIPTION
        assert patch.contract_value == 0
        mock_gateway.project_contractors.link.assert_awaited_once_with(project.id, new_contractor.id)

        path = mock_storage.put.call_args.args[0]
        assert path.startswith(f"auto/{project.id}/")
        assert path.endswith("_March_invoice.pdf")
        assert result.file_url == f"https://storage.test/public/{path}"

    @pytest.mark.asyncio
    async def test_invoice_is_pending_and_due_in_30_days(
        self, pipeline, mock_gateway, project, user, make_contractor, created_invoice
    ):
        mock_gateway.contractors.find_by_name.return_value = [make_contractor(name="ACME PLUMBING")]

        await pipeline.run(project.id, "a.pdf", "application/pdf", PDF, user)

        project_id, _, patch = mock_gateway.invoices.create.call_args.args
        assert project_id == project.id
        assert patch.invoice_number == "INV-42"
        assert patch.amount == 1250.0
        assert patch.status == "pending"
        assert patch.due_date == date.today() + timedelta(days=30)
        assert patch.file_url.startswith("https://storage.test/public/auto/")

    @pytest.mark.asyncio
    async def test_existing_vendor_matched_oldest_first(
        self, pipeline, mock_gateway, project, user, make_contractor, created_invoice
    ):
        oldest = make_contractor(name="acme plumbing")
        newer = make_contractor(name="Acme Plumbing")
        mock_gateway.contractors.find_by_name.return_value = [oldest, newer]

        result = await pipeline.run(project.id, "a.pdf", "application/pdf", PDF, user)

        assert result.contractor_created is False
        assert result.contractor == oldest
        mock_gateway.contractors.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_already_linked_contractor_not_linked_again(
        self, pipeline, mock_gateway, project, user, make_contractor, created_invoice
    ):
        mock_gateway.contractors.find_by_name.return_value = [make_contractor()]
        mock_gateway.project_contractors.is_linked.return_value = True

        await pipeline.run(project.id, "a.pdf", "application/pdf", PDF, user)

        mock_gateway.project_contractors.link.assert_not_called()

    @pytest.mark.asyncio
    async def test_uploaded_bytes_are_transcribed(
        self, pipeline, mock_gateway, mock_extraction, project, user, make_contractor, created_invoice
    ):
        mock_gateway.contractors.find_by_name.return_value = []
        mock_gateway.contractors.create.return_value = make_contractor(name="Acme Plumbing")

        await pipeline.run(project.id, "a.pdf", "application/pdf", PDF, user)

        mock_extraction.transcribe_document.assert_awaited_once_with(PDF, "application/pdf")
        mock_extraction.extract_invoice_fields.assert_awaited_once_with("INVOICE 42 Acme Plumbing total 1,250.00")


class TestIngestionRejected:
    """Uploads rejected before the first step."""

    @pytest.mark.asyncio
    async def test_non_pdf_rejected(self, pipeline, mock_storage, project, user):
        with pytest.raises(ValidationFailed):
            await pipeline.run(project.id, "a.png", "image/png", b"png", user)

        mock_storage.put.assert_not_called()

    @pytest.mark.asyncio
    async def test_oversized_rejected(self, pipeline, mock_storage, project, user):
        with pytest.raises(ValidationFailed, match="10MB"):
            await pipeline.run(project.id, "a.pdf", "application/pdf", b"0" * (10 * 1024 * 1024 + 1), user)

        mock_storage.put.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_project(self, pipeline, mock_storage, user):
        with pytest.raises(NotFoundError):
            await pipeline.run(uuid4(), "a.pdf", "application/pdf", PDF, user)

        mock_storage.put.assert_not_called()


class TestIngestionStepFailures:
    """A failing step aborts the run and names itself."""

    @pytest.mark.asyncio
    async def test_upload_failure(self, pipeline, mock_storage, mock_extraction, project, user):
        mock_storage.put.side_effect = StorageError("Failed to upload file")

        with pytest.raises(PipelineError) as exc_info:
            await pipeline.run(project.id, "a.pdf", "application/pdf", PDF, user)

        assert exc_info.value.step == "upload"
        assert exc_info.value.message == "Failed to upload file"
        mock_extraction.transcribe_document.assert_not_called()

    @pytest.mark.asyncio
    async def test_extraction_failure_keeps_upload(self, pipeline, mock_gateway, mock_storage, mock_extraction, project, user):
        mock_extraction.extract_invoice_fields.side_effect = ExtractionError("Failed to process invoice data")

        with pytest.raises(PipelineError) as exc_info:
            await pipeline.run(project.id, "a.pdf", "application/pdf", PDF, user)

        assert exc_info.value.step == "extract"
        mock_storage.put.assert_awaited_once()
        mock_storage.remove.assert_not_called()
        mock_gateway.contractors.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_contractor_failure_uses_step_message(self, pipeline, mock_gateway, project, user):
        mock_gateway.contractors.create.side_effect = GatewayError("Database error on contractors: boom")

        with pytest.raises(PipelineError) as exc_info:
            await pipeline.run(project.id, "a.pdf", "application/pdf", PDF, user)

        assert exc_info.value.step == "resolve_contractor"
        assert exc_info.value.message == "Failed to find or create contractor"
        mock_gateway.invoices.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_invoice_failure_keeps_new_contractor(self, pipeline, mock_gateway, project, user, make_contractor):
        mock_gateway.contractors.create.return_value = make_contractor()
        mock_gateway.invoices.create.side_effect = GatewayError("Database error on invoices: boom")

        with pytest.raises(PipelineError) as exc_info:
            await pipeline.run(project.id, "a.pdf", "application/pdf", PDF, user)

        assert exc_info.value.step == "create_invoice"
        assert exc_info.value.message == "Failed to create invoice"
        mock_gateway.contractors.delete.assert_not_called()

"""
Invoice Repository
"""

from typing import List
from typing import Optional
from uuid import UUID

from ledger_api.gateway.repository_base import BaseRepository
from ledger_api.ledger.models import Invoice
from ledger_api.ledger.patches import InvoicePatch


class InvoiceRepository(BaseRepository):
    model = Invoice
    columns = frozenset(
        {"project_id", "contractor_id", "invoice_number", "description", "amount", "file_url", "status", "due_date"}
    )

    def __init__(self, pool):
        super().__init__(pool, "invoices")

    async def create(self, project_id: UUID, contractor_id: UUID, patch: InvoicePatch) -> Invoice:
        fields = patch.to_fields()
        fields.update(project_id=project_id, contractor_id=contractor_id)
        return await self.insert(fields)

    async def update_from_patch(self, invoice_id: UUID, patch: InvoicePatch) -> Optional[Invoice]:
        return await self.update(invoice_id, patch.to_fields())

    async def list_for_project(self, project_id: UUID) -> List[Invoice]:
        return await self.list({"project_id": project_id})

    async def list_for_contractor(self, contractor_id: UUID) -> List[Invoice]:
        return await self.list({"contractor_id": contractor_id})

    async def list_all(self) -> List[Invoice]:
        return await self.list()

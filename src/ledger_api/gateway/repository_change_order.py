"""
Change Order Repository
"""

from typing import List
from typing import Optional
from uuid import UUID

from ledger_api.gateway.repository_base import BaseRepository
from ledger_api.ledger.models import ChangeOrder
from ledger_api.ledger.patches import ChangeOrderPatch


class ChangeOrderRepository(BaseRepository):
    model = ChangeOrder
    columns = frozenset({"project_id", "contractor_id", "description", "project_amount", "contractor_amount", "status"})

    def __init__(self, pool):
        super().__init__(pool, "change_orders")

    async def create(self, project_id: UUID, contractor_id: UUID, patch: ChangeOrderPatch) -> ChangeOrder:
        fields = patch.to_fields()
        fields.update(project_id=project_id, contractor_id=contractor_id)
        return await self.insert(fields)

    async def update_from_patch(self, change_order_id: UUID, patch: ChangeOrderPatch) -> Optional[ChangeOrder]:
        return await self.update(change_order_id, patch.to_fields())

    async def list_for_project(self, project_id: UUID) -> List[ChangeOrder]:
        return await self.list({"project_id": project_id})

    async def list_for_contractor(self, contractor_id: UUID) -> List[ChangeOrder]:
        return await self.list({"contractor_id": contractor_id})

    async def list_all(self) -> List[ChangeOrder]:
        return await self.list()

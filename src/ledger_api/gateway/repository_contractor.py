"""
Contractor Repository

Contractors and the project <-> contractor link table.
"""

from typing import List
from typing import Optional
from uuid import UUID

from ledger_api.gateway.repository_base import BaseRepository
from ledger_api.ledger.models import Contractor
from ledger_api.ledger.models import ProjectContractor
from ledger_api.ledger.patches import ContractorPatch


class ContractorRepository(BaseRepository):
    """Contractor repository with domain-specific queries."""

    model = Contractor
    columns = frozenset({"name", "email", "phone", "description", "contract_value", "user_id"})

    def __init__(self, pool):
        super().__init__(pool, "contractors")

    async def create(self, patch: ContractorPatch, user_id: Optional[UUID]) -> Contractor:
        fields = patch.to_fields()
        fields["user_id"] = user_id
        return await self.insert(fields)

    async def update_from_patch(self, contractor_id: UUID, patch: ContractorPatch) -> Optional[Contractor]:
        return await self.update(contractor_id, patch.to_fields())

    async def find_by_name(self, name: str) -> List[Contractor]:
        """Contractors whose name equals `name` ignoring case, oldest first."""
        async with self.connection() as conn:
            rows = await conn.fetch(
                f"SELECT * FROM {self.qualified_table} WHERE lower(name) = lower($1) ORDER BY created_at, id",
                name,
            )
        return [self._to_model(row) for row in rows]

    async def list_for_project(self, project_id: UUID) -> List[Contractor]:
        """Contractors linked to a project, in link order."""
        async with self.connection() as conn:
            rows = await conn.fetch(
                f"""
                SELECT c.* FROM {self.qualified_table} c
                JOIN ledger.project_contractors pc ON pc.contractor_id = c.id
                WHERE pc.project_id = $1
                ORDER BY pc.created_at, c.id
                """,
                project_id,
            )
        return [self._to_model(row) for row in rows]


class ProjectContractorRepository(BaseRepository):
    """Link rows between projects and contractors."""

    model = ProjectContractor
    columns = frozenset({"project_id", "contractor_id"})

    def __init__(self, pool):
        super().__init__(pool, "project_contractors")

    async def link(self, project_id: UUID, contractor_id: UUID) -> ProjectContractor:
        return await self.insert({"project_id": project_id, "contractor_id": contractor_id})

    async def is_linked(self, project_id: UUID, contractor_id: UUID) -> bool:
        links = await self.list({"project_id": project_id, "contractor_id": contractor_id})
        return bool(links)

    async def unlink(self, project_id: UUID, contractor_id: UUID) -> bool:
        async with self.connection() as conn:
            result = await conn.execute(
                f"DELETE FROM {self.qualified_table} WHERE project_id = $1 AND contractor_id = $2",
                project_id,
                contractor_id,
            )
        return not result.endswith(" 0")

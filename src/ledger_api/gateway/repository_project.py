"""
Project Repository

Repository for projects and their archived flag.
"""

from typing import List
from typing import Optional
from uuid import UUID

from ledger_api.gateway.repository_base import BaseRepository
from ledger_api.ledger.enums import ProjectStatus
from ledger_api.ledger.models import Project
from ledger_api.ledger.patches import ProjectPatch


class ProjectRepository(BaseRepository):
    """Project repository with domain-specific queries."""

    model = Project
    columns = frozenset({"name", "description", "status", "contract_value", "archived", "user_id"})

    def __init__(self, pool):
        super().__init__(pool, "projects")

    async def create(self, patch: ProjectPatch, user_id: UUID) -> Project:
        fields = patch.to_fields()
        fields["user_id"] = user_id
        fields["archived"] = fields.get("status") == ProjectStatus.COMPLETED.value
        return await self.insert(fields)

    async def update_from_patch(self, project_id: UUID, patch: ProjectPatch) -> Optional[Project]:
        return await self.update(project_id, patch.to_fields())

    async def set_archived(self, project_id: UUID, archived: bool) -> Optional[Project]:
        return await self.update(project_id, {"archived": archived})

    async def resync_archived(self) -> int:
        """
        Force archived = (status == 'completed') on every project.

        Returns:
            Number of projects whose flag changed
        """
        async with self.connection() as conn:
            result = await conn.execute(
                f"""
                UPDATE {self.qualified_table}
                SET archived = (status = $1)
                WHERE archived IS DISTINCT FROM (status = $1)
                """,
                ProjectStatus.COMPLETED.value,
            )
        return int(result.split()[-1])

    async def list_by_archived(self, archived: bool) -> List[Project]:
        return await self.list({"archived": archived}, order_by="created_at", descending=True)

    async def list_for_contractor(self, contractor_id: UUID) -> List[Project]:
        """Projects linked to a contractor, in link order."""
        async with self.connection() as conn:
            rows = await conn.fetch(
                f"""
                SELECT p.* FROM {self.qualified_table} p
                JOIN ledger.project_contractors pc ON pc.project_id = p.id
                WHERE pc.contractor_id = $1
                ORDER BY pc.created_at, p.id
                """,
                contractor_id,
            )
        return [self._to_model(row) for row in rows]

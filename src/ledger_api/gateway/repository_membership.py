"""
Membership Repositories

Project members, project invitations and the user profiles they reference.
"""

from datetime import datetime
from typing import List
from typing import Optional
from uuid import UUID

from ledger_api.gateway.repository_base import BaseRepository
from ledger_api.ledger.models import ProjectInvitation
from ledger_api.ledger.models import ProjectMember
from ledger_api.ledger.models import UserProfile


class MemberRepository(BaseRepository):
    model = ProjectMember
    columns = frozenset({"project_id", "user_id", "role"})

    def __init__(self, pool):
        super().__init__(pool, "project_members")

    async def list_for_project(self, project_id: UUID) -> List[ProjectMember]:
        """
        Members of a project with their email, ordered by role ascending.

        Members without a user profile are left out.
        """
        async with self.connection() as conn:
            rows = await conn.fetch(
                f"""
                SELECT m.*, u.email FROM {self.qualified_table} m
                JOIN ledger.user_profiles u ON u.id = m.user_id
                WHERE m.project_id = $1
                ORDER BY m.role ASC, m.created_at
                """,
                project_id,
            )
        return [self._to_model(row) for row in rows]

    async def add(self, project_id: UUID, user_id: UUID, role: str) -> ProjectMember:
        """Insert a membership; raises AlreadyExistsError when the user is already a member."""
        return await self.insert({"project_id": project_id, "user_id": user_id, "role": role})


class InvitationRepository(BaseRepository):
    model = ProjectInvitation
    columns = frozenset({"project_id", "email", "role", "token", "accepted", "expires_at"})

    def __init__(self, pool):
        super().__init__(pool, "project_invitations")

    async def find_pending(self, project_id: UUID, email: str, now: datetime) -> Optional[ProjectInvitation]:
        """Unaccepted invitation for (project, email) that expires after `now`."""
        async with self.connection() as conn:
            row = await conn.fetchrow(
                f"""
                SELECT * FROM {self.qualified_table}
                WHERE project_id = $1 AND email = $2 AND accepted = false AND expires_at > $3
                """,
                project_id,
                email,
                now,
            )
        return self._to_model(row)

    async def upsert(
        self,
        project_id: UUID,
        email: str,
        role: str,
        token: str,
        expires_at: datetime,
    ) -> ProjectInvitation:
        """Create the invitation, or reset the existing (project, email) row with a new token."""
        async with self.connection() as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO {self.qualified_table} (project_id, email, role, token, accepted, expires_at)
                VALUES ($1, $2, $3, $4, false, $5)
                ON CONFLICT (project_id, email) DO UPDATE
                SET role = EXCLUDED.role,
                    token = EXCLUDED.token,
                    accepted = false,
                    expires_at = EXCLUDED.expires_at
                RETURNING *
                """,
                project_id,
                email,
                role,
                token,
                expires_at,
            )
        return self._to_model(row)

    async def get_by_token(self, token: str) -> Optional[ProjectInvitation]:
        async with self.connection() as conn:
            row = await conn.fetchrow(f"SELECT * FROM {self.qualified_table} WHERE token = $1", token)
        return self._to_model(row)

    async def mark_accepted(self, invitation_id: UUID) -> Optional[ProjectInvitation]:
        return await self.update(invitation_id, {"accepted": True})


class UserProfileRepository(BaseRepository):
    model = UserProfile
    columns = frozenset({"email", "name"})

    def __init__(self, pool):
        super().__init__(pool, "user_profiles")

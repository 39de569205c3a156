"""
Project Members

Member list, invitations and the join flow of a project.
"""

from typing import List
from typing import Optional
from uuid import UUID

from loguru import logger
from pydantic import BaseModel

from ledger_api.errors import LedgerError
from ledger_api.errors import NotFoundError
from ledger_api.errors import PermissionDenied
from ledger_api.gateway import LedgerGateway
from ledger_api.ledger.enums import MemberRole
from ledger_api.ledger.invitations import accept_invitation
from ledger_api.ledger.invitations import build_join_link
from ledger_api.ledger.invitations import invite_member
from ledger_api.ledger.invitations import is_owner
from ledger_api.ledger.models import CurrentUser
from ledger_api.ledger.models import ProjectInvitation
from ledger_api.ledger.models import ProjectMember
from ledger_api.notifications.invitation_email import InvitationRecord
from ledger_api.notifications.invitation_email import SmtpMailer
from ledger_api.notifications.invitation_email import send_invitation_notification
from ledger_api.services.projects import get_project_or_404
from ledger_api.settings import Settings

INVITE_SUCCESS_MESSAGE = "Invitation link generated successfully! Share it with your colleague."


class MembersView(BaseModel):
    members: List[ProjectMember]
    is_owner: bool


class InviteOutcome(BaseModel):
    invitation: ProjectInvitation
    created: bool
    join_link: str
    email_sent: bool


async def list_members(gateway: LedgerGateway, project_id: UUID, user: CurrentUser) -> MembersView:
    """Members ordered by role, and whether the caller owns the project."""
    await get_project_or_404(gateway, project_id)
    members = await gateway.members.list_for_project(project_id)
    return MembersView(members=members, is_owner=is_owner(members, user.id))


async def invite_to_project(
    gateway: LedgerGateway,
    settings: Settings,
    project_id: UUID,
    email: str,
    role: str,
    inviter: CurrentUser,
    mailer: Optional[SmtpMailer] = None,
) -> InviteOutcome:
    """
    Issue an invitation and email the join link when a new invitation was created.

    A reused pending invitation is returned without sending another email. An email failure does
    not undo the invitation; the caller gets the join link and `email_sent=False`.
    """
    await get_project_or_404(gateway, project_id)
    invitation, created = await invite_member(
        gateway.members,
        gateway.invitations,
        project_id=project_id,
        email=email,
        role=role,
        inviter=inviter,
        expiry_days=settings.invitation_expiry_days,
    )

    email_sent = False
    if created and mailer is not None and mailer.configured:
        record = InvitationRecord(
            project_id=invitation.project_id,
            email=invitation.email,
            token=invitation.token,
            role=invitation.role,
        )
        try:
            await send_invitation_notification(gateway, mailer, settings, record)
            email_sent = True
        except LedgerError as e:
            logger.warning("Invitation email not sent", invitation_id=invitation.id, error=e.message)

    return InviteOutcome(
        invitation=invitation,
        created=created,
        join_link=build_join_link(settings.public_site_url, invitation.token),
        email_sent=email_sent,
    )


async def remove_member(gateway: LedgerGateway, project_id: UUID, member_id: UUID, user: CurrentUser) -> None:
    """
    Remove a member. Only owners may remove members, and the owner row itself is never removed.
    """
    members = await gateway.members.list_for_project(project_id)
    if not is_owner(members, user.id):
        raise PermissionDenied("Only project owners can remove members")

    member = next((m for m in members if m.id == member_id), None)
    if member is None:
        raise NotFoundError("Member not found")
    if member.role == MemberRole.OWNER.value:
        raise PermissionDenied("The project owner cannot be removed")

    if not await gateway.members.delete(member_id):
        raise NotFoundError("Member not found")
    logger.info("Member removed", project_id=project_id, member_id=member_id, user_id=member.user_id)


async def join_project(gateway: LedgerGateway, token: Optional[str], user: CurrentUser) -> ProjectInvitation:
    return await accept_invitation(gateway.members, gateway.invitations, token, user)

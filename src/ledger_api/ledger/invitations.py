"""
Project Invitations

Invite and accept transitions of a project invitation:

    none ──invite──> pending ──accept──> accepted
                        │
                        └──(expires_at passes)──> expired ──invite──> pending (new token)

Re-inviting while an invitation is pending returns it unchanged. There is no cancel operation.
"""

import uuid
from datetime import datetime
from datetime import timedelta
from datetime import timezone
from typing import Optional
from typing import Sequence
from uuid import UUID

from loguru import logger

from ledger_api.errors import AlreadyExistsError
from ledger_api.errors import InvitationError
from ledger_api.errors import PermissionDenied
from ledger_api.ledger.enums import InvitationState
from ledger_api.ledger.enums import MemberRole
from ledger_api.ledger.models import CurrentUser
from ledger_api.ledger.models import ProjectInvitation
from ledger_api.ledger.models import ProjectMember

DEFAULT_EXPIRY_DAYS = 7

MSG_INVALID_LINK = "Invalid invitation link"
MSG_INVALID_OR_EXPIRED = "Invalid or expired invitation"
MSG_ALREADY_ACCEPTED = "This invitation has already been accepted"
MSG_EXPIRED = "This invitation has expired"
MSG_ALREADY_MEMBER = "You are already a member of this project"
MSG_INVITEE_ALREADY_MEMBER = "This user is already a member of the project."


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_token() -> str:
    return str(uuid.uuid4())


def build_join_link(site_url: str, token: str) -> str:
    return f"{site_url.rstrip('/')}/join-project?token={token}"


def invitation_state(invitation: Optional[ProjectInvitation], now: Optional[datetime] = None) -> InvitationState:
    if invitation is None:
        return InvitationState.NONE
    if invitation.accepted:
        return InvitationState.ACCEPTED
    if invitation.expires_at < (now or utcnow()):
        return InvitationState.EXPIRED
    return InvitationState.PENDING


def is_owner(members: Sequence[ProjectMember], user_id: UUID) -> bool:
    return any(member.user_id == user_id and member.role == MemberRole.OWNER.value for member in members)


async def invite_member(
    members_repo,
    invitations_repo,
    project_id: UUID,
    email: str,
    role: str,
    inviter: CurrentUser,
    expiry_days: int = DEFAULT_EXPIRY_DAYS,
    now: Optional[datetime] = None,
) -> tuple[ProjectInvitation, bool]:
    """
    Issue (or reuse) an invitation for `email` to join `project_id`.

    Args:
        members_repo: MemberRepository
        invitations_repo: InvitationRepository
        project_id: Project the invitee joins
        email: Invitee email, compared case-sensitively
        role: Role granted on acceptance
        inviter: Caller; must own the project
        expiry_days: Lifetime of a new invitation
        now: Current time (tests)

    Returns:
        (invitation, created) where created is False when a pending invitation was reused

    Raises:
        PermissionDenied: inviter is not an owner of the project
        InvitationError: the email already belongs to a member
    """
    now = now or utcnow()
    members = await members_repo.list_for_project(project_id)

    if not is_owner(members, inviter.id):
        raise PermissionDenied("Only project owners can invite members")

    if any(member.email == email for member in members):
        raise InvitationError(MSG_INVITEE_ALREADY_MEMBER)

    existing = await invitations_repo.find_pending(project_id, email, now)
    if existing is not None:
        logger.info("Reusing pending invitation", project_id=project_id, invitation_id=existing.id)
        return existing, False

    invitation = await invitations_repo.upsert(
        project_id=project_id,
        email=email,
        role=role,
        token=generate_token(),
        expires_at=now + timedelta(days=expiry_days),
    )
    logger.info("Invitation issued", project_id=project_id, invitation_id=invitation.id, role=role)
    return invitation, True


async def accept_invitation(
    members_repo,
    invitations_repo,
    token: Optional[str],
    user: CurrentUser,
    now: Optional[datetime] = None,
) -> ProjectInvitation:
    """
    Accept the invitation identified by `token` on behalf of `user`.

    Returns:
        The accepted invitation (its project_id is where the user lands)

    Raises:
        InvitationError: with one of the fixed invitation messages; no membership is written
    """
    if not token:
        raise InvitationError(MSG_INVALID_LINK)

    invitation = await invitations_repo.get_by_token(token)
    state = invitation_state(invitation, now)

    if state == InvitationState.NONE:
        raise InvitationError(MSG_INVALID_OR_EXPIRED)
    if state == InvitationState.ACCEPTED:
        raise InvitationError(MSG_ALREADY_ACCEPTED)
    if state == InvitationState.EXPIRED:
        raise InvitationError(MSG_EXPIRED)
    if user.email != invitation.email:
        raise InvitationError(f"Please sign in with {invitation.email} to accept this invitation")

    try:
        await members_repo.add(project_id=invitation.project_id, user_id=user.id, role=invitation.role)
    except AlreadyExistsError as e:
        raise InvitationError(MSG_ALREADY_MEMBER) from e

    accepted = await invitations_repo.mark_accepted(invitation.id)
    logger.success(
        "Invitation accepted",
        project_id=invitation.project_id,
        invitation_id=invitation.id,
        user_id=user.id,
    )
    return accepted

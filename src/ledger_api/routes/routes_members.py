"""
Member and Invitation API Routes

Member list, invite by email, remove member, and the invitation email webhook.
"""

from uuid import UUID

from fastapi import APIRouter
from fastapi import Depends
from fastapi import status
from fastapi.responses import JSONResponse
from loguru import logger

from ledger_api.dependencies import get_current_user
from ledger_api.dependencies import get_gateway
from ledger_api.dependencies import get_mailer
from ledger_api.dependencies import get_settings
from ledger_api.dependencies import require_verified_token
from ledger_api.errors import GatewayError
from ledger_api.errors import LedgerError
from ledger_api.gateway import LedgerGateway
from ledger_api.ledger.models import CurrentUser
from ledger_api.notifications.invitation_email import SUCCESS_MESSAGE
from ledger_api.notifications.invitation_email import SmtpMailer
from ledger_api.notifications.invitation_email import send_invitation_notification
from ledger_api.schemas.schemas import InvitationWebhookRequest
from ledger_api.schemas.schemas import InviteRequest
from ledger_api.schemas.schemas import InviteResponse
from ledger_api.schemas.schemas import MembersResponse
from ledger_api.schemas.schemas import MessageResponse
from ledger_api.schemas.schemas import NotificationResponse
from ledger_api.services import members as member_service
from ledger_api.settings import Settings

ROUTER_MEMBERS = APIRouter(tags=["Members"])


@ROUTER_MEMBERS.get(
    "/projects/{project_id}/members",
    response_model=MembersResponse,
    summary="List project members",
    description="Members ordered by role ascending, plus whether the caller owns the project.",
)
async def list_members(
    project_id: UUID,
    gateway: LedgerGateway = Depends(get_gateway),
    user: CurrentUser = Depends(get_current_user),
):
    try:
        view = await member_service.list_members(gateway, project_id, user)
    except GatewayError as e:
        raise GatewayError("Failed to load project members") from e
    return MembersResponse(Message=f"Found {len(view.members)} member(s)", IsOwner=view.is_owner, Members=view.members)


@ROUTER_MEMBERS.post(
    "/projects/{project_id}/invitations",
    response_model=InviteResponse,
    summary="Invite a user to the project",
    responses={
        400: {"description": "The user is already a member"},
        403: {"description": "Caller is not an owner of the project"},
    },
)
async def invite_member(
    project_id: UUID,
    body: InviteRequest,
    gateway: LedgerGateway = Depends(get_gateway),
    settings: Settings = Depends(get_settings),
    mailer: SmtpMailer = Depends(get_mailer),
    user: CurrentUser = Depends(get_current_user),
):
    """
    Invite `email` with `role`.

    A pending, unexpired invitation for the same email is returned unchanged; otherwise a new
    token valid for `invitation_expiry_days` days is issued and emailed.
    """
    outcome = await member_service.invite_to_project(
        gateway,
        settings,
        project_id,
        email=str(body.email),
        role=body.role,
        inviter=user,
        mailer=mailer,
    )
    return InviteResponse(
        Message=member_service.INVITE_SUCCESS_MESSAGE,
        InvitationId=outcome.invitation.id,
        JoinLink=outcome.join_link,
        ExpiresAt=outcome.invitation.expires_at,
        Created=outcome.created,
        EmailSent=outcome.email_sent,
    )


@ROUTER_MEMBERS.delete(
    "/projects/{project_id}/members/{member_id}",
    response_model=MessageResponse,
    summary="Remove a member from the project",
    responses={403: {"description": "Caller is not an owner, or the member is the owner"}},
)
async def remove_member(
    project_id: UUID,
    member_id: UUID,
    gateway: LedgerGateway = Depends(get_gateway),
    user: CurrentUser = Depends(get_current_user),
):
    try:
        await member_service.remove_member(gateway, project_id, member_id, user)
    except GatewayError as e:
        raise GatewayError("Failed to remove member") from e
    return MessageResponse(Message="Member removed successfully")


@ROUTER_MEMBERS.post(
    "/notifications/invitation",
    response_model=NotificationResponse,
    summary="Send the invitation email for a new invitation row",
    description="Target of the row-insert webhook on project_invitations.",
    dependencies=[Depends(require_verified_token)],
    responses={400: {"description": "Project or inviter not found, or the email could not be sent"}},
)
async def send_invitation_email(
    body: InvitationWebhookRequest,
    gateway: LedgerGateway = Depends(get_gateway),
    settings: Settings = Depends(get_settings),
    mailer: SmtpMailer = Depends(get_mailer),
):
    try:
        await send_invitation_notification(gateway, mailer, settings, body.record)
    except LedgerError as e:
        logger.error("Error in send-invitation", project_id=body.record.project_id, error=e.message)
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": e.message, "details": type(e).__name__},
        )

    return NotificationResponse(success=True, message=SUCCESS_MESSAGE)

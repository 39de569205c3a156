"""
Join Link and Session Routes

`/join-project` is the target of the emailed join link and lives outside the /api prefix.
`/api/session` reports the caller's session and the route-guard decision for a client page.
"""

from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter
from fastapi import Depends
from fastapi import Query
from fastapi import status
from fastapi.responses import RedirectResponse
from fastapi.security import HTTPAuthorizationCredentials
from loguru import logger

from ledger_api.dependencies import BEARER_SCHEME
from ledger_api.dependencies import decode_access_token
from ledger_api.dependencies import get_gateway
from ledger_api.dependencies import get_session
from ledger_api.dependencies import get_settings
from ledger_api.errors import NotAuthenticated
from ledger_api.gateway import LedgerGateway
from ledger_api.ledger.session import SessionContext
from ledger_api.ledger.session import login_redirect
from ledger_api.schemas.schemas import SessionResponse
from ledger_api.services import members as member_service
from ledger_api.settings import Settings

ROUTER_JOIN = APIRouter(tags=["Join"])
ROUTER_SESSION = APIRouter(tags=["Session"])

JOIN_PATH = "/join-project"


@ROUTER_JOIN.get(
    JOIN_PATH,
    summary="Accept a project invitation",
    response_class=RedirectResponse,
    status_code=status.HTTP_307_TEMPORARY_REDIRECT,
    responses={
        307: {"description": "To sign-in when signed out, else to the joined project"},
        400: {"description": "Invalid, expired, already accepted or addressed to another email"},
    },
)
async def join_project(
    token: Optional[str] = Query(None),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(BEARER_SCHEME),
    gateway: LedgerGateway = Depends(get_gateway),
    settings: Settings = Depends(get_settings),
):
    """
    Accept the invitation behind `token` for the signed-in caller.

    Signed-out callers (or callers with an unusable token) are sent to sign-in with a return URL
    pointing back here.
    """
    session = SessionContext()
    if credentials is not None:
        try:
            session.sign_in(decode_access_token(credentials.credentials, settings))
        except NotAuthenticated:
            logger.info("Join link opened with an unusable token; redirecting to sign-in")

    if not session.is_authenticated:
        return_to = f"{JOIN_PATH}?{urlencode({'token': token})}" if token else JOIN_PATH
        return RedirectResponse(login_redirect(return_to), status_code=status.HTTP_307_TEMPORARY_REDIRECT)

    invitation = await member_service.join_project(gateway, token, session.user)
    return RedirectResponse(f"/projects/{invitation.project_id}", status_code=status.HTTP_307_TEMPORARY_REDIRECT)


@ROUTER_SESSION.get(
    "/session",
    response_model=SessionResponse,
    summary="Session state and route-guard decision",
)
async def get_session_state(
    path: str = Query("/", description="Client page the caller is about to open"),
    session: SessionContext = Depends(get_session),
):
    decision = session.decide(path)
    user = session.user
    return SessionResponse(
        Authenticated=session.is_authenticated,
        UserId=user.id if user else None,
        Email=user.email if user else None,
        Path=decision.path,
        Allowed=decision.allowed,
        RedirectTo=decision.redirect_to,
    )

"""FastAPI dependencies for accessing app state and the caller's identity."""

from typing import Optional
from uuid import UUID

from fastapi import Depends
from fastapi import Request
from fastapi.security import HTTPAuthorizationCredentials
from fastapi.security import HTTPBearer
from jose import JWTError
from jose import jwt
from loguru import logger

from ledger_api.errors import NotAuthenticated
from ledger_api.extraction.extraction_client import ExtractionClient
from ledger_api.gateway import LedgerGateway
from ledger_api.ledger.models import CurrentUser
from ledger_api.ledger.session import SessionContext
from ledger_api.notifications.invitation_email import SmtpMailer
from ledger_api.settings import Settings
from ledger_api.storage.object_storage import ObjectStorageClient

BEARER_SCHEME = HTTPBearer(auto_error=False, description="Access token issued by the auth provider")


def get_settings(request: Request) -> Settings:
    """
    Get application settings from request state.

    Parameters
    ----------
    request : Request
        FastAPI request object

    Returns
    -------
    Settings
        Application settings instance
    """
    return request.app.state.settings


def get_gateway(request: Request) -> LedgerGateway:
    """
    Get the row store gateway over the app's connection pool.

    Parameters
    ----------
    request : Request
        FastAPI request object

    Returns
    -------
    LedgerGateway
        Repositories sharing app.state.db_pool
    """
    return LedgerGateway(request.app.state.db_pool)


def get_storage(settings: Settings = Depends(get_settings)) -> Optional[ObjectStorageClient]:
    """Object storage client, or None when storage is not configured."""
    if not settings.storage_url or not settings.storage_service_key:
        return None
    return ObjectStorageClient(settings.storage_url, settings.storage_service_key, settings.storage_bucket)


def get_extraction_client(settings: Settings = Depends(get_settings)) -> ExtractionClient:
    return ExtractionClient(
        api_url=settings.extraction_api_url,
        api_key=settings.extraction_api_key,
        text_model=settings.extraction_text_model,
        vision_model=settings.extraction_vision_model,
    )


def get_mailer(settings: Settings = Depends(get_settings)) -> SmtpMailer:
    return SmtpMailer.from_settings(settings)


def verify_access_token(token: str, settings: Settings) -> dict:
    """
    Verify signature, expiry and audience of an access token.

    Returns
    -------
    dict
        The token claims

    Raises
    ------
    NotAuthenticated
        The token is malformed, expired or wrongly signed
    """
    options = {"verify_aud": bool(settings.jwt_audience)}
    try:
        claims = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience or None,
            options=options,
        )
    except JWTError as e:
        logger.warning("Access token rejected", error=str(e))
        raise NotAuthenticated("Invalid or expired access token") from e
    return claims


def decode_access_token(token: str, settings: Settings) -> CurrentUser:
    """Verify an access token and build the caller's identity from its `sub` and `email` claims."""
    claims = verify_access_token(token, settings)
    try:
        user_id = UUID(str(claims.get("sub")))
    except ValueError as e:
        raise NotAuthenticated("Access token has no valid subject") from e

    return CurrentUser(id=user_id, email=claims.get("email"), claims=claims)


def get_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(BEARER_SCHEME),
    settings: Settings = Depends(get_settings),
) -> SessionContext:
    """
    Session of the caller. Without a bearer token the session is signed out.

    An invalid token is rejected rather than treated as signed out.
    """
    session = SessionContext()
    if credentials is not None:
        session.sign_in(decode_access_token(credentials.credentials, settings))
    return session


def get_current_user(session: SessionContext = Depends(get_session)) -> CurrentUser:
    """Signed-in caller; 401 when there is none."""
    if not session.is_authenticated:
        raise NotAuthenticated("Not authenticated")
    return session.user


def require_verified_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(BEARER_SCHEME),
    settings: Settings = Depends(get_settings),
) -> dict:
    """
    Any validly signed token, user or service; used by webhook endpoints.

    Returns
    -------
    dict
        The token claims
    """
    if credentials is None:
        raise NotAuthenticated("Not authenticated")
    return verify_access_token(credentials.credentials, settings)

"""
Session Context

The authenticated session of one client and the route-guard decisions that depend on it.
A SessionContext is created once per request from the bearer token, updated by sign-in/sign-out
events, and closed by sign-out; nothing about the session lives in module globals.
"""

from typing import Optional
from urllib.parse import urlencode

from loguru import logger
from pydantic import BaseModel

from ledger_api.ledger.models import CurrentUser

AUTH_PATH = "/auth"
HOME_PATH = "/projects"

# Pages only shown to signed-out visitors
GUEST_ONLY_PATHS = ("/auth", "/reset-password")

# Pages that handle the signed-out case themselves
OPEN_PATHS = ("/join-project",)


class RouteDecision(BaseModel):
    path: str
    allowed: bool
    redirect_to: Optional[str] = None


def login_redirect(return_to: Optional[str] = None) -> str:
    """Sign-in URL that sends the user back to `return_to` afterwards."""
    if not return_to:
        return AUTH_PATH
    return f"{AUTH_PATH}?{urlencode({'returnTo': return_to})}"


class SessionContext:
    """Authenticated session of one client."""

    def __init__(self, user: Optional[CurrentUser] = None):
        self._user = user
        self._closed = False

    @property
    def user(self) -> Optional[CurrentUser]:
        return self._user

    @property
    def is_authenticated(self) -> bool:
        return self._user is not None and not self._closed

    def sign_in(self, user: CurrentUser) -> None:
        if self._closed:
            raise RuntimeError("Session has been signed out")
        self._user = user
        logger.debug("Session signed in", user_id=user.id)

    def sign_out(self) -> None:
        if self._user is not None:
            logger.debug("Session signed out", user_id=self._user.id)
        self._user = None
        self._closed = True

    def decide(self, path: str) -> RouteDecision:
        """
        Route guard for the web client's pages.

        - "/" goes to the project list when signed in, else to sign-in
        - guest-only pages bounce signed-in users to the project list
        - open pages are always allowed
        - everything else requires a signed-in user
        """
        path = path or "/"
        base = path.split("?", 1)[0].rstrip("/") or "/"

        if base == "/":
            target = HOME_PATH if self.is_authenticated else AUTH_PATH
            return RouteDecision(path=path, allowed=False, redirect_to=target)

        if base in GUEST_ONLY_PATHS:
            if self.is_authenticated:
                return RouteDecision(path=path, allowed=False, redirect_to=HOME_PATH)
            return RouteDecision(path=path, allowed=True)

        if base in OPEN_PATHS or self.is_authenticated:
            return RouteDecision(path=path, allowed=True)

        return RouteDecision(path=path, allowed=False, redirect_to=AUTH_PATH)

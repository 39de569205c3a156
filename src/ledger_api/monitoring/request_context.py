"""Request context middleware for logging."""

import json
import time
import uuid
from typing import Any
from typing import Callable
from typing import Optional

from fastapi import Request
from jose import JWTError
from jose import jwt
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware

from ledger_api.monitoring.logger import log_request_info

# Request bodies above this size are summarised instead of logged
MAX_BODY_LOG_SIZE = 10000

# Body fields never written to the logs
REDACTED_FIELDS = {"token", "password", "access_token", "refresh_token"}


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Middleware to capture and log request context information."""

    async def dispatch(self, request: Request, call_next: Callable) -> Any:
        """
        Capture request context and add it to every log line emitted while handling the request.

        Captures:
        - Request ID (from X-Request-ID or generated)
        - Client IP (first X-Forwarded-For hop or direct peer)
        - User identity (unverified `sub`/`email` claims of the bearer token)
        - Request path and method
        - JSON request body for write methods (stored on request.state for error handlers)
        """
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        client_ip = self._get_client_ip(request)
        user_identity = self._get_user_identity(request)
        request_path = f"{request.method} {request.url.path}"

        request.state.request_body = None
        if request.method in ("POST", "PUT", "PATCH", "DELETE"):
            request.state.request_body = await self._get_request_body(request)

        with logger.contextualize(
            request_id=request_id,
            client_ip=client_ip,
            user_identity=user_identity,
            request_path=request_path,
        ):
            log_request_info(request)

            start_time = time.time()
            response = await call_next(request)
            duration_ms = (time.time() - start_time) * 1000

            logger.info(
                "{} {} - {}",
                request.method,
                request.url.path,
                response.status_code,
                event_type="http_request",
                http_method=request.method,
                url_path=str(request.url.path),
                url_query=str(request.query_params) if request.query_params else None,
                content_type=request.headers.get("Content-Type"),
                request_body=request.state.request_body,
                status_code=response.status_code,
                response_time_ms=round(duration_ms, 2),
            )

            response.headers["X-Request-ID"] = request_id
            return response

    async def _get_request_body(self, request: Request) -> Optional[dict]:
        """
        Read the request body for logging.

        Only JSON bodies are parsed; uploads and form posts are summarised by content type and size.

        Returns:
            Parsed (redacted) JSON body, a summary dict, or None when there is no body
        """
        content_type = request.headers.get("Content-Type", "")
        if "application/json" not in content_type.lower():
            length = request.headers.get("Content-Length")
            return {"_content_type": content_type, "_size": length} if length else None

        body = await request.body()
        if not body:
            return None
        if len(body) > MAX_BODY_LOG_SIZE:
            return {"_truncated": True, "_size": len(body)}

        try:
            parsed = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            return {"_error": "Failed to parse request body", "_error_detail": str(e)}

        return redact(parsed)

    def _get_client_ip(self, request: Request) -> str:
        """Get the real client IP address, honouring reverse proxies."""
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            # X-Forwarded-For can contain multiple IPs, take the first one
            return forwarded_for.split(",")[0].strip()

        if request.client:
            return request.client.host

        return "unknown"

    def _get_user_identity(self, request: Request) -> str:
        """
        Get the caller identity for log correlation.

        The token is NOT verified here; verification happens in the auth dependency.
        """
        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return "anonymous"

        try:
            claims = jwt.get_unverified_claims(auth_header[7:])
        except JWTError:
            return "bearer_token:unreadable"

        return claims.get("email") or claims.get("sub") or "bearer_token:anonymous"


def redact(value: Any) -> Any:
    """Mask secret fields at any depth of a parsed JSON body."""
    if isinstance(value, dict):
        return {k: ("***" if k.lower() in REDACTED_FIELDS else redact(v)) for k, v in value.items()}
    if isinstance(value, list):
        return [redact(item) for item in value]
    return value


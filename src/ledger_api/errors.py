"""Error types of the ledger and their FastAPI handlers."""

import pydantic
from fastapi import Request
from fastapi import status
from fastapi.responses import JSONResponse
from loguru import logger

from ledger_api.monitoring.logger import log_response_info

__all__ = [
    "LedgerError",
    "ValidationFailed",
    "GatewayError",
    "AlreadyExistsError",
    "NotFoundError",
    "StorageError",
    "ExtractionError",
    "PipelineError",
    "InvitationError",
    "NotificationError",
    "NotAuthenticated",
    "PermissionDenied",
    "handle_broad_exceptions",
    "handle_ledger_errors",
    "handle_pydantic_validation_errors",
]


class LedgerError(Exception):
    """Base class for every failure surfaced to API callers as a single human-readable message."""

    http_status = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailed(LedgerError):
    """A required field is missing or a value is out of range. Raised before any remote call."""

    http_status = status.HTTP_422_UNPROCESSABLE_CONTENT


class GatewayError(LedgerError):
    """The row store rejected or failed a call."""

    http_status = status.HTTP_502_BAD_GATEWAY


class AlreadyExistsError(GatewayError):
    """Unique constraint violation (SQLSTATE 23505)."""

    http_status = status.HTTP_409_CONFLICT


class NotFoundError(LedgerError):
    http_status = status.HTTP_404_NOT_FOUND


class StorageError(LedgerError):
    """Object storage put failed."""

    http_status = status.HTTP_502_BAD_GATEWAY


class ExtractionError(LedgerError):
    """The extraction API returned an error or unparsable content."""

    http_status = status.HTTP_502_BAD_GATEWAY


class PipelineError(LedgerError):
    """A step of the invoice ingestion pipeline failed; carries the name of the failed step."""

    def __init__(self, message: str, step: str):
        super().__init__(message)
        self.step = step


class InvitationError(LedgerError):
    """Invite or accept rejected with one of the fixed invitation messages."""


class NotificationError(LedgerError):
    """The invitation email could not be composed or sent."""


class NotAuthenticated(LedgerError):
    http_status = status.HTTP_401_UNAUTHORIZED


class PermissionDenied(LedgerError):
    http_status = status.HTTP_403_FORBIDDEN


# fastapi docs on middlewares: https://fastapi.tiangolo.com/tutorial/middleware/
async def handle_broad_exceptions(request: Request, call_next):
    """Handle any exception that goes unhandled by a more specific exception handler."""
    try:
        return await call_next(request)
    except Exception as err:  # pylint: disable=broad-except
        error_response = {"detail": "Internal server error", "error_type": type(err).__name__}

        logger.opt(exception=err).error(
            "Unhandled exception: {}: {}",
            type(err).__name__,
            err,
            http_status=500,
            http_method=request.method,
            url_path=str(request.url.path),
            error_type=type(err).__name__,
            error_message=str(err),
            request_body=getattr(request.state, "request_body", None),
        )

        response = JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_response,
        )
        log_response_info(response)
        return response


# fastapi docs on error handlers: https://fastapi.tiangolo.com/tutorial/handling-errors/
async def handle_pydantic_validation_errors(request: Request, exc: pydantic.ValidationError) -> JSONResponse:
    """Handle Pydantic validation errors."""
    errors = exc.errors()
    error_response = {
        "detail": [
            {
                "msg": error["msg"],
                "input": error["input"],
            }
            for error in errors
        ]
    }

    logger.warning(
        f"Validation error: {len(errors)} validation errors",
        http_status=422,
        http_method=request.method,
        url_path=str(request.url.path),
        error_type="ValidationError",
        validation_errors=errors,
        request_body=getattr(request.state, "request_body", None),
    )

    response = JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
        content=error_response,
    )
    log_response_info(response)

    return response


async def handle_ledger_errors(request: Request, exc: LedgerError) -> JSONResponse:
    """
    Convert a LedgerError into an HTTP response.

    The status code comes from the exception class:
    - ValidationFailed -> 422
    - NotAuthenticated -> 401
    - PermissionDenied -> 403
    - NotFoundError -> 404
    - AlreadyExistsError -> 409
    - GatewayError, StorageError, ExtractionError -> 502
    - InvitationError, PipelineError, NotificationError -> 400

    Parameters
    ----------
    request : Request
        FastAPI request object
    exc : LedgerError
        The domain failure

    Returns
    -------
    JSONResponse
        `{"detail": <message>, "error_type": <class name>}`
    """
    http_status = exc.http_status
    error_type = type(exc).__name__
    error_response = {"detail": exc.message, "error_type": error_type}
    if isinstance(exc, PipelineError):
        error_response["step"] = exc.step

    log = logger.error if http_status >= 500 else logger.warning
    log(
        f"Request failed: {error_type}: {exc.message}",
        http_status=http_status,
        http_method=request.method,
        url_path=str(request.url.path),
        error_type=error_type,
        error_message=exc.message,
        request_body=getattr(request.state, "request_body", None),
    )

    response = JSONResponse(status_code=http_status, content=error_response)
    log_response_info(response)
    return response

"""Unit tests for errors.py error handlers."""

import json
from unittest.mock import MagicMock
from unittest.mock import patch

import pydantic
import pytest
from fastapi import Request

from ledger_api.errors import AlreadyExistsError
from ledger_api.errors import ExtractionError
from ledger_api.errors import GatewayError
from ledger_api.errors import InvitationError
from ledger_api.errors import NotAuthenticated
from ledger_api.errors import NotFoundError
from ledger_api.errors import PermissionDenied
from ledger_api.errors import PipelineError
from ledger_api.errors import StorageError
from ledger_api.errors import ValidationFailed
from ledger_api.errors import handle_broad_exceptions
from ledger_api.errors import handle_ledger_errors
from ledger_api.errors import handle_pydantic_validation_errors


def _mock_request() -> MagicMock:
    mock_request = MagicMock(spec=Request)
    mock_request.method = "POST"
    mock_request.url.path = "/api/projects"
    mock_request.state.request_body = None  # Avoid MagicMock in json.dumps
    return mock_request


class TestHandleBroadExceptions:
    """Tests for handle_broad_exceptions middleware."""

    @pytest.mark.asyncio
    @patch("ledger_api.errors.log_response_info")
    async def test_successful_request(self, mock_log):
        """Test middleware passes through successful requests."""
        mock_response = MagicMock()

        async def mock_call_next(request):
            return mock_response

        result = await handle_broad_exceptions(_mock_request(), mock_call_next)

        assert result == mock_response
        mock_log.assert_not_called()

    @pytest.mark.asyncio
    @patch("ledger_api.errors.log_response_info")
    async def test_exception_returns_500(self, mock_log):
        """Test middleware catches exceptions and returns 500."""

        async def mock_call_next(request):
            raise ValueError("Test error")

        result = await handle_broad_exceptions(_mock_request(), mock_call_next)

        assert result.status_code == 500
        assert json.loads(result.body) == {"detail": "Internal server error", "error_type": "ValueError"}
        mock_log.assert_called_once()

    @pytest.mark.asyncio
    @patch("ledger_api.errors.log_response_info")
    async def test_exception_message_with_braces(self, mock_log, captured_logs):
        """Test an error text that looks like a format string is logged as-is."""

        async def mock_call_next(request):
            raise RuntimeError("missing tables {'contractors'}")

        result = await handle_broad_exceptions(_mock_request(), mock_call_next)

        assert result.status_code == 500
        assert any("Unhandled exception: RuntimeError: missing tables {'contractors'}" in line for line in captured_logs)


class TestHandlePydanticValidationErrors:
    """Tests for handle_pydantic_validation_errors handler."""

    @pytest.mark.asyncio
    @patch("ledger_api.errors.log_response_info")
    async def test_validation_error(self, mock_log):
        """Test handling pydantic validation errors."""

        class TestModel(pydantic.BaseModel):
            name: str
            value: int

        with pytest.raises(pydantic.ValidationError) as exc_info:
            TestModel(name=123, value="not_int")

        result = await handle_pydantic_validation_errors(_mock_request(), exc_info.value)

        assert result.status_code == 422
        assert len(json.loads(result.body)["detail"]) == 2
        mock_log.assert_called_once()


class TestHandleLedgerErrors:
    """Tests for handle_ledger_errors handler."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "exc,expected_status",
        [
            (ValidationFailed("Project name is required"), 422),
            (NotAuthenticated("Not authenticated"), 401),
            (PermissionDenied("Only project owners can remove members"), 403),
            (NotFoundError("Project not found"), 404),
            (AlreadyExistsError("A contractor with this email already exists"), 409),
            (GatewayError("Database error on projects"), 502),
            (StorageError("Failed to upload file"), 502),
            (ExtractionError("Failed to process invoice data"), 502),
            (InvitationError("This invitation has expired"), 400),
        ],
        ids=[
            "validation",
            "unauthenticated",
            "permission_denied",
            "not_found",
            "already_exists",
            "gateway",
            "storage",
            "extraction",
            "invitation",
        ],
    )
    @patch("ledger_api.errors.log_response_info")
    async def test_status_mapping(self, mock_log, exc, expected_status: int):
        """Test ledger errors are mapped to the status code of their class."""
        result = await handle_ledger_errors(_mock_request(), exc)

        assert result.status_code == expected_status
        content = json.loads(result.body)
        assert content["detail"] == exc.message
        assert content["error_type"] == type(exc).__name__
        mock_log.assert_called_once()

    @pytest.mark.asyncio
    @patch("ledger_api.errors.log_response_info")
    async def test_pipeline_error_names_step(self, mock_log):
        """Test pipeline failures report the failed step."""
        result = await handle_ledger_errors(_mock_request(), PipelineError("Failed to create invoice", "create_invoice"))

        assert result.status_code == 400
        assert json.loads(result.body) == {
            "detail": "Failed to create invoice",
            "error_type": "PipelineError",
            "step": "create_invoice",
        }

    def test_already_exists_is_a_gateway_error(self):
        assert issubclass(AlreadyExistsError, GatewayError)

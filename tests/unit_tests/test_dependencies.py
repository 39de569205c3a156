"""Unit tests for dependencies.py."""

from unittest.mock import MagicMock
from uuid import uuid4

import pytest
from fastapi.security import HTTPAuthorizationCredentials

from ledger_api.dependencies import decode_access_token
from ledger_api.dependencies import get_current_user
from ledger_api.dependencies import get_gateway
from ledger_api.dependencies import get_session
from ledger_api.dependencies import get_settings
from ledger_api.dependencies import get_storage
from ledger_api.dependencies import require_verified_token
from ledger_api.errors import NotAuthenticated
from ledger_api.gateway import LedgerGateway
from ledger_api.ledger.session import SessionContext
from tests.fixtures.app_fixtures import TEST_USER_EMAIL
from tests.fixtures.app_fixtures import TEST_USER_ID
from tests.fixtures.app_fixtures import make_access_token


def _bearer(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


class TestDecodeAccessToken:
    """Tests for decode_access_token."""

    def test_valid_token(self, mock_settings):
        """Test a token signed with the shared secret yields the caller."""
        user = decode_access_token(make_access_token(), mock_settings)

        assert user.id == TEST_USER_ID
        assert user.email == TEST_USER_EMAIL
        assert user.claims["aud"] == "authenticated"

    @pytest.mark.parametrize(
        "token_kwargs",
        [
            {"secret": "some-other-secret"},
            {"expires_in": -60},
            {"audience": "anon"},
        ],
        ids=["wrong_secret", "expired", "wrong_audience"],
    )
    def test_rejected_tokens(self, mock_settings, token_kwargs):
        """Test forged, expired and foreign-audience tokens are rejected."""
        with pytest.raises(NotAuthenticated, match="Invalid or expired access token"):
            decode_access_token(make_access_token(**token_kwargs), mock_settings)

    def test_garbage_token(self, mock_settings):
        with pytest.raises(NotAuthenticated):
            decode_access_token("not-a-jwt", mock_settings)

    def test_subject_must_be_uuid(self, mock_settings):
        """Test service tokens without a user subject cannot act as a user."""
        with pytest.raises(NotAuthenticated, match="no valid subject"):
            decode_access_token(make_access_token(user_id="service-role"), mock_settings)

    def test_audience_check_disabled(self, mock_settings):
        mock_settings.jwt_audience = ""

        user = decode_access_token(make_access_token(audience=None), mock_settings)

        assert user.id == TEST_USER_ID


class TestSessionDependencies:
    """Tests for get_session, get_current_user and require_verified_token."""

    def test_no_credentials_is_signed_out(self, mock_settings):
        session = get_session(credentials=None, settings=mock_settings)

        assert not session.is_authenticated

    def test_credentials_sign_in(self, mock_settings):
        session = get_session(credentials=_bearer(make_access_token()), settings=mock_settings)

        assert session.is_authenticated
        assert get_current_user(session).id == TEST_USER_ID

    def test_invalid_credentials_rejected(self, mock_settings):
        with pytest.raises(NotAuthenticated):
            get_session(credentials=_bearer(make_access_token(secret="wrong")), settings=mock_settings)

    def test_current_user_requires_sign_in(self):
        with pytest.raises(NotAuthenticated, match="Not authenticated"):
            get_current_user(SessionContext())

    def test_verified_token_accepts_any_subject(self, mock_settings):
        claims = require_verified_token(_bearer(make_access_token(user_id="service-role")), mock_settings)

        assert claims["sub"] == "service-role"

    def test_verified_token_required(self, mock_settings):
        with pytest.raises(NotAuthenticated):
            require_verified_token(None, mock_settings)


class TestAppStateDependencies:
    """Tests for dependencies reading app state."""

    def test_get_settings(self, mock_settings):
        request = MagicMock()
        request.app.state.settings = mock_settings

        assert get_settings(request) is mock_settings

    def test_get_gateway_uses_app_pool(self, mock_db_pool):
        request = MagicMock()
        request.app.state.db_pool = mock_db_pool

        gateway = get_gateway(request)

        assert isinstance(gateway, LedgerGateway)
        assert gateway.projects.pool is mock_db_pool

    def test_get_storage(self, mock_settings):
        storage = get_storage(mock_settings)

        assert storage.base_url == "https://storage.test"
        assert storage.bucket == "invoice-attachments"

    def test_get_storage_not_configured(self, mock_settings):
        mock_settings.storage_service_key = None

        assert get_storage(mock_settings) is None


def test_tokens_for_different_users_are_distinct(mock_settings):
    other_id = uuid4()

    user = decode_access_token(make_access_token(user_id=other_id, email="other@example.com"), mock_settings)

    assert user.id == other_id
    assert user.email == "other@example.com"

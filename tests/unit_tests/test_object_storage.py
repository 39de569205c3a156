"""Tests for the object storage client."""

import json
from unittest.mock import patch

import httpx
import pytest

from ledger_api.errors import StorageError
from ledger_api.storage.object_storage import ObjectStorageClient

BASE_URL = "https://storage.test"


def _client(handler) -> ObjectStorageClient:
    return ObjectStorageClient(BASE_URL, "service-key", "invoice-attachments", transport=httpx.MockTransport(handler))


class TestUrls:
    """Tests for get_url and path_from_url."""

    def test_public_url_round_trip(self):
        client = ObjectStorageClient(BASE_URL, "key", "invoice-attachments")

        url = client.get_url("invoices/new/1_a b.pdf")

        assert url == f"{BASE_URL}/storage/v1/object/public/invoice-attachments/invoices/new/1_a%20b.pdf"
        assert client.path_from_url(url) == "invoices/new/1_a b.pdf"

    def test_foreign_url_has_no_path(self):
        client = ObjectStorageClient(BASE_URL, "key", "invoice-attachments")

        assert client.path_from_url("https://elsewhere.test/file.pdf") is None
        assert client.path_from_url(None) is None
        assert client.get_url("") is None


class TestPut:
    """Tests for put."""

    @pytest.mark.asyncio
    async def test_put_uploads_with_upsert(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["url"] = str(request.url)
            seen["headers"] = request.headers
            seen["content"] = request.content
            return httpx.Response(200, json={"Key": "invoice-attachments/auto/p/1_a.pdf"})

        url = await _client(handler).put("auto/p/1_a.pdf", b"%PDF", "application/pdf")

        assert seen["method"] == "POST"
        assert seen["url"] == f"{BASE_URL}/storage/v1/object/invoice-attachments/auto/p/1_a.pdf"
        assert seen["headers"]["Authorization"] == "Bearer service-key"
        assert seen["headers"]["x-upsert"] == "true"
        assert seen["headers"]["Content-Type"] == "application/pdf"
        assert seen["content"] == b"%PDF"
        assert url == f"{BASE_URL}/storage/v1/object/public/invoice-attachments/auto/p/1_a.pdf"

    @pytest.mark.asyncio
    async def test_put_rejected(self):
        client = _client(lambda request: httpx.Response(413, json={"error": "Payload too large"}))

        with pytest.raises(StorageError, match="Failed to upload file"):
            await client.put("a.pdf", b"%PDF", "application/pdf")

    @pytest.mark.asyncio
    async def test_put_unreachable(self):
        def handler(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        with pytest.raises(StorageError):
            await _client(handler).put("a.pdf", b"%PDF", "application/pdf")


class TestRemove:
    """Tests for remove."""

    @pytest.mark.asyncio
    async def test_remove_sends_prefixes(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=[])

        assert await _client(handler).remove("invoices/x/1_a.pdf") is True
        assert seen["method"] == "DELETE"
        assert seen["body"] == {"prefixes": ["invoices/x/1_a.pdf"]}

    @pytest.mark.asyncio
    async def test_remove_failure_returns_false(self):
        assert await _client(lambda request: httpx.Response(500)).remove("a.pdf") is False


class TestEnsureBucket:
    """Tests for ensure_bucket."""

    @pytest.mark.asyncio
    async def test_existing_bucket_not_created(self):
        def handler(request):
            assert request.method == "GET"
            return httpx.Response(200, json=[{"name": "invoice-attachments"}])

        created = await _client(handler).ensure_bucket(10 * 1024 * 1024, ["application/pdf"])

        assert created is False

    @pytest.mark.asyncio
    async def test_missing_bucket_created(self):
        created_with = {}

        def handler(request):
            if request.method == "GET":
                return httpx.Response(200, json=[])
            created_with.update(json.loads(request.content))
            return httpx.Response(200, json={"name": "invoice-attachments"})

        created = await _client(handler).ensure_bucket(1024, ["application/pdf", "image/*"])

        assert created is True
        assert created_with["id"] == "invoice-attachments"
        assert created_with["public"] is False
        assert created_with["allowed_mime_types"] == ["application/pdf", "image/*"]


class TestBootstrap:
    """Tests for the bucket bootstrap command."""

    @pytest.mark.asyncio
    async def test_missing_credentials(self, mock_settings):
        from ledger_api.storage.bootstrap import create_bucket

        mock_settings.storage_service_key = None

        with pytest.raises(StorageError, match="Missing storage credentials"):
            await create_bucket(mock_settings, "invoice-attachments")

    @patch("ledger_api.storage.bootstrap.create_bucket")
    @patch("ledger_api.storage.bootstrap.Settings")
    def test_main_uses_configured_bucket(self, mock_settings_cls, mock_create_bucket, mock_settings):
        from ledger_api.storage.bootstrap import main

        mock_settings_cls.return_value = mock_settings
        mock_create_bucket.return_value = True

        assert main(["--public"]) == 0
        mock_create_bucket.assert_awaited_once_with(mock_settings, "invoice-attachments", public=True)

    @patch("ledger_api.storage.bootstrap.create_bucket")
    @patch("ledger_api.storage.bootstrap.Settings")
    def test_main_reports_failure(self, mock_settings_cls, mock_create_bucket, mock_settings):
        from ledger_api.storage.bootstrap import main

        mock_settings_cls.return_value = mock_settings
        mock_create_bucket.side_effect = StorageError("Failed to create bucket receipts")

        assert main(["--bucket", "receipts"]) == 1

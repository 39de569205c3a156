"""
Object Storage Client

Thin async client for the storage REST endpoint holding invoice attachments.
"""

from typing import Optional
from urllib.parse import quote
from urllib.parse import unquote

import httpx
from loguru import logger

from ledger_api.errors import StorageError

STORAGE_TIMEOUT = 30.0
CACHE_CONTROL_SECONDS = 3600


class ObjectStorageClient:
    """
    put/remove/get_url over one bucket.

    Args:
        base_url: Storage endpoint root (e.g. https://<project>.supabase.co)
        service_key: Key sent as bearer token
        bucket: Bucket name
        transport: Optional httpx transport (tests use httpx.MockTransport)
    """

    def __init__(
        self,
        base_url: str,
        service_key: str,
        bucket: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.service_key = service_key
        self.bucket = bucket
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=f"{self.base_url}/storage/v1",
            headers={"Authorization": f"Bearer {self.service_key}", "apikey": self.service_key},
            timeout=STORAGE_TIMEOUT,
            transport=self._transport,
        )

    def get_url(self, path: Optional[str]) -> Optional[str]:
        """Public URL of an object, or None for an empty path."""
        if not path:
            return None
        return f"{self._public_prefix}{quote(path)}"

    @property
    def _public_prefix(self) -> str:
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/"

    def path_from_url(self, url: Optional[str]) -> Optional[str]:
        """Object path of a URL returned by put(), or None for URLs outside this bucket."""
        if not url or not url.startswith(self._public_prefix):
            return None
        return unquote(url[len(self._public_prefix) :])

    async def put(self, path: str, content: bytes, content_type: str = "application/octet-stream") -> str:
        """
        Upload (or overwrite) an object.

        Returns:
            Public URL of the stored object

        Raises:
            StorageError: the endpoint rejected the upload or could not be reached
        """
        try:
            async with self._client() as client:
                response = await client.post(
                    f"/object/{self.bucket}/{quote(path)}",
                    content=content,
                    headers={
                        "Content-Type": content_type,
                        "x-upsert": "true",
                        "cache-control": f"max-age={CACHE_CONTROL_SECONDS}",
                    },
                )
        except httpx.HTTPError as e:
            logger.error("Error uploading file", path=path, error=str(e))
            raise StorageError("Failed to upload file") from e

        if response.is_error:
            logger.error("Error uploading file", path=path, status_code=response.status_code, body=response.text[:500])
            raise StorageError("Failed to upload file")

        logger.info("File uploaded", bucket=self.bucket, path=path, size=len(content))
        return self.get_url(path)

    async def remove(self, path: str) -> bool:
        """Delete an object. Failures are logged and reported as False."""
        try:
            async with self._client() as client:
                response = await client.request("DELETE", f"/object/{self.bucket}", json={"prefixes": [path]})
        except httpx.HTTPError as e:
            logger.error("Error deleting file", path=path, error=str(e))
            return False

        if response.is_error:
            logger.error("Error deleting file", path=path, status_code=response.status_code)
            return False
        return True

    async def ensure_bucket(self, file_size_limit: int, allowed_mime_types: list, public: bool = False) -> bool:
        """
        Create the bucket when it does not exist.

        Returns:
            True when the bucket was created, False when it already existed
        """
        try:
            async with self._client() as client:
                response = await client.get("/bucket")
                response.raise_for_status()
                if any(bucket.get("name") == self.bucket for bucket in response.json()):
                    logger.info(f'Bucket "{self.bucket}" already exists.')
                    return False

                response = await client.post(
                    "/bucket",
                    json={
                        "id": self.bucket,
                        "name": self.bucket,
                        "public": public,
                        "file_size_limit": file_size_limit,
                        "allowed_mime_types": allowed_mime_types,
                    },
                )
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("Error creating bucket", bucket=self.bucket, error=str(e))
            raise StorageError(f"Failed to create bucket {self.bucket}") from e

        logger.success(f'Successfully created bucket "{self.bucket}"')
        return True

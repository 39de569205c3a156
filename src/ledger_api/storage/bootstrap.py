"""
Create the invoice attachments bucket if it does not exist.

Usage:
    python -m ledger_api.storage.bootstrap
    python -m ledger_api.storage.bootstrap --bucket invoice-attachments --public
"""

import argparse
import asyncio
import sys

from loguru import logger

from ledger_api.errors import StorageError
from ledger_api.settings import Settings
from ledger_api.storage.object_storage import ObjectStorageClient

BUCKET_MIME_TYPES = [
    "application/pdf",
    "image/*",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
]


async def create_bucket(settings: Settings, bucket: str, public: bool = False) -> bool:
    if not settings.storage_url or not settings.storage_service_key:
        raise StorageError("Missing storage credentials: set STORAGE_URL and STORAGE_SERVICE_KEY")

    client = ObjectStorageClient(settings.storage_url, settings.storage_service_key, bucket)
    return await client.ensure_bucket(
        file_size_limit=settings.storage_max_upload_mb * 1024 * 1024,
        allowed_mime_types=BUCKET_MIME_TYPES,
        public=public,
    )


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Create the invoice attachments bucket")
    parser.add_argument("--bucket", help="Bucket name (default: STORAGE_BUCKET setting)")
    parser.add_argument("--public", action="store_true", help="Make the bucket publicly readable")
    args = parser.parse_args(argv)

    settings = Settings()
    bucket = args.bucket or settings.storage_bucket

    try:
        asyncio.run(create_bucket(settings, bucket, public=args.public))
    except StorageError as e:
        logger.error(e.message)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""Upload validation and object paths for invoice attachments."""

import re
import time
from typing import Optional
from uuid import UUID

from ledger_api.errors import ValidationFailed

ACCEPTED_CONTENT_TYPES = ("application/pdf", "image/*")

# Placeholder path segment used before the invoice row exists
NEW_ENTITY_SEGMENT = "new"

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9.]")


def sanitize_filename(filename: str) -> str:
    """Replace every character other than ASCII letters, digits and "." with "_"."""
    return _UNSAFE_FILENAME_CHARS.sub("_", filename or "")


def timestamp_ms() -> int:
    return int(time.time() * 1000)


def build_object_path(namespace: str, entity_id: Optional[UUID | str], filename: str, timestamp: Optional[int] = None) -> str:
    """
    Build `<namespace>/<entityIdOrNew>/<timestamp>_<sanitizedFilename>`.

    Args:
        namespace: Top-level folder ("invoices" for editor uploads, "auto" for ingestion)
        entity_id: Owning entity, or None before it exists
        filename: Original file name as uploaded
        timestamp: Milliseconds since the epoch; defaults to now
    """
    segment = str(entity_id) if entity_id else NEW_ENTITY_SEGMENT
    stamp = timestamp if timestamp is not None else timestamp_ms()
    return f"{namespace}/{segment}/{stamp}_{sanitize_filename(filename)}"


def is_accepted_content_type(content_type: Optional[str], accepted: tuple = ACCEPTED_CONTENT_TYPES) -> bool:
    """Match a MIME type against patterns such as "application/pdf" or "image/*"."""
    if not content_type:
        return False
    content_type = content_type.split(";")[0].strip().lower()
    for pattern in accepted:
        if pattern.endswith("/*"):
            if content_type.startswith(pattern[:-1]):
                return True
        elif content_type == pattern:
            return True
    return False


def validate_upload(
    filename: Optional[str],
    content_type: Optional[str],
    size: int,
    max_size_mb: int,
    accepted: tuple = ACCEPTED_CONTENT_TYPES,
) -> None:
    """Reject empty, oversized or unsupported files before anything is uploaded."""
    if not filename or size == 0:
        raise ValidationFailed("Please select a file to upload")
    if size > max_size_mb * 1024 * 1024:
        raise ValidationFailed(f"File size exceeds {max_size_mb}MB limit")
    if not is_accepted_content_type(content_type, accepted):
        raise ValidationFailed(f"File type not accepted. Please upload {' or '.join(accepted)}")

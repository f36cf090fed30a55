"""Shared utility functions for offline-sync."""

import hashlib
import re
import uuid
from datetime import datetime, timezone

_KEY_SAFE_RE = re.compile(r"[^A-Za-z0-9._-]")


def utc_now() -> datetime:
    """Get current UTC datetime (timezone-aware).

    Returns:
        A timezone-aware datetime object representing the current time in UTC.
    """
    return datetime.now(timezone.utc)


def new_item_id() -> str:
    """Generate an identifier for a queued item."""
    return uuid.uuid4().hex


def safe_key(value: str) -> str:
    """Make a storage-safe key fragment from an arbitrary identifier.

    Identifiers that are already safe pass through unchanged. Anything else
    is sanitized and suffixed with a short digest of the original so two
    distinct identifiers never share a key.

    Args:
        value: Raw identifier (e.g. an owner id).

    Returns:
        A key fragment containing only letters, digits, dot, dash, underscore.
    """
    cleaned = _KEY_SAFE_RE.sub("_", value)[:180]
    if cleaned == value:
        return value
    digest = hashlib.sha1(value.encode("utf-8")).hexdigest()[:12]
    return f"{cleaned}-{digest}"

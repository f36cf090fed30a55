"""Queue and delivery constants (hardcoded, not configurable)."""

from __future__ import annotations

QUEUE_FORMAT_VERSION = 1
DEFAULT_METHOD = "POST"
ALLOWED_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})

# Status codes treated as transient even though they are 4xx
RETRYABLE_CLIENT_STATUSES = frozenset({408, 425, 429})

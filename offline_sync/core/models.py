"""Data models for queued mutations and progress snapshots. Pure data, no I/O."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any

from offline_sync.core.constants import ALLOWED_METHODS, DEFAULT_METHOD
from offline_sync.core.utils import new_item_id, utc_now


@dataclass(frozen=True)
class RequestTarget:
    """Where and how a queued mutation is delivered."""

    url: str
    method: str = DEFAULT_METHOD

    @classmethod
    def from_json(cls, data: Any) -> RequestTarget:
        """Parse a target dict.

        Raises:
            ValueError: If the url is missing or the method is not a write verb.
        """
        if not isinstance(data, dict):
            raise ValueError(f"target must be a dict, got {type(data).__name__}")
        url = data.get("url")
        if not isinstance(url, str) or not url.strip():
            raise ValueError("target url must be a non-empty string")
        method = data.get("method") or DEFAULT_METHOD
        if not isinstance(method, str) or method.upper() not in ALLOWED_METHODS:
            raise ValueError(f"Unsupported target method: {method}")
        return cls(url=url, method=method.upper())

    def to_json(self) -> dict[str, str]:
        return {"url": self.url, "method": self.method}


@dataclass(frozen=True)
class QueueItem:
    """A pending mutation in the persistent queue.

    Attributes:
        id: Identifier assigned at enqueue time, used for idempotent removal.
        target: Resource locator and verb.
        payload: Opaque JSON-serializable body.
        attempts: Failed delivery attempts so far.
        created_at: ISO-8601 UTC timestamp of the enqueue.
    """

    id: str
    target: RequestTarget
    payload: Any = None
    attempts: int = 0
    created_at: str = ""

    @classmethod
    def create(cls, target: RequestTarget, payload: Any = None) -> QueueItem:
        """Build a fresh item with a new id and zero attempts."""
        return cls(
            id=new_item_id(),
            target=target,
            payload=payload,
            attempts=0,
            created_at=utc_now().isoformat(),
        )

    @classmethod
    def from_json(cls, data: Any) -> QueueItem:
        """Parse and validate a stored queue entry.

        Args:
            data: Raw JSON dictionary from the durable log.

        Returns:
            Validated QueueItem instance.

        Raises:
            ValueError: If required fields are missing or invalid.
        """
        if not isinstance(data, dict):
            raise ValueError(f"queue entry must be a dict, got {type(data).__name__}")

        item_id = data.get("id")
        if not isinstance(item_id, str) or not item_id:
            raise ValueError("queue entry id must be a non-empty string")

        attempts = data.get("attempts", 0)
        if not isinstance(attempts, int) or isinstance(attempts, bool) or attempts < 0:
            raise ValueError(f"attempts must be a non-negative integer, got {attempts}")

        created_at = data.get("created_at", "")
        if not isinstance(created_at, str):
            raise ValueError("created_at must be a string")

        return cls(
            id=item_id,
            target=RequestTarget.from_json(data.get("target")),
            payload=data.get("payload"),
            attempts=attempts,
            created_at=created_at,
        )

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "target": self.target.to_json(),
            "payload": self.payload,
            "attempts": self.attempts,
            "created_at": self.created_at,
        }

    def with_failure(self) -> QueueItem:
        """Return a copy with one more failed attempt recorded."""
        return replace(self, attempts=self.attempts + 1)


@dataclass(frozen=True)
class ProgressSnapshot:
    """A versioned progress record for one owner."""

    owner_id: str
    step: int
    data: Any = field(default_factory=dict)

    @classmethod
    def from_json(cls, owner_id: str, data: Any) -> ProgressSnapshot:
        """Parse a `{step, data}` record for the given owner.

        Raises:
            ValueError: If step is missing, negative, or not an integer.
        """
        if not isinstance(data, dict):
            raise ValueError(f"snapshot must be a dict, got {type(data).__name__}")
        step = data.get("step")
        if not isinstance(step, int) or isinstance(step, bool) or step < 0:
            raise ValueError(f"step must be a non-negative integer, got {step!r}")
        stored_owner = data.get("owner_id", owner_id)
        if stored_owner != owner_id:
            raise ValueError(f"snapshot belongs to {stored_owner!r}, not {owner_id!r}")
        return cls(owner_id=owner_id, step=step, data=data.get("data", {}))

    def to_json(self) -> dict[str, Any]:
        return {"owner_id": self.owner_id, "step": self.step, "data": self.data}


@dataclass
class DrainReport:
    """Outcome of one dispatch pass (or of a coalesced trigger)."""

    delivered: list[str] = field(default_factory=list)
    retained: list[str] = field(default_factory=list)
    dropped: list[str] = field(default_factory=list)
    coalesced: bool = False
    passes: int = 0

    @property
    def attempted(self) -> int:
        return len(self.delivered) + len(self.retained) + len(self.dropped)


@dataclass
class ReconcileResult:
    """Outcome of resuming an owner's progress.

    Attributes:
        snapshot: The authoritative snapshot, or None if neither side has one.
        source: "local", "remote", or "none".
        published: True if the local snapshot was pushed to the remote.
    """

    snapshot: ProgressSnapshot | None
    source: str
    published: bool = False

"""Protocol interfaces for the remote authoritative store.

The gateway performs no retries. Retry policy belongs to the dispatch loop
(queued mutations) and to the caller of StateReconciler.advance (progress writes).
"""

from __future__ import annotations

from typing import Any, Protocol

from offline_sync.core.models import ProgressSnapshot, RequestTarget


class RemoteGatewayProtocol(Protocol):
    """Async contract for reading, upserting and delivering to the remote.

    Consumers: DispatchLoop, StateReconciler.
    """

    async def read(self, owner_id: str) -> ProgressSnapshot | None:
        """Read the authoritative snapshot for an owner.

        Returns:
            The complete snapshot, or None if the remote has none.

        Raises:
            TransientDeliveryError: On transport failure or 5xx.
            PermanentDeliveryError: On a 4xx rejection.
            RemoteSnapshotError: If the response is not a valid snapshot.
        """
        ...

    async def upsert(self, owner_id: str, step: int, data: Any) -> None:
        """Create or replace the owner's snapshot.

        Must be idempotent for a repeated identical (owner_id, step) pair.

        Raises:
            TransientDeliveryError: On transport failure or 5xx.
            PermanentDeliveryError: On a 4xx rejection.
        """
        ...

    async def send(self, target: RequestTarget, payload: Any) -> None:
        """Deliver one queued mutation.

        Raises:
            TransientDeliveryError: On transport failure or 5xx.
            PermanentDeliveryError: On a 4xx rejection.
        """
        ...


class ReachabilityProbeProtocol(Protocol):
    """Answers whether the remote is currently reachable.

    Consumer: ConnectivityMonitor's probe loop.
    """

    async def is_reachable(self) -> bool:
        """Return True if the remote answered, False otherwise. Never raises."""
        ...

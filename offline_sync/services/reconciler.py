"""Progress reconciliation between the local cache and the remote store.

Merge policy on resume, in priority order:
    remote absent, local present -> local wins and is published remotely
    local absent, remote present -> remote wins
    both present                 -> strictly higher step wins; ties go to remote
    both absent                  -> no snapshot

The local cache is write-through: advance() upserts remotely first and only
caches the step once the remote confirmed it. advance() never goes through
the persistent queue, so no ordering is defined between queued mutations
and progress advancement.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from offline_sync.core.errors import (
    DeliveryError,
    ProgressAdvanceError,
    ProgressRegressionError,
    ReconciliationError,
    StorageError,
    ValidationError,
)
from offline_sync.core.models import ProgressSnapshot, ReconcileResult
from offline_sync.core.utils import safe_key
from offline_sync.ports.gateway import RemoteGatewayProtocol
from offline_sync.ports.storage import KeyValueStoreProtocol

logger = logging.getLogger(__name__)


def choose_authoritative(
    local: ProgressSnapshot | None,
    remote: ProgressSnapshot | None,
) -> tuple[ProgressSnapshot | None, str]:
    """Pick the authoritative snapshot.

    Args:
        local: Snapshot from the write-through cache.
        remote: Snapshot from the remote store.

    Returns:
        Tuple of (winning snapshot, source) where source is "local",
        "remote", or "none".
    """
    if remote is None and local is None:
        return None, "none"
    if remote is None:
        return local, "local"
    if local is None:
        return remote, "remote"
    # A cached snapshot at the same step may be an unconfirmed duplicate
    if local.step > remote.step:
        return local, "local"
    return remote, "remote"


class StateReconciler:
    """Owns the per-owner progress cache and arbitrates progress writes."""

    def __init__(
        self,
        store: KeyValueStoreProtocol,
        gateway: RemoteGatewayProtocol,
        key_prefix: str = "progress_",
    ) -> None:
        """Initialize the reconciler.

        Args:
            store: Durable backend for the write-through cache.
            gateway: Remote store.
            key_prefix: Prefix of the per-owner cache keys.
        """
        self._store = store
        self._gateway = gateway
        self._key_prefix = key_prefix

    def cache_key(self, owner_id: str) -> str:
        return f"{self._key_prefix}{safe_key(owner_id)}"

    async def resume(self, owner_id: str) -> ReconcileResult:
        """Reconcile local and remote progress for an owner.

        Reads both sides concurrently, picks the authoritative snapshot,
        publishes a winning local snapshot to the remote, and caches the
        winner.

        Args:
            owner_id: Owner whose progress to resume.

        Returns:
            ReconcileResult describing the winner.

        Raises:
            ValidationError: If owner_id is empty.
            ReconciliationError: If either side cannot be read, or the
                winner cannot be cached.
        """
        _validate_owner(owner_id)

        local_result, remote_result = await asyncio.gather(
            self._read_local_async(owner_id),
            self._read_remote(owner_id),
            return_exceptions=True,
        )
        # Both reads have settled; the local failure is reported first
        if isinstance(local_result, BaseException):
            raise local_result
        if isinstance(remote_result, BaseException):
            raise remote_result

        winner, source = choose_authoritative(local_result, remote_result)
        logger.debug(
            "Resume %s: local=%s remote=%s -> %s",
            owner_id,
            _step_or_none(local_result),
            _step_or_none(remote_result),
            source,
        )
        if winner is None:
            return ReconcileResult(snapshot=None, source=source)

        published = False
        if source == "local":
            published = await self._publish(winner)

        try:
            self._write_local(winner)
        except StorageError as e:
            raise ReconciliationError(owner_id, f"cache write failed: {e}") from e

        logger.info(f"Resumed {owner_id} at step {winner.step} from {source}")
        return ReconcileResult(snapshot=winner, source=source, published=published)

    async def advance(self, owner_id: str, step: int, data: Any) -> ProgressSnapshot:
        """Move an owner's progress forward, remote first.

        Args:
            owner_id: Owner whose progress advances.
            step: New step; must not be below the cached step.
            data: JSON-serializable progress payload.

        Returns:
            The confirmed snapshot now held in the cache.

        Raises:
            ValidationError: If owner_id or step is invalid.
            ProgressRegressionError: If step is below the cached step.
            ProgressAdvanceError: If the remote did not confirm the write.
                The cache keeps its prior step.
        """
        _validate_owner(owner_id)
        if not isinstance(step, int) or isinstance(step, bool) or step < 0:
            raise ValidationError(f"step must be a non-negative integer, got {step!r}")

        try:
            json.dumps(data)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"progress data is not JSON-serializable: {e}") from e

        cached = self.current(owner_id)
        if cached is not None and step < cached.step:
            raise ProgressRegressionError(owner_id, cached.step, step)

        try:
            await self._gateway.upsert(owner_id, step, data)
        except DeliveryError as e:
            logger.warning(f"Advance of {owner_id} to step {step} not confirmed: {e}")
            raise ProgressAdvanceError(owner_id, step, e) from e

        snapshot = ProgressSnapshot(owner_id=owner_id, step=step, data=data)
        try:
            self._write_local(snapshot)
        except StorageError as e:
            # Remote already holds the step; the next resume picks it up from there
            logger.warning(f"Step {step} for {owner_id} confirmed but not cached: {e}")
        return snapshot

    def current(self, owner_id: str) -> ProgressSnapshot | None:
        """Return the cached snapshot, treating storage failures as absent."""
        try:
            return self._read_local(owner_id)
        except StorageError as e:
            logger.warning(f"Progress cache for {owner_id} unreadable: {e}")
            return None

    def forget(self, owner_id: str) -> None:
        """Drop the cached snapshot (e.g. on sign-out)."""
        self._store.delete(self.cache_key(owner_id))

    async def _read_local_async(self, owner_id: str) -> ProgressSnapshot | None:
        try:
            return self._read_local(owner_id)
        except StorageError as e:
            raise ReconciliationError(owner_id, f"local read failed: {e}") from e

    async def _read_remote(self, owner_id: str) -> ProgressSnapshot | None:
        try:
            return await self._gateway.read(owner_id)
        except DeliveryError as e:
            raise ReconciliationError(owner_id, f"remote read failed: {e}") from e

    def _read_local(self, owner_id: str) -> ProgressSnapshot | None:
        raw = self._store.get(self.cache_key(owner_id))
        if raw is None:
            return None
        try:
            return ProgressSnapshot.from_json(owner_id, json.loads(raw))
        except ValueError as e:
            logger.warning(f"Ignoring corrupt progress cache for {owner_id}: {e}")
            return None

    def _write_local(self, snapshot: ProgressSnapshot) -> None:
        self._store.set(self.cache_key(snapshot.owner_id), json.dumps(snapshot.to_json()))

    async def _publish(self, snapshot: ProgressSnapshot) -> bool:
        try:
            await self._gateway.upsert(snapshot.owner_id, snapshot.step, snapshot.data)
        except DeliveryError as e:
            logger.warning(
                f"Could not publish local step {snapshot.step} for {snapshot.owner_id}, "
                f"will retry on next resume: {e}"
            )
            return False
        return True


def _validate_owner(owner_id: str) -> None:
    if not isinstance(owner_id, str) or not owner_id.strip():
        raise ValidationError("owner_id must be a non-empty string")


def _step_or_none(snapshot: ProgressSnapshot | None) -> int | None:
    return snapshot.step if snapshot is not None else None

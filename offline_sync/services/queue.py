"""Durable, ordered log of pending mutations.

The whole queue is serialized as one ordered JSON document under a single
storage key:

    {"version": 1, "items": [{"id", "target", "payload", "attempts", "created_at"}, ...]}

Persistence is best-effort, not at-least-once:
    - An unreadable or corrupt log loads as an empty queue.
    - A failed write is logged and swallowed. The change survives in the
      in-process mirror until the next successful write (or close()), but a
      restart before then loses it.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from offline_sync.core.constants import QUEUE_FORMAT_VERSION
from offline_sync.core.errors import StorageError
from offline_sync.core.models import QueueItem, RequestTarget
from offline_sync.ports.storage import KeyValueStoreProtocol

logger = logging.getLogger(__name__)


class PersistentQueue:
    """FIFO queue of QueueItems persisted through a KeyValueStore.

    The log is loaded lazily on first access and written through on every
    mutation. Single-writer: exactly one queue instance owns a storage key.
    """

    def __init__(self, store: KeyValueStoreProtocol, storage_key: str = "offline_queue_v1") -> None:
        """Initialize the queue.

        Args:
            store: Durable key-value backend.
            storage_key: Key holding the serialized log.
        """
        self._store = store
        self._storage_key = storage_key
        self._items: list[QueueItem] | None = None
        self._dirty = False

    @property
    def storage_key(self) -> str:
        return self._storage_key

    def enqueue(self, target: RequestTarget, payload: Any = None) -> QueueItem:
        """Append a mutation to the log with zero attempts.

        Returns immediately; delivery happens on the next drain.

        Args:
            target: Where and how to deliver the mutation.
            payload: JSON-serializable body.

        Returns:
            The queued item, carrying its assigned id.

        Raises:
            TypeError: If payload cannot be serialized as JSON.
        """
        # Detached copy: later changes to the caller's object reach neither
        # the mirror nor the log, and both hold the same JSON types
        payload = json.loads(json.dumps(payload))
        item = QueueItem.create(target, payload)
        items = self._load()
        items.append(item)
        self._persist()
        logger.debug(f"Enqueued {item.id} ({target.method} {target.url}), depth={len(items)}")
        return item

    def drain(self) -> list[QueueItem]:
        """Return every queued item in enqueue order, without removing any."""
        return list(self._load())

    def get(self, item_id: str) -> QueueItem | None:
        for item in self._load():
            if item.id == item_id:
                return item
        return None

    def remove(self, item_id: str) -> bool:
        """Remove exactly one item by id.

        Returns:
            True if an item was removed, False if it was already absent.
        """
        items = self._load()
        for index, item in enumerate(items):
            if item.id == item_id:
                del items[index]
                self._persist()
                return True
        return False

    def record_failure(self, item_id: str) -> int | None:
        """Increment an item's attempt counter and persist it.

        Returns:
            The new attempt count, or None if the item is not queued.
        """
        items = self._load()
        for index, item in enumerate(items):
            if item.id == item_id:
                updated = item.with_failure()
                items[index] = updated
                self._persist()
                return updated.attempts
        return None

    def size(self) -> int:
        return len(self._load())

    def clear(self) -> int:
        """Drop every queued item.

        Returns:
            Number of items removed.
        """
        items = self._load()
        count = len(items)
        items.clear()
        self._persist()
        if count:
            logger.info(f"Cleared {count} queued item(s)")
        return count

    def close(self) -> None:
        """Retry a failed write before shutdown. Best-effort."""
        if self._dirty:
            self._persist()

    def reload(self) -> list[QueueItem]:
        """Discard the in-process mirror and re-read the durable log."""
        self._items = None
        return self.drain()

    def _load(self) -> list[QueueItem]:
        if self._items is None:
            self._items = self._read()
        return self._items

    def _read(self) -> list[QueueItem]:
        try:
            raw = self._store.get(self._storage_key)
        except StorageError as e:
            logger.warning(f"Queue log unreadable, starting empty: {e}")
            return []
        if raw is None:
            return []
        try:
            document = json.loads(raw)
        except ValueError as e:
            logger.warning(f"Queue log corrupt, starting empty: {e}")
            return []

        if not isinstance(document, dict) or document.get("version") != QUEUE_FORMAT_VERSION:
            logger.warning("Queue log has an unsupported format, starting empty")
            return []
        entries = document.get("items")
        if not isinstance(entries, list):
            logger.warning("Queue log has no item list, starting empty")
            return []

        items: list[QueueItem] = []
        seen: set[str] = set()
        for entry in entries:
            try:
                item = QueueItem.from_json(entry)
            except ValueError as e:
                logger.warning(f"Skipping invalid queue entry: {e}")
                continue
            if item.id in seen:
                logger.warning(f"Skipping duplicate queue entry {item.id}")
                continue
            seen.add(item.id)
            items.append(item)
        return items

    def _persist(self) -> None:
        items = self._load()
        document = {
            "version": QUEUE_FORMAT_VERSION,
            "items": [item.to_json() for item in items],
        }
        try:
            self._store.set(self._storage_key, json.dumps(document))
        except StorageError as e:
            self._dirty = True
            logger.warning(
                f"Queue write failed; {len(items)} item(s) held in memory only until "
                f"the next successful write: {e}"
            )
            return
        self._dirty = False

"""Protocol interface for the local durable key-value store.

Both the pending-mutation queue and the progress snapshot cache persist
through this contract, so tests can substitute an in-memory backend.
"""

from __future__ import annotations

from typing import Protocol


class KeyValueStoreProtocol(Protocol):
    """Synchronous, single-writer durable storage of string values by key.

    Implementations: InMemoryKeyValueStore, JsonFileKeyValueStore.
    """

    def get(self, key: str) -> str | None:
        """Read the raw value stored under key.

        Returns:
            The stored string, or None if the key is absent.

        Raises:
            StorageError: If the backend cannot be read.
        """
        ...

    def set(self, key: str, value: str) -> None:
        """Durably store value under key, replacing any previous value.

        Raises:
            StorageError: If the write does not complete.
        """
        ...

    def delete(self, key: str) -> None:
        """Remove key. A no-op if absent.

        Raises:
            StorageError: If the backend cannot be modified.
        """
        ...

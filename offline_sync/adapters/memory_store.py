"""In-memory key-value store for tests and ephemeral clients."""

from __future__ import annotations


class InMemoryKeyValueStore:
    """Dict-backed implementation of KeyValueStoreProtocol.

    Nothing survives the process; two queue instances sharing one store
    behave like a restart against the same durable backend.
    """

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

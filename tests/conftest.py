"""Pytest fixtures for offline-sync tests."""

from __future__ import annotations

import asyncio
import tempfile
from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest

from offline_sync.adapters.memory_gateway import InMemoryRemoteGateway
from offline_sync.adapters.memory_store import InMemoryKeyValueStore
from offline_sync.config import Settings, override_settings, reset_settings
from offline_sync.core.errors import StorageError
from offline_sync.core.models import ProgressSnapshot, RequestTarget
from offline_sync.services.dispatch import DispatchLoop
from offline_sync.services.queue import PersistentQueue
from offline_sync.services.reconciler import StateReconciler

# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------


class FlakyStore(InMemoryKeyValueStore):
    """In-memory store whose reads and writes can be made to fail."""

    def __init__(self) -> None:
        super().__init__()
        self.fail_reads = False
        self.fail_writes = False
        self.writes = 0

    def get(self, key: str) -> str | None:
        if self.fail_reads:
            raise StorageError(f"simulated read failure for {key}")
        return super().get(key)

    def set(self, key: str, value: str) -> None:
        if self.fail_writes:
            raise StorageError(f"simulated write failure for {key}")
        self.writes += 1
        super().set(key, value)


class ScriptedGateway(InMemoryRemoteGateway):
    """In-memory gateway with scriptable failures and an optional gate.

    - send_errors[url]: errors raised by successive sends to url
    - always_fail[url]: error raised by every send to url
    - read_error / upsert_error: raised by read() / upsert() when set
    - gate: when set, every send waits on it before completing
    """

    def __init__(self) -> None:
        super().__init__()
        self.send_errors: dict[str, list[Exception]] = {}
        self.always_fail: dict[str, Exception] = {}
        self.read_error: Exception | None = None
        self.upsert_error: Exception | None = None
        self.gate: asyncio.Event | None = None
        self.send_calls: list[str] = []
        self.active_sends = 0
        self.max_active_sends = 0

    async def read(self, owner_id: str) -> ProgressSnapshot | None:
        if self.read_error is not None:
            raise self.read_error
        return await super().read(owner_id)

    async def upsert(self, owner_id: str, step: int, data: Any) -> None:
        if self.upsert_error is not None:
            raise self.upsert_error
        await super().upsert(owner_id, step, data)

    async def send(self, target: RequestTarget, payload: Any) -> None:
        self.send_calls.append(target.url)
        self.active_sends += 1
        self.max_active_sends = max(self.max_active_sends, self.active_sends)
        try:
            if self.gate is not None:
                await self.gate.wait()
            if target.url in self.always_fail:
                raise self.always_fail[target.url]
            errors = self.send_errors.get(target.url)
            if errors:
                raise errors.pop(0)
            await super().send(target, payload)
        finally:
            self.active_sends -= 1

    def delivered_urls(self) -> list[str]:
        return [target.url for target, _ in self.sent]


# ---------------------------------------------------------------------------
# Basic fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def temp_storage() -> Generator[Path, None, None]:
    """Provide temporary storage directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def test_settings(temp_storage: Path) -> Generator[Settings, None, None]:
    """Provide test settings with temp storage."""
    settings = Settings(
        storage_path=temp_storage / "offline-sync",
        remote_base_url="http://remote.test",
        log_level="DEBUG",
    )
    override_settings(settings)
    yield settings
    reset_settings()


@pytest.fixture
def store() -> FlakyStore:
    return FlakyStore()


@pytest.fixture
def gateway() -> ScriptedGateway:
    return ScriptedGateway()


@pytest.fixture
def queue(store: FlakyStore) -> PersistentQueue:
    return PersistentQueue(store, storage_key="test_queue")


@pytest.fixture
def dispatch(queue: PersistentQueue, gateway: ScriptedGateway) -> DispatchLoop:
    return DispatchLoop(queue, gateway, max_attempts=5)


@pytest.fixture
def reconciler(store: FlakyStore, gateway: ScriptedGateway) -> StateReconciler:
    return StateReconciler(store, gateway, key_prefix="progress_")


def target(url: str, method: str = "POST") -> RequestTarget:
    """Shorthand for building a request target in tests."""
    return RequestTarget(url=url, method=method)

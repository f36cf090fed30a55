"""Offline sync client: the host application's single entry point.

The client owns one ServiceContainer. Nothing runs until start() is
called, and stop() tears everything down:

    async with OfflineSyncClient() as client:
        client.enqueue("/api/events", {"kind": "answer", "value": 3})
        result = await client.resume(user_id)
        await client.advance(user_id, result.snapshot.step + 1, data)
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from offline_sync.config import Settings, get_settings
from offline_sync.core.models import (
    DrainReport,
    ProgressSnapshot,
    QueueItem,
    ReconcileResult,
    RequestTarget,
)
from offline_sync.factory import ServiceContainer, ServiceFactory

logger = logging.getLogger(__name__)


class OfflineSyncClient:
    """Queue mutations while offline and reconcile progress on resume."""

    def __init__(
        self,
        settings: Settings | None = None,
        services: ServiceContainer | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            settings: Settings to build services from (defaults to get_settings()).
            services: Pre-built services; overrides settings-based wiring.
        """
        self._settings = settings or get_settings()
        self._services = services or ServiceFactory(self._settings).create_all()
        self._started = False

    @property
    def services(self) -> ServiceContainer:
        return self._services

    async def start(self) -> None:
        """Start the connectivity probe. Safe to call multiple times."""
        if self._started:
            return
        self._services.monitor.start()
        self._started = True
        logger.info("Offline sync client started (%d item(s) queued)", self.pending())

    async def stop(self, timeout: float = 5.0) -> None:
        """Stop background work and flush pending writes best-effort.

        An in-flight drain is allowed to finish within timeout. Safe to call
        on a client that was never started.
        """
        await self._services.monitor.stop(timeout=timeout)
        try:
            await asyncio.wait_for(self._services.dispatch.wait_idle(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("Drain still running at shutdown")
        self._services.queue.close()

        aclose = getattr(self._services.gateway, "aclose", None)
        if aclose is not None:
            await aclose()
        probe_close = getattr(self._services.probe, "aclose", None)
        if probe_close is not None:
            await probe_close()

        self._started = False
        logger.info("Offline sync client stopped")

    async def __aenter__(self) -> OfflineSyncClient:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    def enqueue(self, url: str, payload: Any = None, method: str = "POST") -> QueueItem:
        """Queue a mutation for delivery; fire-and-forget.

        Accepted regardless of connectivity. If the client believes it is
        online, a drain is scheduled right away, which requires a running
        event loop.
        """
        target = RequestTarget.from_json({"url": url, "method": method})
        item = self._services.queue.enqueue(target, payload)
        if self._services.monitor.online:
            self._services.dispatch.trigger()
        return item

    async def flush(self) -> DrainReport:
        """Drain the queue now (coalesced if a drain is already running)."""
        return await self._services.dispatch.flush()

    def set_online(self, online: bool) -> None:
        """Forward a platform online/offline signal to the monitor."""
        self._services.monitor.notify(online)

    async def resume(self, owner_id: str) -> ReconcileResult:
        return await self._services.reconciler.resume(owner_id)

    async def advance(self, owner_id: str, step: int, data: Any) -> ProgressSnapshot:
        return await self._services.reconciler.advance(owner_id, step, data)

    def current(self, owner_id: str) -> ProgressSnapshot | None:
        return self._services.reconciler.current(owner_id)

    def pending(self) -> int:
        return self._services.queue.size()

    def get_stats(self) -> dict[str, Any]:
        return {
            "pending": self.pending(),
            "dispatch": self._services.dispatch.get_stats(),
            "connectivity": self._services.monitor.get_stats(),
        }

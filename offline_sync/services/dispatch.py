"""Dispatch loop that drains the persistent queue through the remote gateway.

One pass walks the queue in enqueue order:
    - delivered          -> removed from the queue
    - failed, attempts<N -> kept for a later pass (attempts persisted)
    - failed, attempts>=N -> removed permanently (accepted data loss)
    - permanent rejection -> removed at once unless retry_permanent_failures

At most one pass runs at a time. A flush requested while a pass is in
flight is coalesced: it returns immediately, and the running pass decides
on completion whether a follow-up pass is needed. The follow-up covers items
enqueued after the pass started that it never attempted, plus items whose
last attempt began before a reconnect arrived. Plain flush requests never
retry a failed item within the same flush, so a burst of triggers cannot
burn its retry budget.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from offline_sync.core.errors import PermanentDeliveryError, TransientDeliveryError
from offline_sync.core.models import DrainReport, QueueItem
from offline_sync.ports.gateway import RemoteGatewayProtocol
from offline_sync.services.queue import PersistentQueue

logger = logging.getLogger(__name__)


class DispatchLoop:
    """Delivers queued mutations in FIFO order under a bounded retry policy."""

    def __init__(
        self,
        queue: PersistentQueue,
        gateway: RemoteGatewayProtocol,
        max_attempts: int = 5,
        retry_permanent_failures: bool = False,
    ) -> None:
        """Initialize the dispatch loop.

        Args:
            queue: Queue to drain.
            gateway: Remote gateway used for delivery.
            max_attempts: Failed deliveries after which an item is dropped.
            retry_permanent_failures: Treat 4xx rejections like transient errors.
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        self._queue = queue
        self._gateway = gateway
        self._max_attempts = max_attempts
        self._retry_permanent = retry_permanent_failures

        # Exclusive in-flight marker; released on every exit path by `async with`
        self._in_flight = asyncio.Lock()
        self._rerun_requested = False
        # Bumped on every reconnect; failures recorded under an older epoch
        # may be the outage itself and earn one more attempt
        self._epoch = 0
        self._tasks: set[asyncio.Task[DrainReport]] = set()

        # Statistics
        self._flushes = 0
        self._coalesced = 0
        self._delivered = 0
        self._dropped = 0
        self._failures = 0

    @property
    def in_flight(self) -> bool:
        return self._in_flight.locked()

    def trigger(self, reconnected: bool = False) -> asyncio.Task[DrainReport] | None:
        """Schedule a flush without waiting for it.

        Must be called from inside a running event loop.

        Args:
            reconnected: True when the request comes from an offline->online
                transition. A drain already in flight then re-attempts items
                that failed before the transition.

        Returns:
            The scheduled task, or None if a pass is already in flight and
            the request was coalesced into it.
        """
        if reconnected:
            self._epoch += 1
        if self._in_flight.locked():
            self._note_coalesced()
            return None
        task = asyncio.get_running_loop().create_task(self.flush(), name="offline-sync-flush")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def flush(self) -> DrainReport:
        """Drain the queue once (plus any follow-up pass the drain needs).

        Returns:
            Report of delivered, retained and dropped item ids. If another
            flush was already running, an empty report with coalesced=True.
        """
        if self._in_flight.locked():
            self._note_coalesced()
            return DrainReport(coalesced=True)

        async with self._in_flight:
            self._flushes += 1
            self._rerun_requested = False
            report = DrainReport()
            # item id -> epoch at which its latest attempt started
            attempted: dict[str, int] = {}

            while True:
                await self._drain_pass(report, attempted)
                if not self._rerun_requested:
                    break
                self._rerun_requested = False
                if not self._pending(attempted):
                    break
                logger.debug("Coalesced trigger found items to retry, running follow-up pass")

            if report.attempted:
                logger.info(
                    "Drain finished: delivered=%d retained=%d dropped=%d remaining=%d",
                    len(report.delivered),
                    len(report.retained),
                    len(report.dropped),
                    self._queue.size(),
                )
            return report

    async def wait_idle(self) -> None:
        """Wait for every scheduled flush task to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def get_stats(self) -> dict[str, Any]:
        return {
            "in_flight": self.in_flight,
            "flushes": self._flushes,
            "coalesced": self._coalesced,
            "delivered": self._delivered,
            "dropped": self._dropped,
            "failures": self._failures,
            "reconnects": self._epoch,
            "max_attempts": self._max_attempts,
            "retry_permanent_failures": self._retry_permanent,
        }

    def _note_coalesced(self) -> None:
        self._rerun_requested = True
        self._coalesced += 1
        logger.debug("Flush already in flight, trigger coalesced")

    def _pending(self, attempted: dict[str, int]) -> list[QueueItem]:
        return [
            item
            for item in self._queue.drain()
            if item.id not in attempted or attempted[item.id] < self._epoch
        ]

    async def _drain_pass(self, report: DrainReport, attempted: dict[str, int]) -> None:
        report.passes += 1

        for item in self._pending(attempted):
            attempted[item.id] = self._epoch
            # Skip items removed (e.g. cleared) while an earlier delivery was suspended
            if self._queue.get(item.id) is None:
                continue
            # A retry after reconnect reports only its latest outcome
            if item.id in report.retained:
                report.retained.remove(item.id)
            await self._deliver(item, report)
            # Let other tasks interleave between deliveries
            await asyncio.sleep(0)

    async def _deliver(self, item: QueueItem, report: DrainReport) -> None:
        try:
            await self._gateway.send(item.target, item.payload)
        except PermanentDeliveryError as e:
            if not self._retry_permanent:
                self._queue.remove(item.id)
                self._failures += 1
                self._dropped += 1
                report.dropped.append(item.id)
                logger.warning(f"Dropped {item.id} after permanent rejection: {e}")
                return
            self._handle_failure(item, report, e)
        except TransientDeliveryError as e:
            self._handle_failure(item, report, e)
        except Exception as e:
            logger.error(f"Unexpected error delivering {item.id}", exc_info=True)
            self._handle_failure(item, report, e)
        else:
            self._queue.remove(item.id)
            self._delivered += 1
            report.delivered.append(item.id)
            logger.debug(f"Delivered {item.id} ({item.target.method} {item.target.url})")

    def _handle_failure(self, item: QueueItem, report: DrainReport, error: Exception) -> None:
        self._failures += 1
        attempts = self._queue.record_failure(item.id)
        if attempts is None:
            return
        if attempts >= self._max_attempts:
            self._queue.remove(item.id)
            self._dropped += 1
            report.dropped.append(item.id)
            logger.warning(
                f"Dropped {item.id} after {attempts} failed attempt(s) "
                f"({item.target.method} {item.target.url}): {error}"
            )
        else:
            report.retained.append(item.id)
            logger.info(
                f"Delivery of {item.id} failed ({attempts}/{self._max_attempts}), "
                f"will retry on next drain: {error}"
            )

"""Connectivity monitor that turns reachability transitions into flushes.

The host application owns the monitor's lifetime:
- notify(online): feed a platform online/offline signal
- start(): idempotent, spawns the optional probe task
- stop(timeout): cancels the probe task and awaits it

Only offline->online (or unknown->online) transitions trigger a flush.
Repeated online signals are not transitions, and the dispatch loop's
in-flight marker coalesces anything that still overlaps a running drain.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from offline_sync.ports.gateway import ReachabilityProbeProtocol
from offline_sync.services.dispatch import DispatchLoop

logger = logging.getLogger(__name__)

StateListener = Callable[[bool], None]


class ConnectivityMonitor:
    """Tracks online state and triggers DispatchLoop on reconnection."""

    def __init__(
        self,
        dispatch: DispatchLoop,
        probe: ReachabilityProbeProtocol | None = None,
        probe_interval: float = 15.0,
    ) -> None:
        """Initialize the monitor.

        Args:
            dispatch: Loop to trigger when connectivity returns.
            probe: Optional reachability probe polled by start().
            probe_interval: Seconds between probes.
        """
        if probe_interval <= 0:
            raise ValueError("probe_interval must be positive")

        self._dispatch = dispatch
        self._probe = probe
        self._probe_interval = probe_interval

        self._online: bool | None = None
        self._listeners: list[StateListener] = []
        self._probe_task: asyncio.Task[None] | None = None

        # Statistics
        self._transitions = 0
        self._flushes_triggered = 0

    @property
    def online(self) -> bool | None:
        """Last observed state; None until the first signal."""
        return self._online

    @property
    def running(self) -> bool:
        return self._probe_task is not None and not self._probe_task.done()

    def add_listener(self, listener: StateListener) -> None:
        """Register a callback invoked with the new state on every transition."""
        self._listeners.append(listener)

    def notify(self, online: bool) -> asyncio.Task[Any] | None:
        """Record an online/offline signal.

        Must be called from inside the running event loop.

        Args:
            online: True if the platform reports the network as reachable.

        Returns:
            The flush task started by an offline->online transition, or None
            if the signal was not such a transition or was coalesced.
        """
        previous = self._online
        if previous == online:
            return None

        self._online = online
        self._transitions += 1
        logger.info(
            "Connectivity %s -> %s",
            _describe(previous),
            _describe(online),
        )
        for listener in list(self._listeners):
            try:
                listener(online)
            except Exception:
                logger.error("Connectivity listener failed", exc_info=True)

        if not online:
            return None

        self._flushes_triggered += 1
        return self._dispatch.trigger(reconnected=True)

    def start(self) -> None:
        """Start the background probe task.

        Safe to call multiple times. Without a probe this only logs; state
        then changes through notify() alone.
        """
        if self._probe is None:
            logger.debug("No reachability probe configured, relying on notify()")
            return
        if self.running:
            logger.debug("Connectivity probe already running")
            return

        self._probe_task = asyncio.get_running_loop().create_task(
            self._probe_loop(self._probe), name="offline-sync-probe"
        )
        logger.info("Connectivity probe started (interval=%.1fs)", self._probe_interval)

    async def stop(self, timeout: float = 5.0) -> None:
        """Stop the probe task.

        Args:
            timeout: Maximum seconds to wait for the task to exit.
        """
        task = self._probe_task
        if task is None or task.done():
            return

        logger.info("Stopping connectivity probe...")
        task.cancel()
        try:
            await asyncio.wait_for(task, timeout=timeout)
        except asyncio.CancelledError:
            pass
        except asyncio.TimeoutError:
            logger.warning("Connectivity probe did not stop within timeout")
        finally:
            self._probe_task = None

    def get_stats(self) -> dict[str, Any]:
        return {
            "online": self._online,
            "probe_running": self.running,
            "transitions": self._transitions,
            "flushes_triggered": self._flushes_triggered,
        }

    async def _probe_loop(self, probe: ReachabilityProbeProtocol) -> None:
        logger.debug("Connectivity probe loop started")
        while True:
            try:
                reachable = await probe.is_reachable()
            except Exception:
                logger.error("Reachability probe raised", exc_info=True)
                reachable = False
            self.notify(reachable)
            await asyncio.sleep(self._probe_interval)


def _describe(state: bool | None) -> str:
    if state is None:
        return "unknown"
    return "online" if state else "offline"

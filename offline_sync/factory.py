"""Service factory for dependency injection and initialization.

Centralizes wiring of storage, gateway and services so the client and the
CLI build them the same way, and tests can inject in-memory backends.

Usage:
    from offline_sync.factory import ServiceFactory

    factory = ServiceFactory(settings)
    services = factory.create_all()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from offline_sync.adapters.file_store import JsonFileKeyValueStore
from offline_sync.adapters.http_gateway import HttpReachabilityProbe, HttpRemoteGateway
from offline_sync.config import Settings
from offline_sync.core.errors import ConfigurationError
from offline_sync.services.connectivity import ConnectivityMonitor
from offline_sync.services.dispatch import DispatchLoop
from offline_sync.services.queue import PersistentQueue
from offline_sync.services.reconciler import StateReconciler

if TYPE_CHECKING:
    from offline_sync.ports.gateway import ReachabilityProbeProtocol, RemoteGatewayProtocol
    from offline_sync.ports.storage import KeyValueStoreProtocol

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """Container for all initialized services.

    Attributes:
        store: Local durable key-value store.
        gateway: Remote gateway.
        probe: Reachability probe, if configured.
        queue: Persistent queue of pending mutations.
        dispatch: Dispatch loop draining the queue.
        monitor: Connectivity monitor triggering the dispatch loop.
        reconciler: Progress reconciler.
    """

    store: KeyValueStoreProtocol
    gateway: RemoteGatewayProtocol
    probe: ReachabilityProbeProtocol | None
    queue: PersistentQueue
    dispatch: DispatchLoop
    monitor: ConnectivityMonitor
    reconciler: StateReconciler


class ServiceFactory:
    """Factory for creating and wiring all services.

    Example:
        factory = ServiceFactory(settings)
        services = factory.create_all()
        services.queue.enqueue(RequestTarget("/events"), {"kind": "click"})
    """

    def __init__(
        self,
        settings: Settings,
        store: KeyValueStoreProtocol | None = None,
        gateway: RemoteGatewayProtocol | None = None,
        probe: ReachabilityProbeProtocol | None = None,
    ) -> None:
        """Initialize the factory.

        Args:
            settings: Application settings.
            store: Optional storage override for testing.
            gateway: Optional gateway override for testing.
            probe: Optional reachability probe override.
        """
        self._settings = settings
        self._injected_store = store
        self._injected_gateway = gateway
        self._injected_probe = probe

    def create_store(self) -> KeyValueStoreProtocol:
        if self._injected_store is not None:
            return self._injected_store
        store = JsonFileKeyValueStore(
            self._settings.storage_path,
            lock_timeout=self._settings.lock_timeout_seconds,
        )
        store.cleanup_tmp()
        return store

    def create_gateway(self) -> RemoteGatewayProtocol:
        if self._injected_gateway is not None:
            return self._injected_gateway
        _require_http_url("remote_base_url", self._settings.remote_base_url)
        return HttpRemoteGateway(
            base_url=self._settings.remote_base_url,
            progress_path=self._settings.progress_path,
            auth_token=self._settings.auth_token,
            timeout=self._settings.request_timeout_seconds,
        )

    def create_probe(self) -> ReachabilityProbeProtocol | None:
        if self._injected_probe is not None:
            return self._injected_probe
        if not self._settings.probe_url:
            return None
        _require_http_url("probe_url", self._settings.probe_url)
        return HttpReachabilityProbe(
            url=self._settings.probe_url,
            timeout=self._settings.request_timeout_seconds,
        )

    def create_all(self) -> ServiceContainer:
        """Create and wire every service.

        Returns:
            ServiceContainer with all services initialized.
        """
        store = self.create_store()
        gateway = self.create_gateway()
        probe = self.create_probe()

        queue = PersistentQueue(store, storage_key=self._settings.queue_storage_key)
        dispatch = DispatchLoop(
            queue,
            gateway,
            max_attempts=self._settings.max_delivery_attempts,
            retry_permanent_failures=self._settings.retry_permanent_failures,
        )
        monitor = ConnectivityMonitor(
            dispatch,
            probe=probe,
            probe_interval=self._settings.probe_interval_seconds,
        )
        reconciler = StateReconciler(
            store,
            gateway,
            key_prefix=self._settings.snapshot_key_prefix,
        )

        logger.debug(
            "Services wired (store=%s, gateway=%s, probe=%s)",
            type(store).__name__,
            type(gateway).__name__,
            type(probe).__name__ if probe else None,
        )
        return ServiceContainer(
            store=store,
            gateway=gateway,
            probe=probe,
            queue=queue,
            dispatch=dispatch,
            monitor=monitor,
            reconciler=reconciler,
        )


def _require_http_url(name: str, value: str) -> None:
    if not value.startswith(("http://", "https://")):
        raise ConfigurationError(f"{name} must be an http(s) URL, got {value!r}")

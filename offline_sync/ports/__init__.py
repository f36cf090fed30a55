"""Port interfaces for offline-sync."""

from offline_sync.ports.gateway import (
    ReachabilityProbeProtocol,
    RemoteGatewayProtocol,
)
from offline_sync.ports.storage import KeyValueStoreProtocol

__all__ = [
    "KeyValueStoreProtocol",
    "ReachabilityProbeProtocol",
    "RemoteGatewayProtocol",
]

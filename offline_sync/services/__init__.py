"""Service layer for offline-sync."""

from offline_sync.services.connectivity import ConnectivityMonitor
from offline_sync.services.dispatch import DispatchLoop
from offline_sync.services.queue import PersistentQueue
from offline_sync.services.reconciler import StateReconciler, choose_authoritative

__all__ = [
    "ConnectivityMonitor",
    "DispatchLoop",
    "PersistentQueue",
    "StateReconciler",
    "choose_authoritative",
]

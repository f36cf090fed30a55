"""offline-sync - durable offline mutation queue and progress reconciliation."""

__version__ = "0.1.0"

from offline_sync.client import OfflineSyncClient
from offline_sync.config import Settings, get_settings
from offline_sync.core import (
    ConfigurationError,
    DeliveryError,
    DrainReport,
    OfflineSyncError,
    PermanentDeliveryError,
    ProgressAdvanceError,
    ProgressRegressionError,
    ProgressSnapshot,
    QueueItem,
    ReconcileResult,
    ReconciliationError,
    RemoteSnapshotError,
    RequestTarget,
    StorageError,
    TransientDeliveryError,
    ValidationError,
)
from offline_sync.services import (
    ConnectivityMonitor,
    DispatchLoop,
    PersistentQueue,
    StateReconciler,
)

__all__ = [
    # Version info
    "__version__",
    # Configuration
    "Settings",
    "get_settings",
    # Client
    "OfflineSyncClient",
    # Services
    "ConnectivityMonitor",
    "DispatchLoop",
    "PersistentQueue",
    "StateReconciler",
    # Errors
    "OfflineSyncError",
    "ConfigurationError",
    "ValidationError",
    "StorageError",
    "DeliveryError",
    "TransientDeliveryError",
    "PermanentDeliveryError",
    "RemoteSnapshotError",
    "ReconciliationError",
    "ProgressAdvanceError",
    "ProgressRegressionError",
    # Models
    "RequestTarget",
    "QueueItem",
    "ProgressSnapshot",
    "DrainReport",
    "ReconcileResult",
]

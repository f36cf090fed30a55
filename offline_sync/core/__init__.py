"""Core components for offline-sync."""

from offline_sync.core.errors import (
    ConfigurationError,
    DeliveryError,
    OfflineSyncError,
    PermanentDeliveryError,
    ProgressAdvanceError,
    ProgressRegressionError,
    ReconciliationError,
    RemoteSnapshotError,
    StorageError,
    TransientDeliveryError,
    ValidationError,
)
from offline_sync.core.models import (
    DrainReport,
    ProgressSnapshot,
    QueueItem,
    ReconcileResult,
    RequestTarget,
)

__all__ = [
    # Errors
    "ConfigurationError",
    "DeliveryError",
    "OfflineSyncError",
    "PermanentDeliveryError",
    "ProgressAdvanceError",
    "ProgressRegressionError",
    "ReconciliationError",
    "RemoteSnapshotError",
    "StorageError",
    "TransientDeliveryError",
    "ValidationError",
    # Models
    "DrainReport",
    "ProgressSnapshot",
    "QueueItem",
    "ReconcileResult",
    "RequestTarget",
]

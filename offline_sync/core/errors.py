"""Custom exceptions for offline-sync."""


class OfflineSyncError(Exception):
    """Base exception for all offline-sync errors."""

    pass


class ConfigurationError(OfflineSyncError):
    """Raised when configuration is invalid."""

    pass


class ValidationError(OfflineSyncError):
    """Raised when input validation fails."""

    pass


class StorageError(OfflineSyncError):
    """Raised when the local durable store cannot be read or written."""

    pass


class DeliveryError(OfflineSyncError):
    """Base class for failures talking to the remote store.

    Attributes:
        status_code: HTTP status returned by the remote, if any.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class TransientDeliveryError(DeliveryError):
    """Network failure or server-side (5xx, 408, 429) response.

    Retried by the dispatch loop up to the attempt bound.
    """

    pass


class PermanentDeliveryError(DeliveryError):
    """Client-side rejection (4xx) that will not succeed on retry."""

    pass


class RemoteSnapshotError(DeliveryError):
    """Raised when the remote returns a malformed progress snapshot."""

    pass


class ReconciliationError(OfflineSyncError):
    """Raised when resume cannot read or persist a snapshot.

    No fallback snapshot is chosen; the caller decides how to proceed.
    """

    def __init__(self, owner_id: str, message: str) -> None:
        self.owner_id = owner_id
        super().__init__(f"Reconciliation failed for {owner_id}: {message}")


class ProgressAdvanceError(OfflineSyncError):
    """Raised when a progress step could not be confirmed by the remote.

    The local cache is left at its prior step.
    """

    def __init__(self, owner_id: str, step: int, cause: Exception | None = None) -> None:
        self.owner_id = owner_id
        self.step = step
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Failed to advance {owner_id} to step {step}{detail}")


class ProgressRegressionError(ValidationError):
    """Raised when an advance would move an owner's step backwards."""

    def __init__(self, owner_id: str, current_step: int, requested_step: int) -> None:
        self.owner_id = owner_id
        self.current_step = current_step
        self.requested_step = requested_step
        super().__init__(
            f"Step for {owner_id} cannot go from {current_step} back to {requested_step}"
        )

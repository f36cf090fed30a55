"""Configuration system for offline-sync."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Offline sync client configuration."""

    # Local storage
    storage_path: Path = Field(
        default=Path("./.offline-sync"),
        description="Directory holding the durable queue and snapshot cache",
    )
    queue_storage_key: str = Field(
        default="offline_queue_v1",
        description="Storage key holding the serialized pending-mutation queue",
    )
    snapshot_key_prefix: str = Field(
        default="progress_",
        description="Prefix for per-owner progress snapshot keys",
    )
    lock_timeout_seconds: float = Field(
        default=5.0,
        gt=0.0,
        description="Seconds to wait for another process's write to the storage directory",
    )

    # Remote store
    remote_base_url: str = Field(
        default="http://localhost:8000",
        description="Base URL of the authoritative remote store",
    )
    progress_path: str = Field(
        default="/progress",
        description="Path (relative to remote_base_url) of the progress resource",
    )
    auth_token: str | None = Field(
        default=None,
        description="Bearer token sent with every remote request",
    )
    request_timeout_seconds: float = Field(
        default=10.0,
        gt=0.0,
        description="Transport timeout for a single remote request",
    )

    # Delivery policy
    max_delivery_attempts: int = Field(
        default=5,
        ge=1,
        description="Failed deliveries after which a queued item is dropped",
    )
    retry_permanent_failures: bool = Field(
        default=False,
        description="Retry 4xx rejections like transient failures instead of dropping them",
    )

    # Connectivity
    probe_url: str | None = Field(
        default=None,
        description="URL polled to detect reachability (None = signals only)",
    )
    probe_interval_seconds: float = Field(
        default=15.0,
        gt=0.0,
        description="Seconds between reachability probes",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )
    log_json: bool = Field(
        default=False,
        description="Emit structured JSON log lines",
    )

    model_config = {
        "env_prefix": "OFFLINE_SYNC_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }


# Settings singleton with dependency injection support
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the settings instance (lazy-loaded singleton).

    Returns:
        The Settings instance.

    Example:
        from offline_sync.config import get_settings
        settings = get_settings()
        print(settings.storage_path)
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def override_settings(new_settings: Settings) -> None:
    """Override the settings instance (for testing).

    Args:
        new_settings: The new Settings instance to use.
    """
    global _settings
    _settings = new_settings


def reset_settings() -> None:
    """Reset settings to None (forces reload on next get_settings call)."""
    global _settings
    _settings = None

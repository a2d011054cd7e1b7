"""
Configuration management for activitysync.
"""

import os
from pathlib import Path
from typing import Optional
from dataclasses import dataclass

from .exceptions import ConfigError


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {value!r}")


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {value!r}")


@dataclass
class Config:
    """Main configuration class."""

    # Data directory
    data_dir: Path = Path.home() / ".activitysync"
    store_file_name: str = "user-activities.json"

    # Remote table
    remote_endpoint: Optional[str] = None
    remote_credential: Optional[str] = None
    table_name: str = "user_activities"

    # Sync configuration
    sync_interval_ms: int = 60_000
    auto_sync_enabled: bool = True
    sync_timeout_s: float = 30.0
    max_backoff_ms: int = 15 * 60 * 1000
    sync_include_metadata: bool = False

    # Durable queue
    max_queued_events: int = 10_000

    # Debounce windows
    typing_debounce_ms: int = 1000
    file_operation_debounce_ms: int = 1000

    # Production builds refuse to start without remote credentials
    production: bool = False

    @property
    def store_path(self) -> Path:
        return self.data_dir / self.store_file_name

    def validate(self) -> None:
        """Fail fast on settings that cannot work."""
        if self.sync_interval_ms <= 0:
            raise ConfigError("sync_interval_ms must be positive")
        if self.max_queued_events <= 0:
            raise ConfigError("max_queued_events must be positive")
        if self.production and not (self.remote_endpoint and self.remote_credential):
            raise ConfigError(
                "remote_endpoint and remote_credential are required in production"
            )

    @classmethod
    def from_env(cls) -> "Config":
        """Create config from environment variables."""
        return cls(
            data_dir=Path(os.getenv("ACTIVITYSYNC_DATA_DIR", str(Path.home() / ".activitysync"))),
            remote_endpoint=os.getenv("ACTIVITYSYNC_REMOTE_ENDPOINT") or None,
            remote_credential=os.getenv("ACTIVITYSYNC_REMOTE_CREDENTIAL") or None,
            table_name=os.getenv("ACTIVITYSYNC_TABLE_NAME", "user_activities"),
            sync_interval_ms=_env_int("ACTIVITYSYNC_SYNC_INTERVAL_MS", 60_000),
            auto_sync_enabled=_env_bool("ACTIVITYSYNC_AUTO_SYNC", True),
            sync_timeout_s=_env_float("ACTIVITYSYNC_SYNC_TIMEOUT_S", 30.0),
            max_backoff_ms=_env_int("ACTIVITYSYNC_MAX_BACKOFF_MS", 15 * 60 * 1000),
            sync_include_metadata=_env_bool("ACTIVITYSYNC_SYNC_INCLUDE_METADATA", False),
            max_queued_events=_env_int("ACTIVITYSYNC_MAX_QUEUED_EVENTS", 10_000),
            typing_debounce_ms=_env_int("ACTIVITYSYNC_TYPING_DEBOUNCE_MS", 1000),
            file_operation_debounce_ms=_env_int("ACTIVITYSYNC_FILE_OPERATION_DEBOUNCE_MS", 1000),
            production=_env_bool("ACTIVITYSYNC_PRODUCTION", False),
        )


# Global config instance
config = Config.from_env()

"""
activitysync: local-first user activity telemetry with periodic remote sync.
"""

from .models import (
    ActivityContext,
    ActivityEvent,
    ActivityType,
    StorageStats,
    SyncResult,
    SyncStatus,
)
from .service import ActivityPipeline

__version__ = "0.1.0"

__all__ = [
    "ActivityContext",
    "ActivityEvent",
    "ActivityType",
    "ActivityPipeline",
    "StorageStats",
    "SyncResult",
    "SyncStatus",
]

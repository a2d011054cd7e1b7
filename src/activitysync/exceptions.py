"""
Exception types raised inside activitysync.

None of these escape to the host application through the public pipeline
operations; they are caught at the component boundaries and turned into log
records, sync results or status updates.
"""

from typing import Optional


class ActivitySyncError(Exception):
    """Base class for activitysync errors."""


class ConfigError(ActivitySyncError):
    """Invalid or missing configuration."""


class RemoteInsertError(ActivitySyncError):
    """The remote table rejected a bulk insert or could not be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code

"""
Remote synchronisation of the local activity queue.
"""

from .engine import SyncEngine, SyncState, to_remote_row
from .remote import RemoteTableClient, RestTableClient

__all__ = [
    "SyncEngine",
    "SyncState",
    "to_remote_row",
    "RemoteTableClient",
    "RestTableClient",
]

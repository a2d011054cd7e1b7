"""
Storage layer for activitysync.
"""

from .json_queue import JSONActivityQueue, LocalFileAccess, empty_document

__all__ = [
    "JSONActivityQueue",
    "LocalFileAccess",
    "empty_document",
]

"""
Core data types shared by the activity pipeline.
"""

import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class ActivityType(str, Enum):
    """Kinds of user activity the pipeline records."""

    TYPING = "typing"
    FILE_OPEN = "file_open"
    FILE_CLOSE = "file_close"
    FILE_SAVE = "file_save"
    FILE_EDIT = "file_edit"
    COMMAND_EXECUTE = "command_execute"
    AI_CHAT_QUESTION = "ai_chat_question"
    AI_CHAT_RESPONSE = "ai_chat_response"
    AUTOCOMPLETE_ACCEPT = "autocomplete_accept"


def now_ms() -> int:
    """Wall-clock time in milliseconds since the epoch."""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class ActivityEvent:
    """
    A single recorded user activity.

    Events are immutable once built. ``to_dict`` produces the shape stored in
    the local JSON document; ``from_dict`` reverses it.
    """

    type: ActivityType
    timestamp: int
    session_id: str
    data: Dict[str, Any] = field(default_factory=dict)
    user_id: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        record: Dict[str, Any] = {
            "type": self.type.value,
            "timestamp": self.timestamp,
            "sessionId": self.session_id,
            "data": self.data,
        }
        if self.user_id is not None:
            record["userId"] = self.user_id
        if self.metadata is not None:
            record["metadata"] = self.metadata
        return record

    @classmethod
    def from_dict(cls, record: Dict[str, Any]) -> "ActivityEvent":
        return cls(
            type=ActivityType(record["type"]),
            timestamp=int(record["timestamp"]),
            session_id=record["sessionId"],
            data=record.get("data") or {},
            user_id=record.get("userId"),
            metadata=record.get("metadata"),
        )


class ActivityContext:
    """
    Identity of the running process: one session id for its whole lifetime and
    an optional user id that can be attached once known.
    """

    def __init__(self, session_id: Optional[str] = None, user_id: Optional[str] = None):
        self._session_id = session_id or str(uuid.uuid4())
        self._user_id = user_id

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def user_id(self) -> Optional[str]:
        return self._user_id

    def set_user_id(self, user_id: Optional[str]) -> None:
        self._user_id = user_id


@dataclass(frozen=True)
class SyncStatus:
    is_online: bool = False
    last_sync: Optional[datetime] = None
    last_error: Optional[str] = None
    pending_count: int = 0


@dataclass(frozen=True)
class SyncResult:
    success: bool
    synced: int = 0
    error: Optional[str] = None


@dataclass(frozen=True)
class StorageStats:
    total_events: int
    oldest_event_timestamp: int
    last_event_timestamp: int
    storage_size: int

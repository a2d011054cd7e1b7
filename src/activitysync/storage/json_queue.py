"""
Durable local queue of not-yet-synced activity events.
Stored as a single JSON document in the data directory.
"""

import asyncio
import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from ..config import config
from ..models import ActivityEvent, StorageStats

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "1.0.0"


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def empty_document(last_sync: Optional[str] = None) -> Dict[str, Any]:
    document: Dict[str, Any] = {
        "activities": [],
        "metadata": {
            "createdAt": _utc_now_iso(),
            "version": SCHEMA_VERSION,
        },
    }
    if last_sync:
        document["lastSync"] = last_sync
    return document


class LocalFileAccess:
    """
    Blocking file primitives used by the queue.
    The queue runs them in a worker thread so the event loop never blocks.
    """

    def read_text(self, path: Path) -> str:
        return path.read_text(encoding="utf-8")

    def create_folder(self, path: Path) -> None:
        path.mkdir(parents=True, exist_ok=True)

    def write_text(self, path: Path, content: str) -> None:
        """Write via a temp file in the same directory, then rename over the target."""
        self.create_folder(path.parent)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.replace(tmp_name, path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            raise


class JSONActivityQueue:
    """
    Disk-backed queue of activity events.

    Every mutation is a read-modify-write of the whole document performed under
    one ``asyncio.Lock``, so concurrent appends from several producers and the
    sync engine's drain never overwrite each other inside this process.

    The queue is capped at ``max_events``; on overflow the oldest events are
    evicted.
    """

    def __init__(
        self,
        path: Optional[Path] = None,
        max_events: Optional[int] = None,
        file_access: Optional[LocalFileAccess] = None,
    ):
        self.path = Path(path) if path else config.store_path
        self.max_events = max_events or config.max_queued_events
        self.files = file_access or LocalFileAccess()
        self._lock = asyncio.Lock()

    def _read_sync(self) -> Dict[str, Any]:
        try:
            raw = self.files.read_text(self.path)
        except FileNotFoundError:
            return empty_document()
        except UnicodeDecodeError as e:
            logger.warning(f"Activity store {self.path} is not valid UTF-8, starting empty: {e}")
            return empty_document()
        except OSError as e:
            logger.debug(f"Could not read activity store {self.path}: {e}")
            return empty_document()

        try:
            document = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Activity store {self.path} is corrupt, starting empty: {e}")
            return empty_document()

        if not isinstance(document, dict) or not isinstance(document.get("activities"), list):
            logger.warning(f"Activity store {self.path} has unexpected shape, starting empty")
            return empty_document()

        metadata = document.get("metadata")
        if not isinstance(metadata, dict):
            document["metadata"] = empty_document()["metadata"]
        return document

    def _write_sync(self, document: Dict[str, Any]) -> None:
        self.files.write_text(self.path, json.dumps(document, indent=2, default=str))

    async def read_document(self) -> Dict[str, Any]:
        """Parse the store; a missing or corrupt file reads as an empty document."""
        return await asyncio.to_thread(self._read_sync)

    async def read_all(self) -> List[ActivityEvent]:
        """Every decodable queued event, oldest first; malformed records are skipped."""
        document = await self.read_document()
        return self._decode(document["activities"])

    @staticmethod
    def _decode(records: Iterable[Any]) -> List[ActivityEvent]:
        events = []
        for record in records:
            try:
                events.append(ActivityEvent.from_dict(record))
            except (KeyError, TypeError, ValueError) as e:
                logger.debug(f"Skipping malformed activity record: {e}")
        return events

    async def append(self, event: ActivityEvent) -> None:
        """
        Add one event at the end of the queue.

        Args:
            event: Event to persist

        When the queue already holds ``max_events`` the oldest records are
        evicted to make room.
        """
        async with self._lock:
            document = await self.read_document()
            activities = document["activities"]
            activities.append(event.to_dict())

            overflow = len(activities) - self.max_events
            if overflow > 0:
                del activities[:overflow]
                logger.warning(
                    f"Activity queue full ({self.max_events}), evicted {overflow} oldest event(s)"
                )

            await asyncio.to_thread(self._write_sync, document)

    async def clear(self, mark_synced: bool = False) -> None:
        """Replace the stored sequence with an empty one (the file is kept)."""
        async with self._lock:
            last_sync = _utc_now_iso() if mark_synced else None
            await asyncio.to_thread(self._write_sync, empty_document(last_sync))

    async def remove(self, events: List[ActivityEvent]) -> int:
        """
        Remove exactly ``events`` from the queue and stamp ``lastSync``.

        Events appended after ``events`` were read are kept. Returns the number
        of records removed.
        """
        async with self._lock:
            document = await self.read_document()
            pending = [event.to_dict() for event in events]
            remaining = []
            removed = 0
            for record in document["activities"]:
                try:
                    index = pending.index(record)
                except ValueError:
                    remaining.append(record)
                    continue
                del pending[index]
                removed += 1

            document["activities"] = remaining
            document["lastSync"] = _utc_now_iso()
            await asyncio.to_thread(self._write_sync, document)
            return removed

    async def remove_older_than(self, timestamp_ms: int) -> int:
        """
        Drop records with a timestamp before ``timestamp_ms``.

        Returns:
            Number of records removed
        """
        async with self._lock:
            document = await self.read_document()
            before = len(document["activities"])
            document["activities"] = [
                record
                for record in document["activities"]
                if isinstance(record, dict) and record.get("timestamp", 0) >= timestamp_ms
            ]
            await asyncio.to_thread(self._write_sync, document)
            return before - len(document["activities"])

    async def count(self) -> int:
        """Number of queued records."""
        document = await self.read_document()
        return len(document["activities"])

    async def stats(self) -> StorageStats:
        """Queue size, oldest/newest timestamps (0 when empty) and file size in bytes."""
        events = await self.read_all()
        try:
            size = await asyncio.to_thread(lambda: self.path.stat().st_size)
        except OSError:
            size = 0
        return StorageStats(
            total_events=len(events),
            oldest_event_timestamp=events[0].timestamp if events else 0,
            last_event_timestamp=events[-1].timestamp if events else 0,
            storage_size=size,
        )

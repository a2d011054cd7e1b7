"""
Activity event bus.
Notifies in-process subscribers synchronously, then persists asynchronously.
"""

import asyncio
import copy
import logging
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional, Set

from .events import Emitter, Subscription
from .models import ActivityContext, ActivityEvent, ActivityType, StorageStats, now_ms
from .storage.json_queue import JSONActivityQueue

logger = logging.getLogger(__name__)


class ActivityBus:
    """
    Entry point for producers.

    ``track_activity`` fires subscribers first and then hands the event to the
    durable queue in a background task (fire-and-forget). A failed append is
    logged and the event is lost; the caller never sees the error.
    """

    def __init__(
        self,
        context: ActivityContext,
        queue: JSONActivityQueue,
        clock: Callable[[], int] = now_ms,
    ):
        self.context = context
        self.queue = queue
        self.clock = clock
        self._on_activity = Emitter[ActivityEvent]("activity")
        self._pending: Set[asyncio.Task] = set()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def on_activity_event(self, listener: Callable[[ActivityEvent], None]) -> Subscription:
        """Subscribe to every tracked event; dispose the returned handle to stop."""
        return self._on_activity.subscribe(listener)

    def track_activity(
        self,
        activity_type: ActivityType,
        data: Dict[str, Any],
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Optional[ActivityEvent]:
        """
        Record one activity.

        Args:
            activity_type: Kind of activity
            data: Activity payload (copied, later changes are not recorded)
            metadata: Optional extra fields

        Returns:
            The event handed to subscribers, or ``None`` once the bus is closed
        """
        if self._closed:
            logger.debug(f"Dropping {activity_type} activity, bus is closed")
            return None

        event = ActivityEvent(
            type=ActivityType(activity_type),
            timestamp=self.clock(),
            session_id=self.context.session_id,
            user_id=self.context.user_id,
            data=copy.deepcopy(dict(data)),
            metadata=copy.deepcopy(dict(metadata)) if metadata is not None else None,
        )
        # Subscribers get their own copy; the queue writes the snapshot taken here.
        stored = replace(
            event,
            data=copy.deepcopy(event.data),
            metadata=copy.deepcopy(event.metadata),
        )

        self._on_activity.fire(event)

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(f"No running event loop, {event.type.value} activity not persisted")
            return event

        task = loop.create_task(self._persist(stored))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return event

    async def _persist(self, event: ActivityEvent) -> None:
        try:
            await self.queue.append(event)
        except Exception as e:
            logger.warning(f"Failed to persist {event.type.value} activity: {e}", exc_info=True)

    async def flush(self) -> None:
        """Wait until every scheduled append has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def get_activities(
        self,
        from_ms: Optional[int] = None,
        to_ms: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[ActivityEvent]:
        """
        Stored events with ``from_ms <= timestamp <= to_ms`` in stored order.
        Either bound may be omitted. ``limit`` keeps the most recent events.
        """
        events = await self.queue.read_all()
        if from_ms is not None:
            events = [e for e in events if e.timestamp >= from_ms]
        if to_ms is not None:
            events = [e for e in events if e.timestamp <= to_ms]
        if limit is not None:
            events = events[-limit:] if limit > 0 else []
        return events

    async def clear_activities(self) -> None:
        """Drop every queued event."""
        try:
            await self.queue.clear()
        except Exception as e:
            logger.warning(f"Failed to clear activities: {e}", exc_info=True)

    async def clear_old_activities(self, older_than_ms: int) -> int:
        """
        Drop events recorded before ``older_than_ms``.

        Returns:
            Number of events removed (0 when the store could not be written)
        """
        try:
            return await self.queue.remove_older_than(older_than_ms)
        except Exception as e:
            logger.warning(f"Failed to prune activities: {e}", exc_info=True)
            return 0

    async def get_storage_stats(self) -> StorageStats:
        """Event count, time span and on-disk size of the queue."""
        return await self.queue.stats()

    async def close(self) -> None:
        """Refuse further events and wait for pending appends."""
        self._closed = True
        await self.flush()
        self._on_activity.dispose()

"""
Sync engine.
Drains the local activity queue into the remote table on a timer or on demand.
"""

import asyncio
import logging
import random
from dataclasses import replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from ..events import Emitter, Subscription
from ..models import ActivityEvent, SyncResult, SyncStatus
from ..scheduler import Scheduler, TimerHandle
from ..storage.json_queue import JSONActivityQueue
from .remote import RemoteTableClient

logger = logging.getLogger(__name__)

NOT_INITIALIZED = "not initialized"


class SyncState(Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    SYNCING = "syncing"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_remote_row(
    event: ActivityEvent,
    created_at: str,
    include_metadata: bool = False,
) -> Dict[str, Any]:
    """Map a stored event to the remote table's row shape."""
    row: Dict[str, Any] = {
        "type": event.type.value,
        "timestamp": event.timestamp,
        "session_id": event.session_id,
        "data": event.data,
        "created_at": created_at,
    }
    if event.user_id is not None:
        row["user_id"] = event.user_id
    if include_metadata and event.metadata is not None:
        row["metadata"] = event.metadata
    return row


class SyncEngine:
    """
    Reconciles the durable queue with the remote table.

    State machine: UNINITIALIZED until ``initialize`` builds the remote client,
    then READY, and SYNCING for the duration of each attempt.

    Each attempt is all-or-nothing: one bulk insert of everything queued. On
    success exactly the sent events are removed from the queue (events appended
    meanwhile stay); on failure the queue is untouched and the error lands in
    the status. Only one attempt runs at a time; concurrent callers share it.

    Auto-sync ticks every ``interval_ms``. After consecutive failures the next
    tick backs off exponentially, capped at ``max_backoff_ms``, with jitter.
    """

    def __init__(
        self,
        queue: JSONActivityQueue,
        scheduler: Scheduler,
        client_factory: Optional[Callable[[], RemoteTableClient]],
        table_name: str = "user_activities",
        interval_ms: int = 60_000,
        auto_sync_enabled: bool = True,
        timeout_s: float = 30.0,
        max_backoff_ms: int = 15 * 60 * 1000,
        include_metadata: bool = False,
        clock: Callable[[], datetime] = _utc_now,
        jitter: Callable[[], float] = random.random,
    ):
        self.queue = queue
        self.scheduler = scheduler
        self.client_factory = client_factory
        self.table_name = table_name
        self.interval_ms = interval_ms
        self.auto_sync_enabled = auto_sync_enabled
        self.timeout_s = timeout_s
        self.max_backoff_ms = max_backoff_ms
        self.include_metadata = include_metadata
        self.clock = clock
        self.jitter = jitter

        self.state = SyncState.UNINITIALIZED
        self.client: Optional[RemoteTableClient] = None
        self.consecutive_failures = 0

        self._status = SyncStatus()
        self._on_status_change = Emitter[SyncStatus]("sync.status")
        self._inflight: Optional[asyncio.Task] = None
        self._tick_task: Optional[asyncio.Task] = None
        self._timer: Optional[TimerHandle] = None
        self._started = False
        self._disposed = False

    # Status

    def get_status(self) -> SyncStatus:
        """Latest sync status snapshot."""
        return self._status

    def on_status_change(self, listener: Callable[[SyncStatus], None]) -> Subscription:
        """Subscribe to status changes; the listener receives the new status."""
        return self._on_status_change.subscribe(listener)

    def _set_status(self, **changes) -> None:
        self._status = replace(self._status, **changes)
        self._on_status_change.fire(self._status)

    async def refresh_pending_count(self) -> SyncStatus:
        """Re-read the queue size into the status without broadcasting."""
        count = await self.queue.count()
        if count != self._status.pending_count:
            self._status = replace(self._status, pending_count=count)
        return self._status

    # Lifecycle

    def initialize(self) -> bool:
        """
        Build the remote client. Returns False (and stays offline) when that
        fails; calling again retries.
        """
        if self.client is not None:
            return True
        if self.client_factory is None:
            self._set_status(is_online=False, last_error="remote sync is not configured")
            logger.info("Remote sync not configured, activities stay local")
            return False
        try:
            self.client = self.client_factory()
        except Exception as e:
            logger.warning(f"Failed to create remote client: {e}")
            self._set_status(is_online=False, last_error=str(e))
            return False

        self.state = SyncState.READY
        self._set_status(is_online=True, last_error=None)
        return True

    def start(self) -> None:
        """Begin auto-sync ticks (if enabled)."""
        self._started = True
        self._schedule_next()

    async def dispose(self) -> None:
        """Stop the timer, wait for a running attempt and close the remote client."""
        if self._disposed:
            return
        self._disposed = True
        self._cancel_timer()

        pending = [t for t in (self._tick_task, self._inflight) if t is not None and not t.done()]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        if self.client is not None:
            try:
                await self.client.close()
            except Exception:
                logger.debug("Error closing remote client", exc_info=True)
            self.client = None
        self._on_status_change.dispose()

    # Configuration

    def set_interval(self, interval_ms: int) -> None:
        """
        Change the auto-sync interval; a pending tick is rescheduled.

        Args:
            interval_ms: New interval in milliseconds, must be positive
        """
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        self.interval_ms = interval_ms
        if self._timer is not None:
            self._cancel_timer()
            self._schedule_next()

    def enable_auto_sync(self, enabled: bool) -> None:
        """Turn the auto-sync timer on or off. A running attempt is not cancelled."""
        self.auto_sync_enabled = enabled
        if not enabled:
            self._cancel_timer()
        elif self._timer is None and not self._tick_running():
            self._schedule_next()

    # Timer

    def _tick_running(self) -> bool:
        return self._tick_task is not None and not self._tick_task.done()

    def next_delay_ms(self) -> float:
        """
        Delay before the next tick.

        Returns:
            ``interval_ms`` after a success, otherwise the capped exponential
            backoff scaled by a jitter factor in [0.5, 1.0]
        """
        if self.consecutive_failures == 0:
            return float(self.interval_ms)
        cap = max(self.max_backoff_ms, self.interval_ms)
        backoff = min(self.interval_ms * (2 ** self.consecutive_failures), cap)
        return backoff * (0.5 + 0.5 * self.jitter())

    def _schedule_next(self) -> None:
        if self._disposed or not self._started or not self.auto_sync_enabled:
            return
        if self._timer is not None:
            return
        self._timer = self.scheduler.call_later(self.next_delay_ms() / 1000.0, self._on_tick)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_tick(self) -> None:
        self._timer = None
        if self._disposed:
            return
        self._tick_task = asyncio.get_running_loop().create_task(self._tick())

    async def _tick(self) -> None:
        try:
            result = await self.sync_now()
            if not result.success:
                logger.debug(f"Auto-sync failed: {result.error}")
        finally:
            self._schedule_next()

    # Sync

    async def sync_now(self) -> SyncResult:
        """Run one sync attempt, or join the one already running."""
        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.get_running_loop().create_task(self._run_sync())
        return await asyncio.shield(self._inflight)

    async def _run_sync(self) -> SyncResult:
        if self.client is None:
            return SyncResult(success=False, synced=0, error=NOT_INITIALIZED)

        self.state = SyncState.SYNCING
        try:
            return await self._sync_batch()
        finally:
            self.state = SyncState.READY

    async def _sync_batch(self) -> SyncResult:
        events: List[ActivityEvent] = []
        try:
            events = await self.queue.read_all()
            if not events:
                return SyncResult(success=True, synced=0)

            created_at = self.clock().isoformat()
            rows = [to_remote_row(e, created_at, self.include_metadata) for e in events]
            await asyncio.wait_for(
                self.client.insert(self.table_name, rows), timeout=self.timeout_s
            )
        except asyncio.TimeoutError:
            return self._record_failure(
                f"sync timed out after {self.timeout_s:g}s", len(events)
            )
        except Exception as e:
            return self._record_failure(str(e) or type(e).__name__, len(events))

        try:
            await self.queue.remove(events)
        except Exception:
            # The batch is already on the remote side; it will be sent again.
            logger.error("Synced activities could not be removed from the queue", exc_info=True)

        self.consecutive_failures = 0
        pending = await self.queue.count()
        self._set_status(
            is_online=True,
            last_sync=self.clock(),
            last_error=None,
            pending_count=pending,
        )
        logger.info(f"Synced {len(events)} activities to {self.table_name}")
        return SyncResult(success=True, synced=len(events))

    def _record_failure(self, message: str, pending: int) -> SyncResult:
        self.consecutive_failures += 1
        logger.warning(f"Activity sync failed ({self.consecutive_failures} in a row): {message}")
        self._set_status(is_online=False, last_error=message, pending_count=pending)
        return SyncResult(success=False, synced=0, error=message)

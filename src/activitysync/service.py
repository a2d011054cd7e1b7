"""
Activity pipeline: wires capture, bus, durable queue and sync engine together.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Union

from .bus import ActivityBus
from .capture.autocomplete import AutocompleteActivityContributor
from .capture.base import ActivityContributor
from .capture.chat import ChatActivityContributor
from .capture.commands import CommandActivityContributor
from .capture.editor import EditorActivityContributor
from .capture.registry import ContributorRegistry
from .capture.signals import ChatSignals, CommandSignals, EditorSignals
from .config import Config, config as default_config
from .events import Subscription
from .models import (
    ActivityContext,
    ActivityEvent,
    ActivityType,
    StorageStats,
    SyncResult,
    SyncStatus,
)
from .scheduler import LoopScheduler, Scheduler
from .storage.json_queue import JSONActivityQueue
from .sync.engine import SyncEngine
from .sync.remote import RemoteTableClient, RestTableClient

logger = logging.getLogger(__name__)

TimeBound = Union[datetime, int, None]


def _to_ms(value: TimeBound) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return int(value.timestamp() * 1000)
    return int(value)


def default_client_factory(cfg: Config) -> Optional[Callable[[], RemoteTableClient]]:
    """REST client factory when both endpoint and credential are configured."""
    if not (cfg.remote_endpoint and cfg.remote_credential):
        return None

    def factory() -> RemoteTableClient:
        return RestTableClient(
            cfg.remote_endpoint,
            cfg.remote_credential,
            timeout=cfg.sync_timeout_s,
        )

    return factory


class ActivityPipeline:
    """
    Public surface of the activity telemetry system.

    Owns one session context, the contributor registry, the event bus, the
    local queue and the sync engine. ``dispose`` tears them down in that order
    so pending typing bursts still reach the queue and nothing is appended
    afterwards.
    """

    def __init__(
        self,
        cfg: Optional[Config] = None,
        context: Optional[ActivityContext] = None,
        scheduler: Optional[Scheduler] = None,
        client_factory: Optional[Callable[[], RemoteTableClient]] = None,
        queue: Optional[JSONActivityQueue] = None,
    ):
        self.config = cfg or default_config
        self.config.validate()

        self.context = context or ActivityContext()
        self.scheduler = scheduler or LoopScheduler()
        self.queue = queue or JSONActivityQueue(
            path=self.config.store_path,
            max_events=self.config.max_queued_events,
        )
        self.bus = ActivityBus(self.context, self.queue)
        self.registry = ContributorRegistry()
        self.sync = SyncEngine(
            queue=self.queue,
            scheduler=self.scheduler,
            client_factory=client_factory or default_client_factory(self.config),
            table_name=self.config.table_name,
            interval_ms=self.config.sync_interval_ms,
            auto_sync_enabled=self.config.auto_sync_enabled,
            timeout_s=self.config.sync_timeout_s,
            max_backoff_ms=self.config.max_backoff_ms,
            include_metadata=self.config.sync_include_metadata,
        )

        self._init_task: Optional[asyncio.Task] = None
        self._disposed = False

    # Contributors

    def register_contributor(self, contributor: ActivityContributor) -> bool:
        """Add a contributor; returns False for a duplicate id."""
        return self.registry.register(contributor)

    def unregister_contributor(self, contributor_id: str) -> None:
        self.registry.unregister(contributor_id)

    def add_default_contributors(
        self,
        editor: Optional[EditorSignals] = None,
        commands: Optional[CommandSignals] = None,
        chat: Optional[ChatSignals] = None,
    ) -> None:
        """Register the built-in contributors for whichever signal sources exist."""
        if editor is not None:
            self.registry.register(EditorActivityContributor(
                self.bus,
                editor,
                self.scheduler,
                typing_debounce_ms=self.config.typing_debounce_ms,
                file_operation_debounce_ms=self.config.file_operation_debounce_ms,
            ))
            self.registry.register(AutocompleteActivityContributor(self.bus, editor))
        if commands is not None:
            self.registry.register(CommandActivityContributor(self.bus, commands))
        if chat is not None:
            self.registry.register(ChatActivityContributor(self.bus, chat))

    # Lifecycle

    async def start(self) -> None:
        """
        Connect the sync engine, start auto-sync and begin initializing
        contributors in the background (they may wait on their signal sources).
        """
        self.sync.initialize()
        self.sync.start()
        self._init_task = asyncio.get_running_loop().create_task(self.registry.initialize_all())

    async def wait_for_contributors(self) -> None:
        """Wait until every registered contributor has initialized (or failed)."""
        if self._init_task is not None:
            await self._init_task
        else:
            await self.registry.initialize_all()

    async def dispose(self) -> None:
        """Flush pending typing, persist in-flight events and stop syncing."""
        if self._disposed:
            return
        self._disposed = True

        if self._init_task is not None and not self._init_task.done():
            self._init_task.cancel()
            await asyncio.gather(self._init_task, return_exceptions=True)

        self.registry.dispose()
        await self.bus.close()
        await self.sync.dispose()

        cancel_all = getattr(self.scheduler, "cancel_all", None)
        if cancel_all is not None:
            cancel_all()
        logger.debug(f"Activity pipeline for session {self.context.session_id} disposed")

    async def __aenter__(self) -> "ActivityPipeline":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.dispose()

    # Identity

    @property
    def session_id(self) -> str:
        return self.context.session_id

    def set_user_id(self, user_id: Optional[str]) -> None:
        """Attach a user id to events created from now on."""
        self.context.set_user_id(user_id)

    def get_user_id(self) -> Optional[str]:
        return self.context.user_id

    # Activities

    def track_activity(
        self,
        activity_type: ActivityType,
        data: Dict[str, Any],
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Optional[ActivityEvent]:
        """
        Record an activity for the current session.

        Args:
            activity_type: Kind of activity
            data: Activity payload
            metadata: Optional extra fields (not synced unless configured)

        Returns:
            The recorded event, or ``None`` after ``dispose``
        """
        return self.bus.track_activity(activity_type, data, metadata)

    def on_activity_event(self, listener: Callable[[ActivityEvent], None]) -> Subscription:
        return self.bus.on_activity_event(listener)

    async def get_activities(
        self,
        from_date: TimeBound = None,
        to_date: TimeBound = None,
        limit: Optional[int] = None,
    ) -> List[ActivityEvent]:
        """
        Queued events in stored order.

        Args:
            from_date: Inclusive lower bound (datetime or epoch ms)
            to_date: Inclusive upper bound (datetime or epoch ms)
            limit: Keep only the most recent ``limit`` events
        """
        return await self.bus.get_activities(_to_ms(from_date), _to_ms(to_date), limit)

    async def clear_activities(self) -> None:
        await self.bus.clear_activities()

    async def clear_old_activities(self, older_than: TimeBound) -> int:
        return await self.bus.clear_old_activities(_to_ms(older_than) or 0)

    async def get_storage_stats(self) -> StorageStats:
        return await self.bus.get_storage_stats()

    # Sync

    async def manual_sync(self) -> SyncResult:
        """Sync now, or join the attempt already running. Never raises."""
        return await self.sync.sync_now()

    def get_sync_status(self) -> SyncStatus:
        return self.sync.get_status()

    async def refresh_sync_status(self) -> SyncStatus:
        """Status with ``pending_count`` re-read from the queue."""
        return await self.sync.refresh_pending_count()

    def on_sync_status_change(self, listener: Callable[[SyncStatus], None]) -> Subscription:
        return self.sync.on_status_change(listener)

    def set_sync_interval(self, interval_ms: int) -> None:
        self.sync.set_interval(interval_ms)

    def enable_auto_sync(self, enabled: bool) -> None:
        self.sync.enable_auto_sync(enabled)

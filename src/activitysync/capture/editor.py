"""
Editor activity contributor.
Turns editor signals into typing bursts and file open/save/edit events.
"""

import logging

from ..bus import ActivityBus
from ..models import ActivityType, now_ms
from ..scheduler import Scheduler
from .base import ActivityContributor
from .debouncer import (
    OperationDebouncer,
    TypingBurst,
    TypingDebouncer,
    file_extension,
    file_name,
)
from .signals import ContentChange, DirtyChange, EditorSignals

logger = logging.getLogger(__name__)

OPERATION_TYPES = {
    "open": ActivityType.FILE_OPEN,
    "save": ActivityType.FILE_SAVE,
    "edit": ActivityType.FILE_EDIT,
    "close": ActivityType.FILE_CLOSE,
}


class EditorActivityContributor(ActivityContributor):
    """
    Tracks typing and file operations.

    Typing fragments are coalesced per file path; a burst is recorded once the
    file has been quiet for ``typing_debounce_ms``. Repeated open/save/edit of
    the same file inside ``file_operation_debounce_ms`` are dropped.
    Pending typing bursts are recorded on dispose.
    """

    id = "editor-activity"
    priority = 1

    def __init__(
        self,
        bus: ActivityBus,
        signals: EditorSignals,
        scheduler: Scheduler,
        typing_debounce_ms: int = 1000,
        file_operation_debounce_ms: int = 1000,
    ):
        super().__init__(bus)
        self.signals = signals
        self.typing = TypingDebouncer(
            scheduler,
            on_burst=self._record_burst,
            window_ms=typing_debounce_ms,
            clock=bus.clock,
        )
        self.operations = OperationDebouncer(scheduler, window_ms=file_operation_debounce_ms)

    async def initialize(self) -> None:
        await self.signals.when_ready()

        self._register(self.signals.active_editor_changed.subscribe(
            lambda path: self.track_file_operation("open", path)
        ))
        self._register(self.signals.content_changed.subscribe(self._on_content_change))
        self._register(self.signals.saved.subscribe(
            lambda path: self.track_file_operation("save", path)
        ))
        self._register(self.signals.dirty_changed.subscribe(self._on_dirty_change))

    def _on_content_change(self, change: ContentChange) -> None:
        if change.text:
            self.typing.push(change.path, change.text)

    def _on_dirty_change(self, change: DirtyChange) -> None:
        if change.is_dirty:
            self.track_file_operation("edit", change.path)

    def _record_burst(self, burst: TypingBurst) -> None:
        self.track(ActivityType.TYPING, burst.to_data())

    def track_file_operation(self, operation: str, path: str) -> None:
        activity_type = OPERATION_TYPES.get(operation)
        if activity_type is None or not path:
            logger.debug(f"Ignoring file operation {operation!r} for {path!r}")
            return
        if not self.operations.should_fire(operation, path):
            return

        self.track(activity_type, {
            "path": path,
            "fileName": file_name(path),
            "fileExtension": file_extension(path),
            "operation": operation,
            "timestamp": now_ms(),
        })

    def dispose(self) -> None:
        if self.disposed:
            return
        self.typing.dispose()
        self.operations.dispose()
        super().dispose()

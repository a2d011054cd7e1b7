"""
Filesystem signal adapter.
Feeds editor signals from a watched directory tree when no editor API is
available.
"""

import asyncio
import logging
from pathlib import Path
from typing import Iterable, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .signals import DirtyChange, EditorSignals

logger = logging.getLogger(__name__)

DEFAULT_IGNORED_PARTS = (".git", "__pycache__", "node_modules", ".venv")


class FileSystemSignalAdapter(FileSystemEventHandler):
    """
    Translates watchdog events into ``EditorSignals``.

    - created  -> dirty change (edit)
    - modified -> saved
    - moved    -> saved (destination path; editors save via rename)

    Watchdog delivers events on its observer thread; they are handed to the
    event loop with ``call_soon_threadsafe`` so emitters only ever fire on the
    loop thread.
    """

    def __init__(
        self,
        signals: EditorSignals,
        loop: asyncio.AbstractEventLoop,
        ignored_parts: Iterable[str] = DEFAULT_IGNORED_PARTS,
    ):
        super().__init__()
        self.signals = signals
        self.loop = loop
        self.ignored_parts = frozenset(ignored_parts)

    def _ignored(self, path: str) -> bool:
        return any(part in self.ignored_parts for part in Path(path).parts)

    def _post(self, callback, value) -> None:
        try:
            self.loop.call_soon_threadsafe(callback, value)
        except RuntimeError:
            logger.debug("Event loop closed, dropping filesystem signal")

    def on_created(self, event: FileSystemEvent) -> None:
        if event.is_directory or self._ignored(event.src_path):
            return
        self._post(self.signals.dirty_changed.fire, DirtyChange(str(event.src_path), True))

    def on_modified(self, event: FileSystemEvent) -> None:
        if event.is_directory or self._ignored(event.src_path):
            return
        self._post(self.signals.saved.fire, str(event.src_path))

    def on_moved(self, event: FileSystemEvent) -> None:
        if event.is_directory or self._ignored(event.dest_path):
            return
        self._post(self.signals.saved.fire, str(event.dest_path))


def start_filesystem_capture(
    root: str,
    signals: EditorSignals,
    loop: Optional[asyncio.AbstractEventLoop] = None,
    recursive: bool = True,
) -> Observer:
    """
    Start watching ``root`` and mark ``signals`` ready.

    Returns:
        Observer instance (call observer.stop() to stop watching)
    """
    adapter = FileSystemSignalAdapter(signals, loop or asyncio.get_running_loop())
    observer = Observer()
    observer.schedule(adapter, path=str(root), recursive=recursive)
    observer.start()
    signals.mark_ready()
    logger.info(f"Watching {root} for file activity")
    return observer

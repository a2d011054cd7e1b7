"""
Timer abstraction for debounce windows and the auto-sync loop.

Components never call ``asyncio.sleep`` or ``loop.call_later`` directly; they
go through a ``Scheduler`` so tests can drive time by hand.
"""

import asyncio
import time
from typing import Callable, List, Optional, Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def now(self) -> float:
        """Monotonic time in seconds."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Run ``callback`` once after ``delay`` seconds."""


class LoopScheduler:
    """Scheduler backed by the running asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop
        self._handles: List[asyncio.TimerHandle] = []

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> float:
        return time.monotonic()

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self._get_loop()
        handle = loop.call_later(max(delay, 0.0), callback)
        self._handles = [
            h for h in self._handles if not h.cancelled() and h.when() > loop.time()
        ]
        self._handles.append(handle)
        return handle

    def cancel_all(self) -> None:
        for handle in self._handles:
            handle.cancel()
        self._handles.clear()

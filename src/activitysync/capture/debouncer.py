"""
Coalescing of high-frequency raw signals.

Two independent rules:
- typing fragments for one resource are aggregated until the resource has been
  quiet for a full window, then emitted once;
- discrete file operations fire immediately, and identical
  ``operation:resource`` keys are dropped for a window after that.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Set

from ..models import now_ms
from ..scheduler import Scheduler, TimerHandle

logger = logging.getLogger(__name__)


def file_name(path: str) -> str:
    if not path:
        return ""
    return path.rsplit("/", 1)[-1]


def file_extension(path: str) -> str:
    name = file_name(path)
    dot = name.rfind(".")
    return name[dot + 1:] if dot > 0 else ""


@dataclass(frozen=True)
class TypingBurst:
    path: str
    file_name: str
    file_extension: str
    duration: int
    character_count: int
    text_content: str
    timestamp: int

    def to_data(self) -> Dict:
        return {
            "path": self.path,
            "fileName": self.file_name,
            "fileExtension": self.file_extension,
            "duration": self.duration,
            "characterCount": self.character_count,
            "textContent": self.text_content,
            "timestamp": self.timestamp,
        }


@dataclass
class _Accumulator:
    first_seen: int
    text: str = ""
    char_count: int = 0


class TypingDebouncer:
    """
    Per-key burst aggregation.

    Each fragment appends to the key's accumulator and restarts its timer; when
    the timer expires with a non-empty accumulator one ``TypingBurst`` is
    handed to ``on_burst`` and the accumulator is reset.

    ``dispose`` flushes every pending burst before cancelling timers.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        on_burst: Callable[[TypingBurst], None],
        window_ms: int = 1000,
        clock: Callable[[], int] = now_ms,
    ):
        self.scheduler = scheduler
        self.on_burst = on_burst
        self.window_ms = window_ms
        self.clock = clock
        self._accumulators: Dict[str, _Accumulator] = {}
        self._timers: Dict[str, TimerHandle] = {}
        self._disposed = False

    def push(self, key: str, fragment: str) -> None:
        """Append ``fragment`` to the burst for ``key`` and restart its timer."""
        if self._disposed or not fragment:
            return

        acc = self._accumulators.get(key)
        if acc is None or acc.char_count == 0:
            acc = _Accumulator(first_seen=self.clock())
            self._accumulators[key] = acc
        acc.text += fragment
        acc.char_count += len(fragment)

        timer = self._timers.pop(key, None)
        if timer is not None:
            timer.cancel()
        self._timers[key] = self.scheduler.call_later(
            self.window_ms / 1000.0, lambda: self._expire(key)
        )

    def _expire(self, key: str) -> None:
        self._timers.pop(key, None)
        self._emit(key)

    def _emit(self, key: str) -> None:
        acc = self._accumulators.pop(key, None)
        if acc is None or acc.char_count <= 0:
            return
        burst = TypingBurst(
            path=key,
            file_name=file_name(key),
            file_extension=file_extension(key),
            duration=self.window_ms,
            character_count=acc.char_count,
            text_content=acc.text,
            timestamp=self.clock(),
        )
        try:
            self.on_burst(burst)
        except Exception:
            logger.warning(f"Typing burst handler failed for {key}", exc_info=True)

    def pending_keys(self) -> Set[str]:
        return {key for key, acc in self._accumulators.items() if acc.char_count > 0}

    def flush(self) -> None:
        """Emit every pending burst now."""
        for key in list(self._timers):
            self._timers.pop(key).cancel()
        for key in list(self._accumulators):
            self._emit(key)

    def dispose(self) -> None:
        if self._disposed:
            return
        self.flush()
        self._disposed = True


class OperationDebouncer:
    """
    Drops repeats of the same ``operation:resource`` key inside ``window_ms``
    after it last fired.
    """

    def __init__(self, scheduler: Scheduler, window_ms: int = 1000):
        self.scheduler = scheduler
        self.window_ms = window_ms
        self._recent: Set[str] = set()
        self._timers: Dict[str, TimerHandle] = {}
        self._disposed = False

    @staticmethod
    def key(operation: str, resource: str) -> str:
        return f"{operation}:{resource}"

    def should_fire(self, operation: str, resource: str) -> bool:
        """True unless the same operation on ``resource`` fired within the window."""
        if self._disposed:
            return False
        key = self.key(operation, resource)
        if key in self._recent:
            return False
        self._recent.add(key)
        self._timers[key] = self.scheduler.call_later(
            self.window_ms / 1000.0, lambda: self._release(key)
        )
        return True

    def _release(self, key: str) -> None:
        self._recent.discard(key)
        self._timers.pop(key, None)

    def dispose(self) -> None:
        self._disposed = True
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
        self._recent.clear()

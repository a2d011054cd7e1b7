"""
In-process observer primitives.
"""

import logging
from typing import Callable, Generic, List, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Subscription:
    """Handle returned by ``Emitter.subscribe``; ``dispose`` detaches the listener."""

    def __init__(self, detach: Callable[[], None]):
        self._detach = detach
        self._disposed = False

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        self._detach()


class Emitter(Generic[T]):
    """
    Synchronous fan-out to listeners in registration order.

    A listener that raises is logged and skipped; the remaining listeners still
    receive the value.
    """

    def __init__(self, name: str = "emitter"):
        self.name = name
        self._listeners: List[Callable[[T], None]] = []
        self._disposed = False

    def subscribe(self, listener: Callable[[T], None]) -> Subscription:
        if self._disposed:
            return Subscription(lambda: None)
        self._listeners.append(listener)

        def detach() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass

        return Subscription(detach)

    def fire(self, value: T) -> None:
        for listener in list(self._listeners):
            try:
                listener(value)
            except Exception:
                logger.warning("Listener on %s failed", self.name, exc_info=True)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def dispose(self) -> None:
        self._disposed = True
        self._listeners.clear()

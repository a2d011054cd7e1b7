"""
Base class for activity producers.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ..bus import ActivityBus
from ..events import Subscription
from ..models import ActivityType


class ActivityContributor(ABC):
    """
    Observes raw signals and emits activity events through the bus.

    Subclasses set ``id`` and ``priority`` and subscribe to their signals in
    ``initialize``. ``dispose`` detaches every subscription and may be called
    any number of times; a disposed contributor never emits again.
    """

    id: str = ""
    priority: int = 0

    def __init__(self, bus: ActivityBus):
        self.bus = bus
        self._subscriptions: List[Subscription] = []
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    @abstractmethod
    async def initialize(self) -> None:
        """Wait for the signal source to be ready and subscribe to it."""

    def _register(self, subscription: Subscription) -> Subscription:
        if self._disposed:
            subscription.dispose()
        else:
            self._subscriptions.append(subscription)
        return subscription

    def track(
        self,
        activity_type: ActivityType,
        data: Dict[str, Any],
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        if self._disposed:
            return
        self.bus.track_activity(activity_type, data, metadata)

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        for subscription in self._subscriptions:
            subscription.dispose()
        self._subscriptions.clear()

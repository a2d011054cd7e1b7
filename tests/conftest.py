"""
Shared fixtures for activitysync tests.
"""

import heapq
import itertools
from typing import Callable, List

import pytest

from activitysync.bus import ActivityBus
from activitysync.config import Config
from activitysync.exceptions import RemoteInsertError
from activitysync.models import ActivityContext
from activitysync.storage.json_queue import JSONActivityQueue


class FakeTimer:
    def __init__(self, when: float, callback: Callable[[], None]):
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Scheduler whose clock only moves when ``advance`` is called."""

    def __init__(self):
        self.time = 0.0
        self._heap = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self.time

    def call_later(self, delay: float, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(self.time + max(delay, 0.0), callback)
        heapq.heappush(self._heap, (timer.when, next(self._seq), timer))
        return timer

    def advance(self, seconds: float) -> None:
        """Move the clock forward, firing due timers in order."""
        target = self.time + seconds
        while self._heap and self._heap[0][0] <= target:
            when, _, timer = heapq.heappop(self._heap)
            self.time = when
            if not timer.cancelled:
                timer.callback()
        self.time = target

    @property
    def pending(self) -> List[FakeTimer]:
        return [t for _, _, t in self._heap if not t.cancelled]

    def cancel_all(self) -> None:
        for _, _, timer in self._heap:
            timer.cancel()
        self._heap.clear()


class FakeRemoteClient:
    """In-memory remote table; ``fail_with`` makes every insert raise."""

    def __init__(self, fail_with: str = None):
        self.fail_with = fail_with
        self.inserts = []
        self.closed = False
        self.gate = None
        self.calls = 0

    async def insert(self, table, rows):
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_with:
            raise RemoteInsertError(self.fail_with, status_code=401)
        self.inserts.append((table, list(rows)))

    @property
    def rows(self):
        return [row for _, batch in self.inserts for row in batch]

    async def close(self):
        self.closed = True


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def context():
    return ActivityContext(session_id="test-session")


@pytest.fixture
def store_path(tmp_path):
    return tmp_path / "data" / "user-activities.json"


@pytest.fixture
def queue(store_path):
    return JSONActivityQueue(path=store_path, max_events=1000)


@pytest.fixture
def bus(context, queue):
    return ActivityBus(context, queue)


@pytest.fixture
def remote():
    return FakeRemoteClient()


@pytest.fixture
def test_config(tmp_path):
    return Config(
        data_dir=tmp_path / "data",
        remote_endpoint="https://example.test",
        remote_credential="test-key",
        sync_interval_ms=60_000,
        auto_sync_enabled=True,
    )

"""
AI chat activity contributor.
"""

from dataclasses import dataclass
from typing import Dict

from ..bus import ActivityBus
from ..models import ActivityType, now_ms
from .base import ActivityContributor
from .signals import ChatMessage, ChatSignals, StreamStateChange

IDLE_STATES = (None, "idle")


@dataclass
class _PendingResponse:
    thread_id: str
    started_at: int
    content: str


class ChatActivityContributor(ActivityContributor):
    """
    Records user questions immediately and assistant responses once the
    thread's stream has gone idle, with the time the response took.
    """

    id = "ai-chat-activity"
    priority = 2

    def __init__(self, bus: ActivityBus, signals: ChatSignals):
        super().__init__(bus)
        self.signals = signals
        self._responses: Dict[str, _PendingResponse] = {}

    async def initialize(self) -> None:
        await self.signals.when_ready()
        self._register(self.signals.message_added.subscribe(self._on_message))
        self._register(self.signals.stream_state_changed.subscribe(self._on_stream_state))

    def _on_message(self, message: ChatMessage) -> None:
        if message.role == "user":
            self.track(ActivityType.AI_CHAT_QUESTION, {
                "question": message.content,
                "threadId": message.thread_id,
                "timestamp": now_ms(),
            })
        elif message.role == "assistant":
            pending = self._responses.get(message.message_id)
            if pending is None:
                self._responses[message.message_id] = _PendingResponse(
                    thread_id=message.thread_id,
                    started_at=now_ms(),
                    content=message.content,
                )
            else:
                pending.content = message.content

    def _on_stream_state(self, change: StreamStateChange) -> None:
        if change.is_running not in IDLE_STATES:
            return

        finished = [
            key for key, pending in self._responses.items()
            if pending.thread_id == change.thread_id
        ]
        for key in finished:
            pending = self._responses.pop(key)
            if not pending.content.strip():
                continue
            now = now_ms()
            self.track(ActivityType.AI_CHAT_RESPONSE, {
                "response": pending.content,
                "threadId": pending.thread_id,
                "duration": now - pending.started_at,
                "timestamp": now,
            })

    def dispose(self) -> None:
        self._responses.clear()
        super().dispose()

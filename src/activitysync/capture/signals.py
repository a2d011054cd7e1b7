"""
Raw signal sources consumed by contributors.

The host application owns the real editor, command and chat subsystems; it
adapts them to these small emitter bundles and marks each bundle ready once the
underlying subsystem can be observed.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, List, Optional

from ..events import Emitter


@dataclass(frozen=True)
class ContentChange:
    """Text inserted into an open document."""

    path: str
    text: str
    range_length: int = 0
    language_id: str = ""
    scheme: str = "file"


@dataclass(frozen=True)
class DirtyChange:
    path: str
    is_dirty: bool


@dataclass(frozen=True)
class CommandExecution:
    command_id: str
    args: List[Any] = field(default_factory=list)


@dataclass(frozen=True)
class ChatMessage:
    thread_id: str
    message_id: str
    role: str
    content: str


@dataclass(frozen=True)
class StreamStateChange:
    thread_id: str
    is_running: Optional[str] = None


class SignalSource:
    """Readiness gate shared by every signal bundle."""

    def __init__(self) -> None:
        self._ready: Optional[asyncio.Event] = None
        self._ready_flag = False

    def _event(self) -> asyncio.Event:
        if self._ready is None:
            self._ready = asyncio.Event()
            if self._ready_flag:
                self._ready.set()
        return self._ready

    def mark_ready(self) -> None:
        self._ready_flag = True
        if self._ready is not None:
            self._ready.set()

    async def when_ready(self) -> None:
        await self._event().wait()


class EditorSignals(SignalSource):
    def __init__(self) -> None:
        super().__init__()
        self.active_editor_changed = Emitter[str]("editor.active")
        self.content_changed = Emitter[ContentChange]("editor.content")
        self.saved = Emitter[str]("editor.saved")
        self.dirty_changed = Emitter[DirtyChange]("editor.dirty")


class CommandSignals(SignalSource):
    def __init__(self) -> None:
        super().__init__()
        self.executed = Emitter[CommandExecution]("commands.executed")


class ChatSignals(SignalSource):
    def __init__(self) -> None:
        super().__init__()
        self.message_added = Emitter[ChatMessage]("chat.message")
        self.stream_state_changed = Emitter[StreamStateChange]("chat.stream")

"""
Unit tests for the built-in activity contributors.
"""

import asyncio
from unittest.mock import Mock

import pytest

from activitysync.capture.autocomplete import (
    AutocompleteActivityContributor,
    guess_completion_type,
)
from activitysync.capture.chat import ChatActivityContributor
from activitysync.capture.commands import CommandActivityContributor
from activitysync.capture.editor import EditorActivityContributor
from activitysync.capture.filesystem import FileSystemSignalAdapter
from activitysync.capture.signals import (
    ChatMessage,
    ChatSignals,
    CommandExecution,
    CommandSignals,
    ContentChange,
    DirtyChange,
    EditorSignals,
    StreamStateChange,
)
from activitysync.models import ActivityType


async def ready(contributor, signals):
    signals.mark_ready()
    await contributor.initialize()


class TestEditorActivityContributor:
    """Test EditorActivityContributor."""

    @pytest.mark.asyncio
    async def test_waits_for_signals_ready(self, bus, scheduler):
        signals = EditorSignals()
        contributor = EditorActivityContributor(bus, signals, scheduler)

        task = asyncio.create_task(contributor.initialize())
        await asyncio.sleep(0)
        assert not task.done()
        assert signals.saved.listener_count == 0

        signals.mark_ready()
        await task
        assert signals.saved.listener_count == 1

    @pytest.mark.asyncio
    async def test_typing_burst_persisted_once(self, bus, scheduler):
        signals = EditorSignals()
        contributor = EditorActivityContributor(bus, signals, scheduler)
        await ready(contributor, signals)

        fragments = ["def ", "main", "():", "\n    pass"]
        for fragment in fragments:
            signals.content_changed.fire(ContentChange("/proj/main.py", fragment))
            scheduler.advance(0.3)
        scheduler.advance(1.0)
        await bus.flush()

        events = await bus.get_activities()
        assert len(events) == 1
        event = events[0]
        assert event.type is ActivityType.TYPING
        assert event.data["characterCount"] == sum(len(f) for f in fragments)
        assert event.data["textContent"] == "".join(fragments)
        assert event.data["fileName"] == "main.py"
        assert event.data["fileExtension"] == "py"
        assert event.data["duration"] == 1000

    @pytest.mark.asyncio
    async def test_repeated_save_within_window_recorded_once(self, bus, scheduler):
        signals = EditorSignals()
        contributor = EditorActivityContributor(bus, signals, scheduler)
        await ready(contributor, signals)

        contributor.track_file_operation("save", "/a")
        scheduler.advance(0.4)
        contributor.track_file_operation("save", "/a")
        await bus.flush()

        events = await bus.get_activities()
        assert [e.type for e in events] == [ActivityType.FILE_SAVE]
        assert events[0].data["operation"] == "save"

        scheduler.advance(1.0)
        signals.saved.fire("/a")
        await bus.flush()
        assert len(await bus.get_activities()) == 2

    @pytest.mark.asyncio
    async def test_open_and_dirty_signals(self, bus, scheduler):
        signals = EditorSignals()
        contributor = EditorActivityContributor(bus, signals, scheduler)
        await ready(contributor, signals)

        signals.active_editor_changed.fire("/x/readme.md")
        signals.dirty_changed.fire(DirtyChange("/x/readme.md", True))
        signals.dirty_changed.fire(DirtyChange("/x/other.md", False))
        contributor.track_file_operation("rename", "/x/readme.md")
        await bus.flush()

        events = await bus.get_activities()
        assert [e.type for e in events] == [ActivityType.FILE_OPEN, ActivityType.FILE_EDIT]

    @pytest.mark.asyncio
    async def test_dispose_flushes_pending_typing(self, bus, scheduler):
        signals = EditorSignals()
        contributor = EditorActivityContributor(bus, signals, scheduler)
        await ready(contributor, signals)

        signals.content_changed.fire(ContentChange("/a.txt", "draft"))
        contributor.dispose()
        contributor.dispose()
        await bus.flush()

        events = await bus.get_activities()
        assert [e.data["textContent"] for e in events] == ["draft"]
        assert signals.content_changed.listener_count == 0

        signals.content_changed.fire(ContentChange("/a.txt", "later"))
        scheduler.advance(5)
        await bus.flush()
        assert len(await bus.get_activities()) == 1


class TestCommandActivityContributor:
    """Test CommandActivityContributor."""

    @pytest.mark.asyncio
    async def test_records_commands_except_excluded(self, bus):
        signals = CommandSignals()
        contributor = CommandActivityContributor(bus, signals)
        await ready(contributor, signals)

        signals.executed.fire(CommandExecution("cursorUp"))
        signals.executed.fire(CommandExecution("git.commit", ["--amend"]))
        signals.executed.fire(CommandExecution(""))
        await bus.flush()

        events = await bus.get_activities()
        assert len(events) == 1
        assert events[0].type is ActivityType.COMMAND_EXECUTE
        assert events[0].data["command"] == "git.commit"
        assert events[0].data["args"] == ["--amend"]

    @pytest.mark.asyncio
    async def test_disabled_does_not_subscribe(self, bus):
        signals = CommandSignals()
        contributor = CommandActivityContributor(bus, signals, enabled=False)
        await ready(contributor, signals)
        assert signals.executed.listener_count == 0


class TestChatActivityContributor:
    """Test ChatActivityContributor."""

    @pytest.mark.asyncio
    async def test_question_and_completed_response(self, bus):
        signals = ChatSignals()
        contributor = ChatActivityContributor(bus, signals)
        await ready(contributor, signals)

        signals.message_added.fire(ChatMessage("t1", "m1", "user", "How do I sort?"))
        signals.message_added.fire(ChatMessage("t1", "m2", "assistant", "Use"))
        signals.stream_state_changed.fire(StreamStateChange("t1", "LLM"))
        signals.message_added.fire(ChatMessage("t1", "m2", "assistant", "Use sorted()."))
        signals.stream_state_changed.fire(StreamStateChange("t1", "idle"))
        signals.stream_state_changed.fire(StreamStateChange("t1", None))
        await bus.flush()

        events = await bus.get_activities()
        assert [e.type for e in events] == [
            ActivityType.AI_CHAT_QUESTION,
            ActivityType.AI_CHAT_RESPONSE,
        ]
        assert events[0].data["question"] == "How do I sort?"
        assert events[1].data["response"] == "Use sorted()."
        assert events[1].data["duration"] >= 0

    @pytest.mark.asyncio
    async def test_blank_responses_and_other_threads_ignored(self, bus):
        signals = ChatSignals()
        contributor = ChatActivityContributor(bus, signals)
        await ready(contributor, signals)

        signals.message_added.fire(ChatMessage("t1", "m1", "assistant", "   "))
        signals.message_added.fire(ChatMessage("t2", "m2", "assistant", "other thread"))
        signals.stream_state_changed.fire(StreamStateChange("t1", None))
        await bus.flush()

        assert await bus.get_activities() == []


class TestAutocompleteActivityContributor:
    """Test AutocompleteActivityContributor."""

    @pytest.mark.parametrize("text,expected", [
        ("print()", "function"),
        ("{ a: 1 }", "snippet"),
        ("my_var", "variable"),
        ("os.path", "property"),
        ("hello world", "text"),
    ])
    def test_guess_completion_type(self, text, expected):
        assert guess_completion_type(text) == expected

    @pytest.mark.asyncio
    async def test_multi_char_insert_recorded(self, bus):
        signals = EditorSignals()
        contributor = AutocompleteActivityContributor(bus, signals)
        await ready(contributor, signals)

        signals.content_changed.fire(ContentChange("/a/b.py", "x"))
        signals.content_changed.fire(ContentChange("/a/b.py", "replace_all", range_length=5))
        signals.content_changed.fire(
            ContentChange("/a/b.py", "enumerate" + "x" * 200, range_length=1, language_id="python")
        )
        await bus.flush()

        events = await bus.get_activities()
        assert len(events) == 1
        data = events[0].data
        assert data["completionType"] == "variable"
        assert len(data["acceptedText"]) == 100
        assert data["languageId"] == "python"
        assert data["fileExtension"] == "py"


class TestFileSystemSignalAdapter:
    """Test FileSystemSignalAdapter."""

    def _event(self, src, dest=None, is_directory=False):
        event = Mock()
        event.src_path = src
        event.dest_path = dest
        event.is_directory = is_directory
        return event

    def test_events_posted_to_loop(self):
        signals = EditorSignals()
        loop = Mock()
        adapter = FileSystemSignalAdapter(signals, loop)

        adapter.on_modified(self._event("/w/a.py"))
        adapter.on_created(self._event("/w/b.py"))
        adapter.on_moved(self._event("/w/.a.py.tmp", "/w/a.py"))

        calls = loop.call_soon_threadsafe.call_args_list
        assert calls[0].args == (signals.saved.fire, "/w/a.py")
        assert calls[1].args == (signals.dirty_changed.fire, DirtyChange("/w/b.py", True))
        assert calls[2].args == (signals.saved.fire, "/w/a.py")

    def test_directories_and_ignored_paths_skipped(self):
        loop = Mock()
        adapter = FileSystemSignalAdapter(EditorSignals(), loop)

        adapter.on_modified(self._event("/w/src", is_directory=True))
        adapter.on_modified(self._event("/w/.git/index"))
        adapter.on_created(self._event("/w/node_modules/x.js"))

        assert not loop.call_soon_threadsafe.called

    def test_closed_loop_is_tolerated(self):
        loop = Mock()
        loop.call_soon_threadsafe.side_effect = RuntimeError("Event loop is closed")
        adapter = FileSystemSignalAdapter(EditorSignals(), loop)
        adapter.on_modified(self._event("/w/a.py"))

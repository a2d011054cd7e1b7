"""
Capture components: raw signal sources, debouncing and activity contributors.
"""

from .base import ActivityContributor
from .registry import ContributorRegistry
from .debouncer import OperationDebouncer, TypingBurst, TypingDebouncer
from .signals import (
    ChatMessage,
    ChatSignals,
    CommandExecution,
    CommandSignals,
    ContentChange,
    DirtyChange,
    EditorSignals,
    StreamStateChange,
)
from .editor import EditorActivityContributor
from .commands import CommandActivityContributor
from .chat import ChatActivityContributor
from .autocomplete import AutocompleteActivityContributor
from .filesystem import FileSystemSignalAdapter, start_filesystem_capture

__all__ = [
    "ActivityContributor",
    "ContributorRegistry",
    "OperationDebouncer",
    "TypingBurst",
    "TypingDebouncer",
    "ChatMessage",
    "ChatSignals",
    "CommandExecution",
    "CommandSignals",
    "ContentChange",
    "DirtyChange",
    "EditorSignals",
    "StreamStateChange",
    "EditorActivityContributor",
    "CommandActivityContributor",
    "ChatActivityContributor",
    "AutocompleteActivityContributor",
    "FileSystemSignalAdapter",
    "start_filesystem_capture",
]

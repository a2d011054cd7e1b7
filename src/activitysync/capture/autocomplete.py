"""
Autocomplete activity contributor.
"""

import re

from ..bus import ActivityBus
from ..models import ActivityType
from .base import ActivityContributor
from .debouncer import file_extension, file_name
from .signals import ContentChange, EditorSignals

MAX_ACCEPTED_TEXT = 100

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def guess_completion_type(text: str) -> str:
    if "(" in text and ")" in text:
        return "function"
    if "{" in text and "}" in text:
        return "snippet"
    if _IDENTIFIER.match(text):
        return "variable"
    if "." in text:
        return "property"
    return "text"


def looks_like_completion(change: ContentChange) -> bool:
    """A multi-character insert replacing at most one character."""
    return len(change.text) > 1 and change.range_length <= 1


class AutocompleteActivityContributor(ActivityContributor):
    """Heuristically detects accepted completions from editor content changes."""

    id = "autocomplete"
    priority = 40

    def __init__(self, bus: ActivityBus, signals: EditorSignals):
        super().__init__(bus)
        self.signals = signals

    async def initialize(self) -> None:
        await self.signals.when_ready()
        self._register(self.signals.content_changed.subscribe(self._on_content_change))

    def _on_content_change(self, change: ContentChange) -> None:
        if not looks_like_completion(change):
            return
        self.track(ActivityType.AUTOCOMPLETE_ACCEPT, {
            "path": change.path,
            "fileName": file_name(change.path),
            "fileExtension": file_extension(change.path),
            "scheme": change.scheme,
            "acceptedText": change.text[:MAX_ACCEPTED_TEXT],
            "completionType": guess_completion_type(change.text),
            "languageId": change.language_id,
        })

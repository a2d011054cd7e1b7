"""
Command activity contributor.
"""

from typing import FrozenSet, Iterable, Optional

from ..bus import ActivityBus
from ..models import ActivityType, now_ms
from .base import ActivityContributor
from .signals import CommandExecution, CommandSignals

# Navigation, clipboard and editing commands fire constantly and say nothing
# about what the user is working on.
EXCLUDED_COMMANDS: FrozenSet[str] = frozenset({
    "workbench.action.files.save",
    "workbench.action.files.saveAll",
    "workbench.action.acceptSelectedSuggestion",
    "editor.action.triggerSuggest",
    "editor.action.insertLineAfter",
    "editor.action.insertLineBefore",
    "deleteLeft",
    "deleteRight",
    "cursorMove",
    "cursorEnd",
    "cursorHome",
    "cursorWordLeft",
    "cursorWordRight",
    "cursorUp",
    "cursorDown",
    "cursorLeft",
    "cursorRight",
    "cursorPageDown",
    "cursorPageUp",
    "scrollLineUp",
    "scrollLineDown",
    "scrollPageUp",
    "scrollPageDown",
    "undo",
    "redo",
    "cut",
    "copy",
    "paste",
    "selectAll",
    "find",
    "replace",
    "closeFindWidget",
    "workbench.action.focusActiveEditorGroup",
    "workbench.action.focusSideBar",
    "workbench.action.toggleSidebarVisibility",
    "workbench.action.togglePanel",
    "workbench.action.quickOpen",
    "workbench.action.showCommands",
    "workbench.action.terminal.toggleTerminal",
    "editor.action.format",
    "editor.action.formatDocument",
    "editor.action.formatSelection",
})


class CommandActivityContributor(ActivityContributor):
    """Records executed commands, skipping the excluded set."""

    id = "command-activity"
    priority = 3

    def __init__(
        self,
        bus: ActivityBus,
        signals: CommandSignals,
        enabled: bool = True,
        excluded: Optional[Iterable[str]] = None,
    ):
        super().__init__(bus)
        self.signals = signals
        self.enabled = enabled
        self.excluded = frozenset(excluded) if excluded is not None else EXCLUDED_COMMANDS

    async def initialize(self) -> None:
        await self.signals.when_ready()
        if not self.enabled:
            return
        self._register(self.signals.executed.subscribe(self._on_command))

    def _on_command(self, execution: CommandExecution) -> None:
        if not execution.command_id or execution.command_id in self.excluded:
            return
        self.track(ActivityType.COMMAND_EXECUTE, {
            "command": execution.command_id,
            "args": list(execution.args),
            "timestamp": now_ms(),
        })

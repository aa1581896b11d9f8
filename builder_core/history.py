"""
History Manager - Linear undo/redo over reversible commands.

This module implements:
- Command execution with a bounded history stack
- Linear undo/redo (a new action discards the redo branch)
- Change listeners notified after every mutation
- Debounced persistence after every mutation
"""

import logging
from typing import Callable, Literal, Optional

from .commands import Command
from .persistence import DebouncedSaver

logger = logging.getLogger(__name__)

DEFAULT_MAX_HISTORY = 50

HistoryAction = Literal["execute", "undo", "redo"]
Listener = Callable[[HistoryAction, Command], None]


class HistoryManager:
    """
    Executes commands and keeps the undo/redo stacks.

    The history system works via commands:
    - Each mutation is a command that knows how to invert itself
    - Undo runs the inverse of the most recent command
    - Redo re-runs a command from the future stack

    The manager holds no copy of the document; commands mutate it in place.
    """

    def __init__(
        self,
        max_history: int = DEFAULT_MAX_HISTORY,
        saver: Optional[DebouncedSaver] = None,
    ):
        if max_history < 1:
            raise ValueError("max_history must be at least 1")
        self._history: list[Command] = []  # Applied commands, most recent last
        self._future: list[Command] = []   # Undone commands, most recently undone last
        self._max_history = max_history
        self._listeners: list[Listener] = []
        self._saver = saver

    # --- Properties ---

    @property
    def max_history(self) -> int:
        return self._max_history

    @property
    def can_undo(self) -> bool:
        """Check if undo is available."""
        return len(self._history) > 0

    @property
    def can_redo(self) -> bool:
        """Check if redo is available."""
        return len(self._future) > 0

    @property
    def history(self) -> list[Command]:
        return list(self._history)

    @property
    def future(self) -> list[Command]:
        return list(self._future)

    # --- Listeners ---

    def add_listener(self, callback: Listener):
        """Register a callback receiving (action, command) after each change."""
        self._listeners.append(callback)

    def remove_listener(self, callback: Listener):
        """Unregister a callback. Unknown callbacks are ignored."""
        self._listeners = [l for l in self._listeners if l is not callback]

    def _notify(self, action: HistoryAction, command: Command):
        """Notify all registered listeners of a change."""
        for listener in list(self._listeners):
            try:
                listener(action, command)
            except Exception:
                logger.exception("Listener error during %s of %r", action, command)

    def _schedule_save(self):
        if self._saver is not None:
            self._saver.schedule()

    # --- Undo/Redo ---

    def execute(self, command: Command):
        """Execute a command and add it to history."""
        command.execute()

        self._history.append(command)

        # Clear future (new action invalidates redo stack)
        self._future.clear()

        # Trim history if too long
        while len(self._history) > self._max_history:
            evicted = self._history.pop(0)
            logger.debug("History full, dropped %r", evicted)

        self._notify("execute", command)
        self._schedule_save()

    def undo(self) -> bool:
        """Undo the last command. Returns False if there is nothing to undo."""
        if not self.can_undo:
            logger.debug("Nothing to undo")
            return False

        command = self._history[-1]
        command.undo()
        self._history.pop()
        self._future.append(command)

        self._notify("undo", command)
        self._schedule_save()
        return True

    def redo(self) -> bool:
        """Redo the last undone command. Returns False if there is nothing to redo."""
        if not self.can_redo:
            logger.debug("Nothing to redo")
            return False

        command = self._future[-1]
        command.execute()
        self._future.pop()
        self._history.append(command)

        self._notify("redo", command)
        self._schedule_save()
        return True

    def clear_history(self):
        """Forget all history without touching the document."""
        self._history.clear()
        self._future.clear()

    def history_info(self) -> dict:
        """Get history info for API responses."""
        return {
            "history_length": len(self._history),
            "future_length": len(self._future),
            "can_undo": self.can_undo,
            "can_redo": self.can_redo,
            "undo_description": self._history[-1].description if self._history else None,
            "redo_description": self._future[-1].description if self._future else None,
        }

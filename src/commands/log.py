"""Command log: serialized execution with undo/redo history."""

import asyncio
import logging
from typing import Literal

from src.commands.base import CommandState, EditCommand
from src.commands.context import CommandContext
from src.common.errors import CommandExecutionError
from src.events.types import EditChanged, EditRedo, EditUndo

logger = logging.getLogger(__name__)


class CommandLog:
    """Ordered, truncatable stack of executed commands.

    Only one command runs at a time. A command that fails leaves the
    document, registry and merge fields exactly as they were, its queued
    events are dropped, and ``CommandExecutionError`` is raised.
    """

    def __init__(self, context: CommandContext, max_history_size: int | None = None) -> None:
        """Initialize the log.

        Args:
            context: Context every command runs against.
            max_history_size: Oldest commands are dropped beyond this size.
        """
        self.context = context
        self.max_history_size = max_history_size
        self._history: list[EditCommand] = []
        self._cursor = -1
        self._lock = asyncio.Lock()

    @property
    def history(self) -> tuple[EditCommand, ...]:
        return tuple(self._history)

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def lock(self) -> asyncio.Lock:
        """Held while a command runs; take it to exclude commands."""
        return self._lock

    def can_undo(self) -> bool:
        return self._cursor >= 0

    def can_redo(self) -> bool:
        return self._cursor < len(self._history) - 1

    def clear(self) -> None:
        self._history.clear()
        self._cursor = -1

    def checkpoint(self) -> tuple[list[EditCommand], int]:
        """Capture the history and cursor for a later ``rollback``."""
        return list(self._history), self._cursor

    def rollback(self, checkpoint: tuple[list[EditCommand], int]) -> None:
        """Put the history and cursor back exactly as they were at ``checkpoint``.

        Only the bookkeeping is restored; the caller restores session state.
        """
        history, cursor = checkpoint
        self._history = list(history)
        self._cursor = cursor

    async def execute(self, command: EditCommand) -> None:
        async with self._lock:
            await self._run(command, "execute")

            # Forward history is discarded once a new command lands
            del self._history[self._cursor + 1 :]
            self._history.append(command)
            self._cursor += 1
            if self.max_history_size is not None and len(self._history) > self.max_history_size:
                dropped = len(self._history) - self.max_history_size
                del self._history[:dropped]
                self._cursor -= dropped

            command.state = CommandState.EXECUTED
            logger.debug("[commands] Executed %s (cursor=%d)", command.name, self._cursor)
            self.context.emit(EditChanged(source=command.name))

    async def undo(self) -> bool:
        async with self._lock:
            if not self.can_undo():
                return False

            command = self._history[self._cursor]
            await self._run(command, "undo")
            self._cursor -= 1
            command.state = CommandState.UNDONE
            logger.debug("[commands] Undid %s (cursor=%d)", command.name, self._cursor)
            self.context.emit(EditUndo(command=command.name))
            self.context.emit(EditChanged(source=f"undo:{command.name}"))
            return True

    async def redo(self) -> bool:
        async with self._lock:
            if not self.can_redo():
                return False

            command = self._history[self._cursor + 1]
            await self._run(command, "execute")
            self._cursor += 1
            command.state = CommandState.EXECUTED
            logger.debug("[commands] Redid %s (cursor=%d)", command.name, self._cursor)
            self.context.emit(EditRedo(command=command.name))
            self.context.emit(EditChanged(source=f"redo:{command.name}"))
            return True

    async def _run(self, command: EditCommand, action: Literal["execute", "undo"]) -> None:
        state = self.context.capture_state()
        try:
            with self.context.events.batch():
                await getattr(command, action)(self.context)
        except Exception as e:
            self.context.restore_state(state)
            logger.error("[commands] %s.%s failed, state rolled back: %s", command.name, action, e)
            raise CommandExecutionError(command.name, e) from e

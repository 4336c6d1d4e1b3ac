"""Command base classes."""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import StrEnum, auto
from typing import TYPE_CHECKING, ClassVar

from src.runtime.layers import StructuralChange

if TYPE_CHECKING:
    from src.commands.context import CommandContext


class CommandState(StrEnum):
    PENDING = auto()
    EXECUTED = auto()
    UNDONE = auto()


class EditCommand(ABC):
    """A reversible mutation of the Edit document and runtime registry.

    Commands keep whatever they need to revert themselves. ``execute`` is
    also used for redo, and always runs against the state ``undo`` left.
    """

    name: ClassVar[str]

    def __init__(self) -> None:
        self.state = CommandState.PENDING

    @abstractmethod
    async def execute(self, context: CommandContext) -> None: ...

    @abstractmethod
    async def undo(self, context: CommandContext) -> None: ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}(state={self.state})"


class StructuralCommand(EditCommand):
    """Command whose changes are structural changes recorded with their inverses."""

    def __init__(self) -> None:
        super().__init__()
        self._inverse: list[StructuralChange] = []

    def _apply(self, context: CommandContext, change: StructuralChange) -> None:
        self._inverse.append(context.apply(change))

    def _revert(self, context: CommandContext) -> None:
        inverse, self._inverse = self._inverse, []
        for change in reversed(inverse):
            context.apply(change)


class CompositeCommand(EditCommand):
    """Several commands run as one history entry."""

    name = "composite"

    def __init__(self, commands: list[EditCommand], name: str | None = None) -> None:
        super().__init__()
        self.commands = list(commands)
        if name is not None:
            self.name = name

    async def execute(self, context: CommandContext) -> None:
        for command in self.commands:
            await command.execute(context)
            command.state = CommandState.EXECUTED

    async def undo(self, context: CommandContext) -> None:
        for command in reversed(self.commands):
            await command.undo(context)
            command.state = CommandState.UNDONE

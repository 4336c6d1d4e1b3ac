"""Output and timeline-level property commands."""

import copy
from enum import StrEnum, auto
from typing import Any

from pydantic import TypeAdapter, ValidationError

from src.commands.base import EditCommand
from src.commands.context import CommandContext
from src.common.errors import SchemaValidationError
from src.events.types import (
    EditEvent,
    OutputDestinationsChanged,
    OutputFormatChanged,
    OutputFpsChanged,
    OutputResized,
    TimelineBackgroundChanged,
)
from src.schemas.assets import HexColor
from src.schemas.edit import Destination, FpsValue, OutputFormat, OutputSize


class OutputProperty(StrEnum):
    SIZE = auto()
    FPS = auto()
    FORMAT = auto()
    DESTINATIONS = auto()
    BACKGROUND = auto()


_VALIDATORS: dict[OutputProperty, tuple[str, TypeAdapter[Any]]] = {
    OutputProperty.SIZE: ("output.size", TypeAdapter(OutputSize)),
    OutputProperty.FPS: ("output.fps", TypeAdapter(FpsValue | None)),
    OutputProperty.FORMAT: ("output.format", TypeAdapter(OutputFormat)),
    OutputProperty.DESTINATIONS: ("output.destinations", TypeAdapter(list[Destination] | None)),
    OutputProperty.BACKGROUND: ("timeline.background", TypeAdapter(HexColor | None)),
}


def validate_output_value(prop: OutputProperty, value: Any) -> Any:
    """Validate a new output value and return its document form.

    Raises:
        SchemaValidationError: The value is not valid for the property.
    """
    prefix, adapter = _VALIDATORS[prop]

    try:
        validated = adapter.validate_python(value)
    except ValidationError as e:
        raise SchemaValidationError.from_pydantic(e, value, prefix=prefix) from e

    if prop == OutputProperty.SIZE:
        return validated.model_dump(mode="json")
    if prop == OutputProperty.DESTINATIONS and validated is not None:
        return [destination.model_dump(mode="json", exclude_none=True) for destination in validated]
    if prop == OutputProperty.FORMAT:
        return str(validated)
    return validated


class SetOutputCommand(EditCommand):
    """Set one output (or timeline background) property."""

    name = "setOutput"

    def __init__(self, prop: OutputProperty, value: Any) -> None:
        super().__init__()
        self.prop = prop
        self.value = validate_output_value(prop, value)
        self._previous: Any = None

    async def execute(self, context: CommandContext) -> None:
        self._previous = _get(context, self.prop)
        _set(context, self.prop, self.value)
        context.emit(_changed_event(context, self.prop))

    async def undo(self, context: CommandContext) -> None:
        _set(context, self.prop, self._previous)
        context.emit(_changed_event(context, self.prop))


def _get(context: CommandContext, prop: OutputProperty) -> Any:
    document = context.document
    match prop:
        case OutputProperty.SIZE:
            return document.get_size()
        case OutputProperty.FPS:
            return document.get_fps()
        case OutputProperty.FORMAT:
            return document.get_format()
        case OutputProperty.DESTINATIONS:
            return copy.deepcopy(document.output.get("destinations"))
        case OutputProperty.BACKGROUND:
            return document.get_background()


def _set(context: CommandContext, prop: OutputProperty, value: Any) -> None:
    document = context.document
    match prop:
        case OutputProperty.SIZE:
            if value is None:
                document.output.pop("size", None)
            else:
                document.set_size(value["width"], value["height"])
        case OutputProperty.FPS:
            document.set_fps(value)
        case OutputProperty.FORMAT:
            if value is None:
                document.output.pop("format", None)
            else:
                document.set_format(value)
        case OutputProperty.DESTINATIONS:
            document.set_destinations(value)
        case OutputProperty.BACKGROUND:
            document.set_background(value)


def _changed_event(context: CommandContext, prop: OutputProperty) -> EditEvent:
    document = context.document
    match prop:
        case OutputProperty.SIZE:
            size = document.get_size() or {"width": 0, "height": 0}
            return OutputResized(width=size["width"], height=size["height"])
        case OutputProperty.FPS:
            return OutputFpsChanged(fps=document.get_fps())
        case OutputProperty.FORMAT:
            return OutputFormatChanged(format=document.get_format() or "")
        case OutputProperty.DESTINATIONS:
            return OutputDestinationsChanged(destinations=document.get_destinations())
        case OutputProperty.BACKGROUND:
            return TimelineBackgroundChanged(color=document.get_background() or context.config.default_background)
    msg = f"Unknown output property: {prop}"
    raise ValueError(msg)

"""Timing value types.

All timings are expressed in seconds. A timing value is either a concrete
number or one of the keywords below:

- ``"auto"`` for start: position after the previous clip on the track
- ``"auto"`` for length: the asset's intrinsic duration
- ``"end"`` for length: extend to the timeline end
"""

import math
from enum import StrEnum
from typing import Literal

from pydantic import field_validator

from src.common.base_studio_model import BaseStudioModel


class TimingKeyword(StrEnum):
    """Symbolic timing values."""

    AUTO = "auto"
    END = "end"


StartValue = float | Literal["auto"]
LengthValue = float | Literal["auto", "end"]


def is_auto(value: object) -> bool:
    return isinstance(value, str) and value == TimingKeyword.AUTO


def is_end(value: object) -> bool:
    return isinstance(value, str) and value == TimingKeyword.END


class TimingIntent(BaseStudioModel):
    """The timing the user asked for, kept after resolution."""

    start: StartValue
    length: LengthValue

    @property
    def has_auto_start(self) -> bool:
        return is_auto(self.start)

    @property
    def has_auto_length(self) -> bool:
        return is_auto(self.length)

    @property
    def has_end_length(self) -> bool:
        return is_end(self.length)

    def to_wire(self) -> dict[str, float | str]:
        """Timing as it appears in the document form."""
        return {"start": _wire_number(self.start), "length": _wire_number(self.length)}


class ResolvedTiming(BaseStudioModel):
    """Concrete timing used for playback."""

    start: float
    length: float

    @field_validator("start", "length")
    @classmethod
    def _finite_non_negative(cls, value: float) -> float:
        if not math.isfinite(value) or value < 0:
            msg = f"resolved timing must be a finite non-negative number, got {value}"
            raise ValueError(msg)
        return value

    @property
    def end(self) -> float:
        return self.start + self.length


def _wire_number(value: float | str) -> float | str:
    # Whole seconds go back out as ints so documents round-trip unchanged
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value

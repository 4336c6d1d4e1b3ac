"""Keyframe schemas shared by animatable clip properties."""

from enum import StrEnum
from typing import Annotated

from pydantic import Field

from src.common.base_studio_model import BaseWireModel


class KeyframeInterpolation(StrEnum):
    """Interpolation between keyframe values."""

    LINEAR = "linear"
    BEZIER = "bezier"
    CONSTANT = "constant"


class Keyframe(BaseWireModel):
    """A single animated segment of a clip property."""

    from_value: float = Field(alias="from")
    to_value: float = Field(alias="to")
    start: float = Field(ge=0)
    length: float = Field(gt=0)
    interpolation: KeyframeInterpolation | None = None
    easing: str | None = None


UnitInterval = Annotated[float, Field(ge=0, le=1)]
NonNegative = Annotated[float, Field(ge=0)]

# Animatable values are either a constant or a list of keyframes
AnimatedUnit = UnitInterval | list[Keyframe]
AnimatedNonNegative = NonNegative | list[Keyframe]
AnimatedNumber = float | list[Keyframe]

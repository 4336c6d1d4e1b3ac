"""Clip and track schemas."""

from enum import StrEnum
from typing import Annotated, Literal

from pydantic import Field

from src.common.base_studio_model import BaseWireModel
from src.schemas.assets import Anchor, Asset
from src.schemas.keyframe import AnimatedNonNegative, AnimatedNumber, AnimatedUnit, Keyframe

OffsetValue = Annotated[float, Field(ge=-10, le=10)]


class ClipFit(StrEnum):
    """How a visual asset fills the output frame."""

    CROP = "crop"
    COVER = "cover"
    CONTAIN = "contain"
    NONE = "none"


class ClipOffset(BaseWireModel):
    x: OffsetValue | list[Keyframe] = 0
    y: OffsetValue | list[Keyframe] = 0


class ClipRotation(BaseWireModel):
    angle: AnimatedNumber = 0


class ClipTransform(BaseWireModel):
    rotate: ClipRotation | None = None


class ClipTransition(BaseWireModel):
    in_: str | None = Field(default=None, alias="in")
    out: str | None = None


class Clip(BaseWireModel):
    """A clip as it appears in the Edit document."""

    asset: Asset
    start: Annotated[float, Field(ge=0)] | Literal["auto"]
    length: Annotated[float, Field(gt=0)] | Literal["auto", "end"]
    position: Anchor | None = None
    fit: ClipFit | None = None
    offset: ClipOffset | None = None
    opacity: AnimatedUnit | None = None
    scale: AnimatedNonNegative | None = None
    transform: ClipTransform | None = None
    effect: str | None = None
    transition: ClipTransition | None = None
    width: float | None = Field(default=None, ge=1, le=3840)
    height: float | None = Field(default=None, ge=1, le=2160)


class Track(BaseWireModel):
    """An ordered list of clips; later tracks render on top."""

    clips: list[Clip]

"""Edit document schemas - the serialized wire format."""

from enum import StrEnum
from typing import Annotated, Any

from pydantic import Field

from src.common.base_studio_model import BaseWireModel
from src.schemas.assets import HexColor, Source
from src.schemas.clip import Track


class OutputFormat(StrEnum):
    """Render output container/format."""

    MP4 = "mp4"
    GIF = "gif"
    MP3 = "mp3"
    JPG = "jpg"
    PNG = "png"
    BMP = "bmp"


class FontSource(BaseWireModel):
    src: Source


class Timeline(BaseWireModel):
    background: HexColor | None = None
    fonts: list[FontSource] | None = None
    tracks: list[Track]


class OutputSize(BaseWireModel):
    width: int = Field(gt=0)
    height: int = Field(gt=0)


class Destination(BaseWireModel):
    """A render destination; provider specific options pass through."""

    provider: str = Field(min_length=1)
    exclude: bool | None = None
    options: dict[str, Any] | None = None


FpsValue = Annotated[float, Field(gt=0, le=120)]


class Output(BaseWireModel):
    size: OutputSize
    fps: FpsValue | None = None
    format: OutputFormat
    destinations: list[Destination] | None = None


class MergeFieldEntry(BaseWireModel):
    """A ``{find, replace}`` merge pair; replace may be any JSON value."""

    find: str = Field(min_length=1)
    replace: Any


class Edit(BaseWireModel):
    """The complete Edit document."""

    timeline: Timeline
    output: Output
    merge: list[MergeFieldEntry] | None = None

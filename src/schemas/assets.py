"""Asset schemas - the ``asset`` member of a clip, discriminated by ``type``."""

from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import Field, model_validator

from src.common.base_studio_model import BaseWireModel
from src.schemas.keyframe import AnimatedUnit

HEX_COLOR_PATTERN = r"^(#([A-Fa-f0-9]{8}|[A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})|transparent)$"

Source = Annotated[str, Field(min_length=1)]
HexColor = Annotated[str, Field(pattern=HEX_COLOR_PATTERN)]


class Anchor(StrEnum):
    """Nine-point anchor used for clip and asset placement."""

    TOP_LEFT = "topLeft"
    TOP = "top"
    TOP_RIGHT = "topRight"
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"
    BOTTOM_LEFT = "bottomLeft"
    BOTTOM = "bottom"
    BOTTOM_RIGHT = "bottomRight"


class Crop(BaseWireModel):
    """Edge crop of a visual asset."""

    top: float | None = Field(default=None, ge=0)
    right: float | None = Field(default=None, ge=0)
    bottom: float | None = Field(default=None, ge=0)
    left: float | None = Field(default=None, ge=0)


class VideoAsset(BaseWireModel):
    type: Literal["video"]
    src: Source
    trim: float | None = Field(default=None, ge=0)
    crop: Crop | None = None
    volume: AnimatedUnit | None = None
    anchor: Anchor | None = None


class AudioAsset(BaseWireModel):
    type: Literal["audio"]
    src: Source
    trim: float | None = Field(default=None, ge=0)
    volume: AnimatedUnit | None = None
    effect: str | None = None


class ImageAsset(BaseWireModel):
    type: Literal["image"]
    src: Source
    crop: Crop | None = None
    anchor: Anchor | None = None


class LumaAsset(BaseWireModel):
    type: Literal["luma"]
    src: Source


class TextFont(BaseWireModel):
    color: HexColor | None = None
    family: str | None = None
    size: float | None = Field(default=None, gt=0)
    weight: float | str | None = None
    line_height: float | None = Field(default=None, alias="lineHeight")
    opacity: float | None = Field(default=None, ge=0, le=1)


class TextAlignment(BaseWireModel):
    horizontal: Literal["left", "center", "right"] | None = None
    vertical: Literal["top", "center", "bottom"] | None = None


class TextBackground(BaseWireModel):
    color: HexColor | None = None
    opacity: float | None = Field(default=None, ge=0, le=1)
    padding: float | None = Field(default=None, ge=0, le=100)
    border_radius: float | None = Field(default=None, ge=0, alias="borderRadius")


class TextStroke(BaseWireModel):
    width: float | None = Field(default=None, ge=0)
    color: HexColor | None = None


class TextAsset(BaseWireModel):
    type: Literal["text"]
    text: str
    width: float | None = Field(default=None, gt=0)
    height: float | None = Field(default=None, gt=0)
    font: TextFont | None = None
    alignment: TextAlignment | None = None
    background: TextBackground | None = None
    stroke: TextStroke | None = None


class RichTextAsset(BaseWireModel):
    """Rich text; nested styling blocks are passed through to the renderer."""

    type: Literal["rich-text"]
    text: str = ""
    width: float | None = Field(default=None, ge=100, le=1920)
    height: float | None = Field(default=None, ge=50, le=1080)
    font: dict[str, Any] | None = None
    style: dict[str, Any] | None = None
    stroke: dict[str, Any] | None = None
    shadow: dict[str, Any] | None = None
    background: dict[str, Any] | None = None
    alignment: TextAlignment | None = None
    animation: dict[str, Any] | None = None
    custom_fonts: list[dict[str, Any]] | None = Field(default=None, alias="customFonts")
    cache_enabled: bool | None = Field(default=None, alias="cacheEnabled")
    pixel_ratio: float | None = Field(default=None, ge=1, le=3, alias="pixelRatio")


class ShapeRectangle(BaseWireModel):
    width: float = Field(gt=0)
    height: float = Field(gt=0)


class ShapeCircle(BaseWireModel):
    radius: float = Field(gt=0)


class ShapeLine(BaseWireModel):
    length: float = Field(gt=0)
    thickness: float = Field(gt=0)


class ShapeFill(BaseWireModel):
    color: HexColor
    opacity: float = Field(ge=0, le=1)


class ShapeStroke(BaseWireModel):
    color: HexColor
    width: float = Field(gt=0)


class ShapeAsset(BaseWireModel):
    type: Literal["shape"]
    shape: Literal["rectangle", "circle", "line"]
    width: float | None = Field(default=None, gt=0)
    height: float | None = Field(default=None, gt=0)
    fill: ShapeFill | None = None
    stroke: ShapeStroke | None = None
    rectangle: ShapeRectangle | None = None
    circle: ShapeCircle | None = None
    line: ShapeLine | None = None

    @model_validator(mode="after")
    def _geometry_matches_shape(self) -> "ShapeAsset":
        if getattr(self, self.shape) is None:
            msg = f"shape '{self.shape}' requires a '{self.shape}' definition"
            raise ValueError(msg)
        return self


class HtmlAsset(BaseWireModel):
    type: Literal["html"]
    html: str
    css: str
    width: float | None = Field(default=None, gt=0)
    height: float | None = Field(default=None, gt=0)
    position: Anchor | None = None


class CaptionAsset(BaseWireModel):
    type: Literal["caption"]
    src: Source
    font: dict[str, Any] | None = None
    stroke: dict[str, Any] | None = None
    background: dict[str, Any] | None = None
    alignment: TextAlignment | None = None
    width: float | None = Field(default=None, ge=1)
    height: float | None = Field(default=None, ge=1)
    trim: float | None = Field(default=None, ge=0)


Asset = Annotated[
    VideoAsset
    | AudioAsset
    | ImageAsset
    | LumaAsset
    | TextAsset
    | RichTextAsset
    | ShapeAsset
    | HtmlAsset
    | CaptionAsset,
    Field(discriminator="type"),
]

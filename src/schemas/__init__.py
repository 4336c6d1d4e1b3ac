"""Edit document wire schemas."""

from src.schemas.asset_kind import AssetKind
from src.schemas.assets import (
    Anchor,
    Asset,
    AudioAsset,
    CaptionAsset,
    HtmlAsset,
    ImageAsset,
    LumaAsset,
    RichTextAsset,
    ShapeAsset,
    TextAsset,
    VideoAsset,
)
from src.schemas.clip import Clip, ClipFit, Track
from src.schemas.edit import Destination, Edit, FontSource, MergeFieldEntry, Output, OutputFormat, OutputSize, Timeline
from src.schemas.keyframe import Keyframe, KeyframeInterpolation

__all__ = [
    "Anchor",
    "Asset",
    "AssetKind",
    "AudioAsset",
    "CaptionAsset",
    "Clip",
    "ClipFit",
    "Destination",
    "Edit",
    "FontSource",
    "HtmlAsset",
    "ImageAsset",
    "Keyframe",
    "KeyframeInterpolation",
    "LumaAsset",
    "MergeFieldEntry",
    "Output",
    "OutputFormat",
    "OutputSize",
    "RichTextAsset",
    "ShapeAsset",
    "TextAsset",
    "Timeline",
    "Track",
    "VideoAsset",
]

"""Asset kind enum."""

from enum import StrEnum


class AssetKind(StrEnum):
    """Kind of asset a clip plays, as named on the wire."""

    VIDEO = "video"
    AUDIO = "audio"
    IMAGE = "image"
    LUMA = "luma"
    TEXT = "text"
    RICH_TEXT = "rich-text"
    SHAPE = "shape"
    HTML = "html"
    CAPTION = "caption"

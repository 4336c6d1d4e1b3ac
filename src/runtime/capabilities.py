"""What each asset kind can do at runtime."""

from src.common.base_studio_model import BaseStudioModel
from src.common.errors import UnsupportedAssetTypeError
from src.schemas.asset_kind import AssetKind


class AssetCapabilities(BaseStudioModel):
    kind: AssetKind
    # Has an intrinsic duration that "auto" length can be probed from
    probeable: bool
    has_src: bool
    trimmable: bool


ASSET_CAPABILITIES: dict[AssetKind, AssetCapabilities] = {
    AssetKind.VIDEO: AssetCapabilities(kind=AssetKind.VIDEO, probeable=True, has_src=True, trimmable=True),
    AssetKind.AUDIO: AssetCapabilities(kind=AssetKind.AUDIO, probeable=True, has_src=True, trimmable=True),
    AssetKind.IMAGE: AssetCapabilities(kind=AssetKind.IMAGE, probeable=False, has_src=True, trimmable=False),
    AssetKind.LUMA: AssetCapabilities(kind=AssetKind.LUMA, probeable=True, has_src=True, trimmable=False),
    AssetKind.TEXT: AssetCapabilities(kind=AssetKind.TEXT, probeable=False, has_src=False, trimmable=False),
    AssetKind.RICH_TEXT: AssetCapabilities(kind=AssetKind.RICH_TEXT, probeable=False, has_src=False, trimmable=False),
    AssetKind.SHAPE: AssetCapabilities(kind=AssetKind.SHAPE, probeable=False, has_src=False, trimmable=False),
    AssetKind.HTML: AssetCapabilities(kind=AssetKind.HTML, probeable=False, has_src=False, trimmable=False),
    AssetKind.CAPTION: AssetCapabilities(kind=AssetKind.CAPTION, probeable=False, has_src=True, trimmable=False),
}


def capabilities_for(asset_type: str) -> AssetCapabilities:
    """Look up the capability entry for a wire asset type.

    Raises:
        UnsupportedAssetTypeError: The type is not a known asset kind.
    """
    try:
        kind = AssetKind(asset_type)
    except ValueError:
        raise UnsupportedAssetTypeError(str(asset_type)) from None

    capabilities = ASSET_CAPABILITIES.get(kind)
    if capabilities is None:
        raise UnsupportedAssetTypeError(kind)
    return capabilities

"""Asset loader interface.

Loading (decoding media, fetching fonts) happens outside the engine. The
session only awaits ``load`` after a clip is placed, and records a
``ClipLoadError`` against the clip instead of failing the session.
"""

from src.runtime.runtime_clip import RuntimeClip


class AssetLoader:
    async def load(self, clip: RuntimeClip) -> None:
        """Initialize the clip's asset; raise ``ClipLoadError`` on failure."""


class NullAssetLoader(AssetLoader):
    """Loader that accepts every clip."""

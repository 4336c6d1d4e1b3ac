"""Media duration probing for "auto" clip lengths."""

import asyncio
import json
import logging
import math
import shutil
import subprocess
from abc import ABC, abstractmethod

import librosa

from src.common.errors import AssetProbeError

logger = logging.getLogger(__name__)


class MediaProber(ABC):
    """Reports the intrinsic duration of a media source.

    Subclasses (or test fakes) override ``probe``; the session only depends on
    the coroutine contract: return seconds or raise ``AssetProbeError``.
    """

    @abstractmethod
    async def probe(self, src: str) -> float: ...


class FFprobeMediaProber(MediaProber):
    """Probe with ffprobe when available, falling back to librosa."""

    def __init__(self, ffprobe_binary: str = "ffprobe", timeout_seconds: float = 15.0) -> None:
        """Initialize the prober.

        Args:
            ffprobe_binary: Name or path of the ffprobe executable.
            timeout_seconds: Upper bound for a single ffprobe invocation.
        """
        self.ffprobe_binary = ffprobe_binary
        self.timeout_seconds = timeout_seconds

    async def probe(self, src: str) -> float:
        """Get the duration of a media source in seconds.

        Args:
            src: URL or local path of the media.

        Returns:
            Duration in seconds.

        Raises:
            AssetProbeError: Neither ffprobe nor librosa could report a duration.
        """
        duration = await asyncio.to_thread(self._get_duration_ffprobe, src)
        if duration is None:
            duration = await asyncio.to_thread(self._get_duration_librosa, src)

        if duration is None or math.isnan(duration) or duration <= 0:
            msg = f"Could not determine duration of {src}"
            raise AssetProbeError(msg)
        return duration

    def _get_duration_ffprobe(self, src: str) -> float | None:
        """Get duration using ffprobe if available."""
        if shutil.which(self.ffprobe_binary) is None:
            return None

        try:
            result = subprocess.run(
                [
                    self.ffprobe_binary,
                    "-v", "quiet",
                    "-show_entries", "format=duration",
                    "-of", "json",
                    src,
                ],
                capture_output=True,
                text=True,
                check=False,
                timeout=self.timeout_seconds,
            )
        except subprocess.TimeoutExpired:
            logger.warning("[probe] ffprobe timed out after %.1fs for %s", self.timeout_seconds, src)
            return None

        if result.returncode != 0:
            return None

        try:
            data = json.loads(result.stdout or "{}")
            duration_str = (data.get("format") or {}).get("duration")
            if duration_str is None:
                return None
            return float(duration_str)
        except (ValueError, AttributeError) as e:
            # ffprobe reports "N/A" for streams without a container duration
            logger.debug("[probe] Unreadable ffprobe output for %s: %s", src, e)
            return None

    def _get_duration_librosa(self, src: str) -> float | None:
        """Get duration using librosa (works for local files with audio tracks)."""
        try:
            return float(librosa.get_duration(path=src))
        except Exception as e:
            logger.debug("[probe] librosa could not read %s: %s", src, e)
            return None

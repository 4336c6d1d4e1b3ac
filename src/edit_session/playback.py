"""Playback clock driven by the host's per-frame tick.

The clock only reads the registry; it never mutates the document or clips.
"""

import logging
from collections.abc import Callable

from src.events.channel import EventChannel
from src.events.types import PlaybackPause, PlaybackPlay
from src.runtime.registry import ClipRegistry
from src.runtime.runtime_clip import RuntimeClip

logger = logging.getLogger(__name__)


class PlaybackClock:
    def __init__(self, registry: ClipRegistry, events: EventChannel, duration: Callable[[], float]) -> None:
        """Initialize the clock.

        Args:
            registry: Registry read for active clips.
            events: Channel for play/pause notifications.
            duration: Returns the current total duration in seconds.
        """
        self.registry = registry
        self.events = events
        self._duration = duration
        self.time = 0.0
        self.is_playing = False

    @property
    def duration(self) -> float:
        return self._duration()

    def play(self) -> None:
        if self.is_playing:
            return
        if self.time >= self.duration:
            self.time = 0.0
        self.is_playing = True
        self.events.emit(PlaybackPlay())

    def pause(self) -> None:
        if not self.is_playing:
            return
        self.is_playing = False
        self.events.emit(PlaybackPause())

    def stop(self) -> None:
        self.pause()
        self.time = 0.0

    def seek(self, time: float) -> None:
        self.time = min(max(0.0, time), self.duration)

    def update(self, elapsed: float) -> None:
        """Advance by ``elapsed`` seconds while playing; pauses at the end."""
        if not self.is_playing:
            return
        self.time = min(self.time + max(0.0, elapsed), self.duration)
        if self.time >= self.duration:
            logger.debug("[playback] Reached end at %.3fs", self.time)
            self.pause()

    def active_clips_at(self, time: float | None = None) -> list[RuntimeClip]:
        """Clips covering ``time`` (default: now), lowest track first."""
        at = self.time if time is None else time
        return [clip for _, _, clip in self.registry.iter_clips() if clip.start <= at < clip.end]

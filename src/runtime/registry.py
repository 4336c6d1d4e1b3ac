"""Runtime clip registry: resolved tracks with an id index."""

import logging
from collections.abc import Iterator

from src.common.base_studio_model import BaseStudioModel
from src.common.errors import ClipNotFoundError, TrackNotFoundError
from src.runtime.runtime_clip import RuntimeClip
from src.timing.types import ResolvedTiming

logger = logging.getLogger(__name__)


class RegistrySnapshot(BaseStudioModel, arbitrary_types_allowed=True):
    """Structure and derived timing of a registry at one point in time."""

    tracks: list[list[RuntimeClip]]
    resolved: dict[str, ResolvedTiming]
    clip_errors: dict[str, str]


class ClipRegistry:
    """Resolved clips mirrored track-for-track from the Edit document.

    Cardinality changes are made through ``src.runtime.layers`` only, so the
    registry never drifts from the document.
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self.tracks: list[list[RuntimeClip]] = []
        self._by_id: dict[str, RuntimeClip] = {}
        self._end_length_ids: set[str] = set()
        self.clip_errors: dict[str, str] = {}

    # Lookups

    @property
    def track_count(self) -> int:
        return len(self.tracks)

    def get_track(self, track_index: int) -> list[RuntimeClip]:
        if not 0 <= track_index < len(self.tracks):
            raise TrackNotFoundError(track_index)
        return self.tracks[track_index]

    def get_clip(self, track_index: int, clip_index: int) -> RuntimeClip:
        track = self.get_track(track_index)
        if not 0 <= clip_index < len(track):
            raise ClipNotFoundError(track_index=track_index, clip_index=clip_index)
        return track[clip_index]

    def clip_by_id(self, clip_id: str) -> RuntimeClip | None:
        return self._by_id.get(clip_id)

    def find_clip(self, clip_id: str) -> tuple[int, int] | None:
        """Derive the current (track, clip) position of a clip id."""
        clip = self._by_id.get(clip_id)
        if clip is None:
            return None
        for track_index, track in enumerate(self.tracks):
            for clip_index, candidate in enumerate(track):
                if candidate is clip:
                    return track_index, clip_index
        return None

    def iter_clips(self) -> Iterator[tuple[int, int, RuntimeClip]]:
        for track_index, track in enumerate(self.tracks):
            for clip_index, clip in enumerate(track):
                yield track_index, clip_index, clip

    def end_length_clips(self) -> list[RuntimeClip]:
        """Registered ``"end"``-length clips, in track order."""
        return [clip for _, _, clip in self.iter_clips() if clip.id in self._end_length_ids]

    def total_duration(self) -> float:
        return max((clip.end for _, _, clip in self.iter_clips()), default=0.0)

    # Structure

    def insert_track(self, track_index: int, clips: list[RuntimeClip]) -> None:
        if not 0 <= track_index <= len(self.tracks):
            raise TrackNotFoundError(track_index)
        self.tracks.insert(track_index, list(clips))
        for clip in clips:
            self._register(clip)

    def remove_track(self, track_index: int) -> list[RuntimeClip]:
        track = self.get_track(track_index)
        del self.tracks[track_index]
        for clip in track:
            self._unregister(clip)
        return track

    def insert_clip(self, track_index: int, clip_index: int, clip: RuntimeClip) -> None:
        track = self.get_track(track_index)
        if not 0 <= clip_index <= len(track):
            raise ClipNotFoundError(track_index=track_index, clip_index=clip_index)
        track.insert(clip_index, clip)
        self._register(clip)

    def remove_clip(self, track_index: int, clip_index: int) -> RuntimeClip:
        clip = self.get_clip(track_index, clip_index)
        del self.tracks[track_index][clip_index]
        self._unregister(clip)
        return clip

    def replace_clip(self, track_index: int, clip_index: int, clip: RuntimeClip) -> RuntimeClip:
        previous = self.get_clip(track_index, clip_index)
        self._unregister(previous)
        self.tracks[track_index][clip_index] = clip
        self._register(clip)
        return previous

    def clear(self) -> None:
        self.tracks = []
        self._by_id.clear()
        self._end_length_ids.clear()
        self.clip_errors.clear()

    # Errors

    def set_clip_error(self, clip_id: str, message: str) -> None:
        self.clip_errors[clip_id] = message

    def get_clip_error(self, clip_id: str) -> str | None:
        return self.clip_errors.get(clip_id)

    def pop_clip_error(self, clip_id: str) -> str | None:
        return self.clip_errors.pop(clip_id, None)

    # Snapshots

    def snapshot(self) -> RegistrySnapshot:
        return RegistrySnapshot(
            tracks=[list(track) for track in self.tracks],
            resolved={clip.id: clip.resolved for _, _, clip in self.iter_clips()},
            clip_errors=dict(self.clip_errors),
        )

    def restore(self, snapshot: RegistrySnapshot) -> None:
        self.tracks = [list(track) for track in snapshot.tracks]
        self._by_id.clear()
        self._end_length_ids.clear()
        for _, _, clip in self.iter_clips():
            clip.resolved = snapshot.resolved[clip.id]
            self._register(clip)
        self.clip_errors = dict(snapshot.clip_errors)

    def _register(self, clip: RuntimeClip) -> None:
        self._by_id[clip.id] = clip
        if clip.intent.has_end_length:
            self._end_length_ids.add(clip.id)

    def _unregister(self, clip: RuntimeClip) -> None:
        self._by_id.pop(clip.id, None)
        self._end_length_ids.discard(clip.id)

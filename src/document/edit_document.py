"""Edit document: the symbolic, serializable timeline tree.

The document stores exactly what the caller authored. ``"auto"``/``"end"``
timing and ``{{ FIELD }}`` placeholders are kept verbatim; nothing here
resolves them.
"""

from __future__ import annotations

import copy
import logging
from typing import Any

from src.common.errors import ClipNotFoundError, TrackNotFoundError

logger = logging.getLogger(__name__)


def deep_merge(base: dict[str, Any], updates: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``updates`` into a copy of ``base``.

    Nested dicts merge key by key; any other value (lists included) replaces
    the base value. A None update removes the key.
    """
    merged = copy.deepcopy(base)
    for key, value in updates.items():
        if value is None:
            merged.pop(key, None)
        elif isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


class EditDocument:
    """CRUD over the raw Edit tree.

    Track and clip cardinality must only change through
    ``src.runtime.layers.apply_structural_change`` so the runtime registry
    mirrors the same structure.
    """

    def __init__(self, data: dict[str, Any]) -> None:
        self._data = copy.deepcopy(data)
        timeline = self._data.setdefault("timeline", {})
        timeline.setdefault("tracks", [])
        self._data.setdefault("output", {})

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> EditDocument:
        return cls(data)

    def to_json(self) -> dict[str, Any]:
        """Document form with symbols and placeholders preserved."""
        data = copy.deepcopy(self._data)
        if not data.get("merge"):
            data.pop("merge", None)
        return data

    def clone(self) -> EditDocument:
        return EditDocument(self._data)

    def restore(self, snapshot: EditDocument) -> None:
        """Reset this document in place to the content of ``snapshot``."""
        self._data = copy.deepcopy(snapshot._data)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EditDocument):
            return NotImplemented
        return self._data == other._data

    # Timeline

    @property
    def timeline(self) -> dict[str, Any]:
        return self._data["timeline"]

    @property
    def tracks(self) -> list[dict[str, Any]]:
        return self.timeline["tracks"]

    @property
    def track_count(self) -> int:
        return len(self.tracks)

    def get_track(self, track_index: int) -> dict[str, Any]:
        if not 0 <= track_index < len(self.tracks):
            raise TrackNotFoundError(track_index)
        return self.tracks[track_index]

    def clip_count(self, track_index: int) -> int:
        return len(self.get_track(track_index)["clips"])

    def get_clip(self, track_index: int, clip_index: int) -> dict[str, Any]:
        clips = self.get_track(track_index)["clips"]
        if not 0 <= clip_index < len(clips):
            raise ClipNotFoundError(track_index=track_index, clip_index=clip_index)
        return clips[clip_index]

    def add_track(self, track_index: int, track: dict[str, Any] | None = None) -> None:
        if not 0 <= track_index <= len(self.tracks):
            raise TrackNotFoundError(track_index)
        track = copy.deepcopy(track) if track is not None else {"clips": []}
        track.setdefault("clips", [])
        self.tracks.insert(track_index, track)

    def remove_track(self, track_index: int) -> dict[str, Any]:
        track = self.get_track(track_index)
        del self.tracks[track_index]
        return track

    def add_clip(self, track_index: int, clip: dict[str, Any], clip_index: int | None = None) -> int:
        """Insert a clip; appends when ``clip_index`` is None. Returns the index used."""
        clips = self.get_track(track_index)["clips"]
        if clip_index is None:
            clip_index = len(clips)
        if not 0 <= clip_index <= len(clips):
            raise ClipNotFoundError(track_index=track_index, clip_index=clip_index)
        clips.insert(clip_index, copy.deepcopy(clip))
        return clip_index

    def remove_clip(self, track_index: int, clip_index: int) -> dict[str, Any]:
        clip = self.get_clip(track_index, clip_index)
        del self.get_track(track_index)["clips"][clip_index]
        return clip

    def replace_clip(self, track_index: int, clip_index: int, clip: dict[str, Any]) -> dict[str, Any]:
        previous = self.get_clip(track_index, clip_index)
        self.get_track(track_index)["clips"][clip_index] = copy.deepcopy(clip)
        return previous

    def update_clip(self, track_index: int, clip_index: int, updates: dict[str, Any]) -> dict[str, Any]:
        """Deep-merge ``updates`` into a clip; returns the previous clip."""
        previous = self.get_clip(track_index, clip_index)
        self.get_track(track_index)["clips"][clip_index] = deep_merge(previous, updates)
        return previous

    def get_background(self) -> str | None:
        return self.timeline.get("background")

    def set_background(self, color: str | None) -> None:
        _set_or_drop(self.timeline, "background", color)

    def get_fonts(self) -> list[dict[str, Any]]:
        return copy.deepcopy(self.timeline.get("fonts") or [])

    def set_fonts(self, fonts: list[dict[str, Any]] | None) -> None:
        _set_or_drop(self.timeline, "fonts", copy.deepcopy(fonts) if fonts else None)

    def add_font(self, src: str) -> None:
        fonts = self.get_fonts()
        if not any(font.get("src") == src for font in fonts):
            fonts.append({"src": src})
        self.set_fonts(fonts)

    def remove_font(self, src: str) -> None:
        self.set_fonts([font for font in self.get_fonts() if font.get("src") != src])

    # Output

    @property
    def output(self) -> dict[str, Any]:
        return self._data["output"]

    def get_size(self) -> dict[str, int] | None:
        return copy.deepcopy(self.output.get("size"))

    def set_size(self, width: int, height: int) -> None:
        self.output["size"] = {"width": width, "height": height}

    def get_fps(self) -> float | None:
        return self.output.get("fps")

    def set_fps(self, fps: float | None) -> None:
        _set_or_drop(self.output, "fps", fps)

    def get_format(self) -> str | None:
        return self.output.get("format")

    def set_format(self, output_format: str) -> None:
        self.output["format"] = output_format

    def get_destinations(self) -> list[dict[str, Any]]:
        return copy.deepcopy(self.output.get("destinations") or [])

    def set_destinations(self, destinations: list[dict[str, Any]] | None) -> None:
        _set_or_drop(self.output, "destinations", copy.deepcopy(destinations) if destinations else None)

    # Merge fields

    def get_merge_fields(self) -> list[dict[str, Any]]:
        return copy.deepcopy(self._data.get("merge") or [])

    def set_merge_fields(self, entries: list[dict[str, Any]]) -> None:
        self._data["merge"] = copy.deepcopy(entries)


def _set_or_drop(container: dict[str, Any], key: str, value: Any) -> None:
    if value is None:
        container.pop(key, None)
    else:
        container[key] = value

"""Timing resolution.

Pure functions that turn symbolic timing into seconds. Tracks are assumed to
be sorted by start and non-overlapping; auto starts of overlapping clips are
undefined.
"""

import logging
import math
from collections.abc import Sequence
from typing import Any

from src.common.errors import AssetProbeError, UnsupportedAssetTypeError
from src.runtime.capabilities import capabilities_for
from src.runtime.registry import ClipRegistry
from src.runtime.runtime_clip import RuntimeClip
from src.timing.probe import MediaProber

logger = logging.getLogger(__name__)


def resolve_auto_start(track_index: int, clip_index: int, tracks: Sequence[Sequence[RuntimeClip]]) -> float:
    """End of the previous clip on the same track, or 0 for the first clip."""
    if clip_index <= 0:
        return 0.0
    return tracks[track_index][clip_index - 1].end


async def resolve_auto_length(asset: dict[str, Any], prober: MediaProber) -> float:
    """Probe the intrinsic duration of an asset, minus its trim.

    Raises:
        AssetProbeError: The asset has no duration to report.
    """
    asset_type = asset.get("type")
    try:
        capabilities = capabilities_for(asset_type)
    except UnsupportedAssetTypeError as e:
        raise AssetProbeError(str(e)) from e

    if not capabilities.probeable:
        msg = f"Asset type {asset_type!r} has no intrinsic duration"
        raise AssetProbeError(msg)

    src = asset.get("src")
    if not src:
        msg = f"Asset type {asset_type!r} has no src to probe"
        raise AssetProbeError(msg)

    duration = await prober.probe(src)
    if duration is None or math.isnan(duration) or duration <= 0:
        msg = f"Probe returned an unusable duration for {src}: {duration}"
        raise AssetProbeError(msg)

    trim = (asset.get("trim") or 0.0) if capabilities.trimmable else 0.0
    length = duration - trim
    if length <= 0:
        msg = f"Trim {trim}s consumes the whole duration ({duration}s) of {src}"
        raise AssetProbeError(msg)
    return length


async def resolve_auto_length_or_default(
    asset: dict[str, Any],
    prober: MediaProber,
    default_seconds: float,
    fallback: bool,
) -> float:
    """``resolve_auto_length`` with the configured fallback on probe failure."""
    try:
        return await resolve_auto_length(asset, prober)
    except AssetProbeError as e:
        if not fallback:
            raise
        logger.warning("[timing] %s; using default length %.3fs", e, default_seconds)
        return default_seconds


def resolve_end_length(start: float, timeline_end: float) -> float:
    return max(0.0, timeline_end - start)


def calculate_timeline_end(tracks: Sequence[Sequence[RuntimeClip]]) -> float:
    """Latest end across all clips, ignoring ``"end"``-length clips themselves."""
    return max(
        (clip.end for track in tracks for clip in track if not clip.intent.has_end_length),
        default=0.0,
    )


def _resolve_auto_starts(registry: ClipRegistry, track_index: int, from_clip_index: int) -> None:
    track = registry.get_track(track_index)
    for clip_index in range(max(0, from_clip_index), len(track)):
        clip = track[clip_index]
        if not clip.intent.has_auto_start:
            continue
        start = resolve_auto_start(track_index, clip_index, registry.tracks)
        if start != clip.start:
            clip.set_resolved(start=start)


def _resolve_end_lengths(registry: ClipRegistry) -> float:
    # One snapshot of the timeline end; end-length clips never feed each other
    timeline_end = calculate_timeline_end(registry.tracks)
    for clip in registry.end_length_clips():
        length = resolve_end_length(clip.start, timeline_end)
        if length != clip.length:
            clip.set_resolved(length=length)
    return timeline_end


def propagate_timing_changes(
    registry: ClipRegistry,
    track_index: int | None,
    from_clip_index: int = 0,
) -> float:
    """Cascade a change through a track and every ``"end"``-length clip.

    Re-resolves each auto-start clip of ``track_index`` from
    ``from_clip_index`` (inclusive, clamped to 0), then recomputes the
    timeline end once and re-resolves all end-length clips from it. With
    ``track_index`` None only the end-length pass runs.

    Returns:
        The timeline end the end-length clips were resolved against.
    """
    if track_index is not None and 0 <= track_index < registry.track_count:
        _resolve_auto_starts(registry, track_index, from_clip_index)
    return _resolve_end_lengths(registry)


def resolve_all_timing(registry: ClipRegistry) -> float:
    """Full pass: auto starts of every track, then end lengths."""
    for track_index in range(registry.track_count):
        _resolve_auto_starts(registry, track_index, 0)
    return _resolve_end_lengths(registry)

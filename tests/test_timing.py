"""Timing resolution: auto starts, auto lengths and end lengths."""

import asyncio

import pytest

from src.common.errors import AssetProbeError
from src.runtime.registry import ClipRegistry
from src.runtime.runtime_clip import RuntimeClip
from src.timing.resolver import (
    calculate_timeline_end,
    propagate_timing_changes,
    resolve_all_timing,
    resolve_auto_length,
    resolve_auto_length_or_default,
    resolve_auto_start,
)
from src.timing.types import ResolvedTiming, TimingIntent
from tests.builders import INTRO_SRC, PROBE_DURATIONS
from tests.fakes import FakeProber


def _clip(start, length) -> RuntimeClip:
    return RuntimeClip(
        config={"asset": {"type": "image", "src": "https://cdn.test/still.png"}, "start": start, "length": length},
        intent=TimingIntent(start=start, length=length),
        resolved=ResolvedTiming(
            start=0.0 if start == "auto" else float(start),
            length=0.0 if length == "end" else float(length),
        ),
    )


def _registry(*tracks) -> ClipRegistry:
    registry = ClipRegistry()
    for track_index, clips in enumerate(tracks):
        registry.insert_track(track_index, list(clips))
    return registry


def _starts(registry: ClipRegistry, track_index: int = 0) -> list[float]:
    return [clip.start for clip in registry.tracks[track_index]]


def test_auto_start_follows_previous_clip():
    tracks = [[_clip(0, 2), _clip(3, 1)]]

    assert resolve_auto_start(0, 0, tracks) == 0.0
    assert resolve_auto_start(0, 1, tracks) == 2.0
    assert resolve_auto_start(0, 2, tracks) == 4.0


def test_resolve_all_chains_auto_starts_and_fills_end_lengths():
    registry = _registry(
        [_clip("auto", 2), _clip("auto", 3), _clip(10, 1), _clip("auto", 1)],
        [_clip(4, "end")],
    )

    timeline_end = resolve_all_timing(registry)

    assert _starts(registry) == [0.0, 2.0, 10.0, 11.0]
    assert timeline_end == 12.0
    assert registry.tracks[1][0].length == 8.0


def test_end_length_never_negative():
    registry = _registry([_clip(0, 2)], [_clip(5, "end")])

    resolve_all_timing(registry)

    assert registry.tracks[1][0].length == 0.0


def test_end_length_clips_do_not_feed_each_other():
    registry = _registry([_clip(0, 3)], [_clip(0, "end")], [_clip(1, "end")])

    assert calculate_timeline_end(registry.tracks) == 3.0
    resolve_all_timing(registry)

    assert [registry.tracks[1][0].length, registry.tracks[2][0].length] == [3.0, 2.0]


def test_propagation_starts_at_the_change_point():
    registry = _registry([_clip("auto", 2), _clip("auto", 2), _clip("auto", 2)])
    resolve_all_timing(registry)

    registry.tracks[0][0].set_resolved(length=5.0)
    propagate_timing_changes(registry, 0, 1)

    assert _starts(registry) == [0.0, 5.0, 7.0]


def test_propagation_without_track_only_updates_end_lengths():
    registry = _registry([_clip(0, 2)], [_clip(0, "end")])
    resolve_all_timing(registry)

    registry.tracks[0][0].set_resolved(length=6.0)

    assert propagate_timing_changes(registry, None) == 6.0
    assert registry.tracks[1][0].length == 6.0


def test_auto_length_subtracts_trim_for_trimmable_assets():
    prober = FakeProber(PROBE_DURATIONS)

    length = asyncio.run(resolve_auto_length({"type": "video", "src": INTRO_SRC, "trim": 1.5}, prober))

    assert length == 3.5
    assert prober.calls == [INTRO_SRC]


@pytest.mark.parametrize(
    "asset",
    [
        {"type": "image", "src": "https://cdn.test/still.png"},
        {"type": "text", "text": "Hello"},
        {"type": "video", "src": INTRO_SRC, "trim": 5},
        {"type": "audio", "src": "https://cdn.test/unknown.mp3"},
    ],
)
def test_auto_length_errors(asset):
    with pytest.raises(AssetProbeError):
        asyncio.run(resolve_auto_length(asset, FakeProber(PROBE_DURATIONS)))


def test_auto_length_fallback():
    asset = {"type": "audio", "src": "https://cdn.test/unknown.mp3"}
    prober = FakeProber(PROBE_DURATIONS)

    assert asyncio.run(resolve_auto_length_or_default(asset, prober, 3.0, fallback=True)) == 3.0
    with pytest.raises(AssetProbeError):
        asyncio.run(resolve_auto_length_or_default(asset, prober, 3.0, fallback=False))


def test_resolved_timing_rejects_negative_values():
    with pytest.raises(ValueError):
        ResolvedTiming(start=-1.0, length=1.0)


def test_timing_intent_wire_form():
    assert TimingIntent(start=2.0, length="end").to_wire() == {"start": 2, "length": "end"}
    assert TimingIntent(start="auto", length=1.5).to_wire() == {"start": "auto", "length": 1.5}

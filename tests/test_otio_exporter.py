"""OpenTimelineIO export of resolved edits."""

import asyncio

import opentimelineio as otio

from src.export.otio_exporter import OtioExporter, export_otio
from tests.builders import INTRO_SRC, MUSIC_SRC, image_clip, make_edit, text_clip, video_clip


def _resolved(session):
    edit = make_edit(
        [video_clip(start=0, trim=1.0), image_clip(start=6, length=2, transform={"rotate": {"angle": 30}})],
        [{"asset": {"type": "audio", "src": MUSIC_SRC}, "start": 0, "length": 3}],
        [text_clip("Title", start=1, length=2)],
    )
    asyncio.run(session.load(edit))
    return session.get_resolved_edit()


def test_tracks_clips_and_gaps(session):
    timeline = OtioExporter().create_timeline(_resolved(session), name="Promo")

    assert timeline.name == "Promo"
    video, audio, titles = timeline.tracks
    assert video.kind == otio.schema.TrackKind.Video
    assert audio.kind == otio.schema.TrackKind.Audio

    first, gap, second = video
    assert isinstance(gap, otio.schema.Gap)
    assert gap.duration().to_seconds() == 2.0
    assert first.media_reference.target_url == INTRO_SRC
    assert first.source_range.start_time.to_seconds() == 1.0
    assert first.source_range.duration.to_seconds() == 4.0
    assert second.effects[0].metadata["rotation"] == 30.0
    assert second.metadata["studio"]["asset"]["type"] == "image"

    leading_gap, title = titles
    assert leading_gap.duration().to_seconds() == 1.0
    assert isinstance(title.media_reference, otio.schema.MissingReference)


def test_frame_rate_follows_output_fps(session):
    resolved = _resolved(session)
    resolved["output"]["fps"] = 30

    timeline = OtioExporter().create_timeline(resolved)

    assert timeline.tracks[0][0].source_range.duration.rate == 30


def test_export_writes_readable_file(session, tmp_path):
    output_path = tmp_path / "edit.otio"

    assert export_otio(_resolved(session), output_path) == output_path

    timeline = otio.adapters.read_from_file(str(output_path))
    assert len(timeline.tracks) == 3


def test_null_transform_exports_without_rotation(session):
    edit = make_edit([image_clip(start=0, transform=None), image_clip(start=2, transform={"rotate": None})])
    assert session.validate_edit(edit).valid
    asyncio.run(session.load(edit))

    [video] = OtioExporter().create_timeline(session.get_resolved_edit()).tracks

    assert [len(clip.effects) for clip in video] == [0, 0]

"""Edit session behaviour: loading, timing cascades, history and rollback."""

import asyncio
import copy

import pytest

from src.common.errors import AssetProbeError, CommandExecutionError, InvalidSplitError, SchemaValidationError
from src.edit_session.config import EditSessionConfig
from src.edit_session.session import EditSession
from src.events.types import EditEventType
from tests.builders import INTRO_SRC, LOGO_SRC, PROBE_DURATIONS, image_clip, make_edit, video_clip
from tests.fakes import EventRecorder, FailingLoader, FakeProber, SlowProber


def _starts(session: EditSession, track_index: int = 0) -> list[float]:
    return [clip["start"] for clip in session.get_resolved_edit()["timeline"]["tracks"][track_index]["clips"]]


def _lengths(session: EditSession, track_index: int = 0) -> list[float]:
    return [clip["length"] for clip in session.get_resolved_edit()["timeline"]["tracks"][track_index]["clips"]]


def test_load_round_trips_document_form(session):
    """Loading then reading returns the document exactly, symbols and placeholders included."""
    edit = make_edit(
        [video_clip(), image_clip(start="auto", length=2, src="{{ LOGO }}")],
        [image_clip(start=0, length="end")],
        merge=[{"find": "LOGO", "replace": LOGO_SRC}],
    )

    asyncio.run(session.load(copy.deepcopy(edit)))

    assert session.get_edit() == edit
    resolved = session.get_resolved_edit()
    assert resolved["timeline"]["tracks"][0]["clips"][1]["asset"]["src"] == LOGO_SRC
    assert resolved["timeline"]["tracks"][1]["clips"][0]["length"] == 7.0
    assert session.total_duration == 7.0


def test_auto_start_chains_after_insert(session):
    asyncio.run(session.load(make_edit([image_clip(length=1), image_clip(length=2)])))
    assert _starts(session) == [0.0, 1.0]

    asyncio.run(session.add_clip(0, image_clip(length=2), clip_index=1))

    assert _starts(session) == [0.0, 1.0, 3.0]
    assert [clip["start"] for clip in session.get_edit()["timeline"]["tracks"][0]["clips"]] == ["auto"] * 3


def test_end_length_follows_timeline_end(session):
    edit = make_edit(
        [video_clip(start=0), image_clip(start="auto", length=3)],
        [image_clip(start=0, length="end")],
    )

    async def scenario():
        await session.load(edit)
        assert _lengths(session, 1) == [8.0]

        await session.delete_clip(0, 1)
        assert _lengths(session, 1) == [5.0]
        assert session.total_duration == 5.0

        await session.undo()
        assert _lengths(session, 1) == [8.0]

    asyncio.run(scenario())


def test_end_length_clip_does_not_extend_timeline(session):
    edit = make_edit([image_clip(start=0, length=4)], [image_clip(start=1, length="end")])

    asyncio.run(session.load(edit))

    assert _starts(session, 1) == [1.0]
    assert _lengths(session, 1) == [3.0]
    assert session.total_duration == 4.0


def test_undo_redo_restores_every_intermediate_state(session):
    edit = make_edit(
        [video_clip(start=0), image_clip(length=2)],
        [image_clip(start=0, length="end", src="{{LOGO}}")],
        merge=[{"find": "LOGO", "replace": LOGO_SRC}],
    )

    def state():
        return session.get_edit(), session.get_resolved_edit()

    async def scenario():
        await session.load(edit)
        operations = [
            lambda: session.add_clip(0, image_clip(length=1)),
            lambda: session.update_clip(0, 1, {"opacity": 0.5}),
            lambda: session.split_clip(0, 0, 2.0),
            lambda: session.move_clip(0, 3, 1, 0),
            lambda: session.set_output_size(640, 360),
            lambda: session.update_merge_field_value("LOGO", "https://cdn.test/logo-v2.png"),
            lambda: session.add_track(2, [image_clip(start=0, length=1)]),
            lambda: session.delete_track(2),
        ]

        states = [state()]
        for operation in operations:
            await operation()
            states.append(state())

        for expected in reversed(states[:-1]):
            assert await session.undo()
            assert state() == expected
        assert not session.can_undo()

        for expected in states[1:]:
            assert await session.redo()
            assert state() == expected
        assert not session.can_redo()

    asyncio.run(scenario())


def test_new_command_truncates_redo_history(session):
    async def scenario():
        await session.load(make_edit([image_clip()]))
        await session.add_clip(0, image_clip())
        await session.add_clip(0, image_clip())
        await session.undo()
        assert session.can_redo()

        await session.update_clip(0, 0, {"opacity": 0.25})

        assert len(session.log.history) == session.log.cursor + 1
        assert not session.can_redo()
        assert await session.redo() is False

    asyncio.run(scenario())


def test_undo_with_empty_history_is_a_no_op(session, recorder):
    assert asyncio.run(session.undo()) is False
    assert asyncio.run(session.redo()) is False
    assert recorder.received == []


def test_history_limit_drops_oldest_commands(prober):
    session = EditSession(config=EditSessionConfig(max_history_size=2), prober=prober)

    async def scenario():
        await session.load(make_edit([]))
        for index in range(3):
            await session.add_track(index)

        assert len(session.log.history) == 2
        assert await session.undo()
        assert await session.undo()
        assert not await session.undo()
        assert session.registry.track_count == 1

    asyncio.run(scenario())


def test_clip_ids_are_stable_across_undo_and_redo(session):
    async def scenario():
        await session.load(make_edit([image_clip()]))
        clip_id = await session.add_clip(0, image_clip(length=3))
        assert session.find_clip(clip_id) == (0, 1)

        await session.update_clip(0, 1, {"opacity": 0.8})
        assert session.get_clip_id(0, 1) == clip_id

        await session.undo()
        await session.undo()
        assert session.find_clip(clip_id) is None

        await session.redo()
        assert session.get_clip_id(0, 1) == clip_id

    asyncio.run(scenario())


def test_split_clip_continues_media_on_the_right(session):
    async def scenario():
        await session.load(make_edit([video_clip(start=0, trim=1.0)]))
        left_id = session.get_clip_id(0, 0)

        right_id = await session.split_clip(0, 0, 1.5)

        left, right = session.get_resolved_edit()["timeline"]["tracks"][0]["clips"]
        assert (left["start"], left["length"]) == (0.0, 1.5)
        assert (right["start"], right["length"]) == (1.5, 2.5)
        assert right["asset"]["trim"] == 2.5
        assert session.get_clip_id(0, 0) == left_id
        assert session.find_clip(right_id) == (0, 1)

        await session.undo()
        assert session.get_edit()["timeline"]["tracks"][0]["clips"] == [video_clip(start=0, trim=1.0)]

    asyncio.run(scenario())


@pytest.mark.parametrize("split_time", [0.05, 3.95, 4.5])
def test_split_outside_clip_is_rejected(session, split_time):
    async def scenario():
        await session.load(make_edit([video_clip(start=0, trim=1.0)]))
        before = session.get_edit()

        with pytest.raises(CommandExecutionError) as error:
            await session.split_clip(0, 0, split_time)

        assert isinstance(error.value.cause, InvalidSplitError)
        assert session.get_edit() == before
        assert not session.can_undo()

    asyncio.run(scenario())


def test_move_clip_between_tracks(session):
    async def scenario():
        await session.load(make_edit([image_clip(length=1), image_clip(length=2)], [image_clip(length=4)]))
        moved_id = session.get_clip_id(0, 0)

        await session.move_clip(0, 0, 1, 1)

        assert _starts(session, 0) == [0.0]
        assert _starts(session, 1) == [0.0, 4.0]
        assert session.find_clip(moved_id) == (1, 1)

        await session.undo()
        assert session.find_clip(moved_id) == (0, 0)
        assert _starts(session, 0) == [0.0, 1.0]

    asyncio.run(scenario())


def test_failed_command_rolls_back_and_emits_nothing(prober):
    session = EditSession(config=EditSessionConfig(fallback_on_probe_failure=False), prober=prober)

    async def scenario():
        await session.load(make_edit([image_clip(length=2)]))
        before = (session.get_edit(), session.get_resolved_edit())
        recorder = EventRecorder(session.events)

        with pytest.raises(CommandExecutionError) as error:
            await session.add_clip(0, video_clip(src="https://cdn.test/missing.mp4"))

        assert isinstance(error.value.cause, AssetProbeError)
        assert (session.get_edit(), session.get_resolved_edit()) == before
        assert recorder.received == []
        assert not session.can_undo()

    asyncio.run(scenario())


def test_probe_failure_falls_back_to_default_length(session):
    asyncio.run(session.load(make_edit([video_clip(start=0, src="https://cdn.test/missing.mp4")])))

    assert _lengths(session) == [3.0]


def test_invalid_clip_is_rejected_before_execution(session):
    async def scenario():
        await session.load(make_edit([image_clip()]))
        with pytest.raises(SchemaValidationError) as error:
            await session.add_clip(0, image_clip(start=-1))
        assert error.value.errors[0].path == "clip.start"
        assert not session.can_undo()

    asyncio.run(scenario())


def test_invalid_load_keeps_previous_edit(session):
    async def scenario():
        await session.load(make_edit([image_clip()]))
        before = session.get_edit()

        with pytest.raises(SchemaValidationError):
            await session.load({"timeline": {"tracks": []}})

        assert session.get_edit() == before

    asyncio.run(scenario())


def test_clip_load_failure_is_isolated(config):
    broken = "https://cdn.test/broken.png"
    session = EditSession(config=config, prober=FakeProber(PROBE_DURATIONS), loader=FailingLoader({broken}))
    recorder = EventRecorder(session.events)

    asyncio.run(session.load(make_edit([image_clip(length=2), image_clip(length=2, src=broken)])))

    broken_id = session.get_clip_id(0, 1)
    assert session.get_clip_error(broken_id) == f"cannot decode {broken}"
    assert session.get_clip_error(session.get_clip_id(0, 0)) is None
    assert session.total_duration == 4.0
    [failed] = recorder.of_type(EditEventType.CLIP_LOAD_FAILED)
    assert failed.clip_id == broken_id
    assert failed.asset_type == "image"


def test_single_edit_changed_per_command(session, recorder):
    async def scenario():
        await session.load(make_edit([image_clip()]))
        recorder.clear()
        await session.add_clip(0, image_clip())

    asyncio.run(scenario())

    changed = recorder.of_type(EditEventType.EDIT_CHANGED)
    assert [event.source for event in changed] == ["addClip"]
    assert len(recorder.of_type(EditEventType.TIMELINE_UPDATED)) == 1
    assert len(recorder.of_type(EditEventType.CLIP_ADDED)) == 1


def test_undo_and_redo_announce_the_command(session, recorder):
    async def scenario():
        await session.load(make_edit([image_clip()]))
        await session.delete_clip(0, 0)
        recorder.clear()
        await session.undo()
        await session.redo()

    asyncio.run(scenario())

    assert [event.command for event in recorder.of_type(EditEventType.EDIT_UNDO)] == ["deleteClip"]
    assert [event.command for event in recorder.of_type(EditEventType.EDIT_REDO)] == ["deleteClip"]
    sources = [event.source for event in recorder.of_type(EditEventType.EDIT_CHANGED)]
    assert sources == ["undo:deleteClip", "redo:deleteClip"]


def test_hot_reload_applies_granular_changes(session, recorder):
    original = make_edit([image_clip(length=2), image_clip(length=3)])
    changed = copy.deepcopy(original)
    changed["timeline"]["tracks"][0]["clips"][1]["length"] = 5
    changed["output"]["fps"] = 30

    async def scenario():
        await session.load(original)
        clip_id = session.get_clip_id(0, 1)
        recorder.clear()

        await session.load_edit(changed)

        assert session.get_edit() == changed
        assert session.get_clip_id(0, 1) == clip_id
        assert len(session.log.history) == 2
        assert [event.source for event in recorder.of_type(EditEventType.EDIT_CHANGED)] == ["loadEdit:granular"]

        await session.undo()
        await session.undo()
        assert session.get_edit() == original

    asyncio.run(scenario())


def test_hot_reload_with_new_structure_reinitializes(session):
    original = make_edit([image_clip()])
    restructured = make_edit([image_clip()], [video_clip(start=0)])

    async def scenario():
        await session.load(original)
        await session.add_clip(0, image_clip())

        await session.load_edit(restructured)

        assert session.get_edit() == restructured
        assert not session.can_undo()
        assert session.total_duration == 5.0

    asyncio.run(scenario())


def test_merge_substitution_is_idempotent(session, prober):
    edit = make_edit(
        [video_clip(start=0, src="{{ CLIP }}"), image_clip(length=2, opacity="{{ OPACITY }}")],
        merge=[{"find": "CLIP", "replace": INTRO_SRC}, {"find": "OPACITY", "replace": 0.5}],
    )

    async def scenario():
        await session.load(edit)
        resolved = session.get_resolved_edit()

        second = EditSession(config=session.config, prober=prober)
        await second.load(resolved)
        assert second.get_resolved_edit() == resolved

    asyncio.run(scenario())


def test_playback_clock_follows_duration(session, recorder):
    async def scenario():
        await session.load(make_edit([image_clip(length=2)], [image_clip(start=1, length=2)]))

    asyncio.run(scenario())
    clock = session.playback

    clock.play()
    clock.update(1.5)
    assert [clip.id for clip in clock.active_clips_at()] == [session.get_clip_id(0, 0), session.get_clip_id(1, 0)]

    clock.update(10)
    assert clock.time == 3.0
    assert not clock.is_playing
    assert len(recorder.of_type(EditEventType.PLAYBACK_PAUSE)) == 1

    clock.seek(-4)
    assert clock.time == 0.0


def test_auto_start_insert_at_front(session):
    async def scenario():
        await session.load(make_edit([image_clip(length=2), image_clip(length=3)]))
        assert _starts(session) == [0.0, 2.0]

        await session.add_clip(0, image_clip(length=1), clip_index=0)
        assert _starts(session) == [0.0, 1.0, 3.0]

    asyncio.run(scenario())


def test_end_length_tracks_extended_timeline(session):
    async def scenario():
        await session.load(make_edit([image_clip(start=0, length=10)], [image_clip(start=4, length="end")]))
        assert _lengths(session, 1) == [6.0]

        await session.update_clip_timing(0, 0, length=12)
        assert _lengths(session, 1) == [8.0]
        assert session.get_edit()["timeline"]["tracks"][1]["clips"][0]["length"] == "end"

    asyncio.run(scenario())


def test_apply_then_remove_merge_field_restores_value(session):
    async def scenario():
        await session.load(make_edit([image_clip(start=0, src=LOGO_SRC)]))
        before = session.get_resolved_edit()

        await session.apply_merge_field(0, 0, "asset.src", "LOGO")
        await session.remove_merge_field(0, 0, "asset.src")

        assert session.get_resolved_edit() == before
        edit = session.get_edit()
        assert edit["timeline"]["tracks"][0]["clips"][0]["asset"]["src"] == LOGO_SRC
        assert "merge" not in edit

    asyncio.run(scenario())


def test_execute_after_partial_undo_discards_redo(session):
    async def scenario():
        await session.load(make_edit([]))
        for index in range(5):
            await session.add_track(index)
        await session.undo()
        await session.undo()

        await session.add_track(0)

        assert len(session.log.history) == session.log.cursor + 1 == 4
        assert await session.redo() is False

    asyncio.run(scenario())


def test_failed_hot_reload_restores_edit_and_history(prober):
    session = EditSession(config=EditSessionConfig(fallback_on_probe_failure=False), prober=prober)
    original = make_edit([image_clip(length=2), video_clip()])
    rejected = copy.deepcopy(original)
    rejected["timeline"]["tracks"][0]["clips"][0]["length"] = 4
    rejected["timeline"]["tracks"][0]["clips"][1]["asset"]["src"] = "https://cdn.test/missing.mp4"

    async def scenario():
        await session.load(original)
        await session.add_track(1)
        await session.undo()
        history, cursor = session.log.history, session.log.cursor
        recorder = EventRecorder(session.events)

        with pytest.raises(CommandExecutionError):
            await session.load_edit(rejected)

        assert session.get_edit() == original
        assert session.log.history == history
        assert session.log.cursor == cursor
        assert recorder.received == []

        assert await session.redo() is True
        assert len(session.get_edit()["timeline"]["tracks"]) == 2
        assert _lengths(session) == [2, 5.0]
        assert await session.redo() is False

    asyncio.run(scenario())


def test_concurrent_commands_run_one_at_a_time():
    prober = SlowProber(PROBE_DURATIONS)
    session = EditSession(config=EditSessionConfig(), prober=prober)

    async def scenario():
        await session.load(make_edit([]))
        await session.add_track(0)
        recorder = EventRecorder(session.events)
        prober.max_active = 0

        await asyncio.gather(*(session.add_clip(0, video_clip()) for _ in range(4)))

        assert prober.max_active == 1
        assert len(prober.calls) == 4
        assert len(session.log.history) == 5
        assert _starts(session) == [0.0, 5.0, 10.0, 15.0]
        assert _lengths(session) == [5.0] * 4
        assert [event.source for event in recorder.of_type(EditEventType.EDIT_CHANGED)] == ["addClip"] * 4

    asyncio.run(scenario())

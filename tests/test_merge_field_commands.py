"""Binding, unbinding and updating merge fields through the session."""

import asyncio

from src.events.types import EditEventType
from tests.builders import LOGO_SRC, image_clip, make_edit, text_clip

HERO_SRC = "https://cdn.test/hero.png"


def _clips(edit, track_index: int = 0) -> list[dict]:
    return edit["timeline"]["tracks"][track_index]["clips"]


def test_apply_merge_field_binds_property(session, recorder):
    async def scenario():
        await session.load(make_edit([image_clip(start=0)]))
        recorder.clear()

        await session.apply_merge_field(0, 0, "asset.src", "HERO", HERO_SRC)

        edit = session.get_edit()
        assert _clips(edit)[0]["asset"]["src"] == "{{HERO}}"
        assert edit["merge"] == [{"find": "HERO", "replace": HERO_SRC}]
        assert _clips(session.get_resolved_edit())[0]["asset"]["src"] == HERO_SRC
        assert session.get_merge_field_for_property(0, 0, "asset.src") == "HERO"
        [applied] = recorder.of_type(EditEventType.MERGE_FIELD_APPLIED)
        assert (applied.property_path, applied.field_name) == ("asset.src", "HERO")

        await session.undo()
        assert "merge" not in session.get_edit()
        assert session.get_merge_field_for_property(0, 0, "asset.src") is None

    asyncio.run(scenario())


def test_apply_without_value_keeps_current_value(session):
    async def scenario():
        await session.load(make_edit([text_clip("Summer sale")]))
        await session.apply_merge_field(0, 0, "asset.text", "HEADLINE")

        assert session.get_edit()["merge"] == [{"find": "HEADLINE", "replace": "Summer sale"}]
        assert _clips(session.get_resolved_edit())[0]["asset"]["text"] == "Summer sale"

    asyncio.run(scenario())


def test_remove_merge_field_writes_literal_and_drops_unused_field(session):
    edit = make_edit([image_clip(src="{{ LOGO }}")], merge=[{"find": "LOGO", "replace": LOGO_SRC}])

    async def scenario():
        await session.load(edit)
        await session.remove_merge_field(0, 0, "asset.src")

        current = session.get_edit()
        assert _clips(current)[0]["asset"]["src"] == LOGO_SRC
        assert "merge" not in current

        await session.undo()
        assert session.get_edit() == edit

    asyncio.run(scenario())


def test_remove_keeps_field_still_bound_elsewhere(session):
    edit = make_edit(
        [image_clip(src="{{LOGO}}"), image_clip(src="{{LOGO}}")],
        merge=[{"find": "LOGO", "replace": LOGO_SRC}],
    )

    async def scenario():
        await session.load(edit)
        await session.remove_merge_field(0, 0, "asset.src", restore_value=HERO_SRC)

        current = session.get_edit()
        assert [clip["asset"]["src"] for clip in _clips(current)] == [HERO_SRC, "{{LOGO}}"]
        assert current["merge"] == [{"find": "LOGO", "replace": LOGO_SRC}]

    asyncio.run(scenario())


def test_update_value_re_resolves_every_bound_clip(session):
    edit = make_edit(
        [image_clip(src="{{LOGO}}")],
        [image_clip(start=0, src="{{ LOGO }}"), image_clip(src="https://cdn.test/other.png")],
        merge=[{"find": "LOGO", "replace": LOGO_SRC}],
    )

    async def scenario():
        await session.load(edit)
        ids = [session.get_clip_id(0, 0), session.get_clip_id(1, 0)]

        await session.update_merge_field_value("LOGO", HERO_SRC, description="Brand logo")

        resolved = session.get_resolved_edit()
        assert _clips(resolved, 0)[0]["asset"]["src"] == HERO_SRC
        assert _clips(resolved, 1)[0]["asset"]["src"] == HERO_SRC
        assert _clips(resolved, 1)[1]["asset"]["src"] == "https://cdn.test/other.png"
        assert [session.get_clip_id(0, 0), session.get_clip_id(1, 0)] == ids
        assert session.merge_fields.get("LOGO").description == "Brand logo"
        assert session.get_edit()["timeline"] == edit["timeline"]

        await session.undo()
        assert _clips(session.get_resolved_edit(), 1)[0]["asset"]["src"] == LOGO_SRC

    asyncio.run(scenario())


def test_update_bound_value_through_update_clip_keeps_binding(session):
    edit = make_edit([text_clip("{{ TITLE }}")], merge=[{"find": "TITLE", "replace": "Hello"}])

    async def scenario():
        await session.load(edit)

        await session.update_clip(0, 0, {"asset": {"text": "Hello"}, "opacity": 0.5})
        assert _clips(session.get_edit())[0]["asset"]["text"] == "{{ TITLE }}"

        await session.update_clip(0, 0, {"asset": {"text": "Goodbye"}})
        assert _clips(session.get_edit())[0]["asset"]["text"] == "Goodbye"
        assert session.get_merge_field_for_property(0, 0, "asset.text") is None

    asyncio.run(scenario())


def test_delete_merge_field_globally(session):
    edit = make_edit(
        [text_clip("{{TITLE}}"), text_clip("Intro: {{ TITLE }}", start=2)],
        merge=[{"find": "TITLE", "replace": "Launch"}, {"find": "OTHER", "replace": "x"}],
    )

    async def scenario():
        await session.load(edit)
        await session.delete_merge_field_globally("title")

        current = session.get_edit()
        assert [clip["asset"]["text"] for clip in _clips(current)] == ["Launch", "Intro: Launch"]
        assert current["merge"] == [{"find": "OTHER", "replace": "x"}]
        assert session.log.history[-1].name == "deleteMergeFieldGlobally"

        await session.undo()
        assert session.get_edit() == edit

    asyncio.run(scenario())


def test_update_value_with_differently_cased_name_keeps_one_field(session):
    edit = make_edit([image_clip(start=0, src="{{LOGO}}")], merge=[{"find": "LOGO", "replace": LOGO_SRC}])

    async def scenario():
        await session.load(edit)

        await session.update_merge_field_value("logo", HERO_SRC)

        assert session.get_edit()["merge"] == [{"find": "LOGO", "replace": HERO_SRC}]
        assert _clips(session.get_resolved_edit())[0]["asset"]["src"] == HERO_SRC

        await session.undo()
        assert session.get_edit() == edit

    asyncio.run(scenario())

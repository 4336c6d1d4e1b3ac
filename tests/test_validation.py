"""Schema validation of Edit documents and fragments."""

import pytest

from src.common.errors import SchemaValidationError
from src.schemas.clip import Clip
from src.schemas.validation import parse_clip, parse_edit, resolved_clip_config, validate_edit
from tests.builders import image_clip, make_edit, text_clip


def _paths(edit) -> list[str]:
    return [issue.path for issue in validate_edit(edit).errors]


def test_valid_edit_passes():
    edit = make_edit(
        [image_clip(start=0, length="end"), text_clip("Hello", start="auto", length=3)],
        merge=[{"find": "TITLE", "replace": "Hi"}],
    )

    result = validate_edit(edit)

    assert result.valid
    assert result.errors == []


def test_errors_point_at_document_paths():
    edit = make_edit([image_clip(), image_clip(start=-1)])

    assert set(_paths(edit)) == {"timeline.tracks.0.clips.1.start"}


def test_asset_errors_skip_union_tags():
    clip = text_clip("Hello")
    clip["asset"]["font"] = {"size": -4}
    edit = make_edit([clip])

    assert _paths(edit) == ["timeline.tracks.0.clips.0.asset.font.size"]


def test_unknown_asset_type_and_extra_keys():
    clip = image_clip(shadow=True)
    unknown = {"asset": {"type": "hologram"}, "start": 0, "length": 1}

    paths = _paths(make_edit([clip, unknown]))

    assert "timeline.tracks.0.clips.0.shadow" in paths
    assert "timeline.tracks.0.clips.1.asset" in paths


def test_invalid_timing_keywords():
    paths = _paths(make_edit([image_clip(start="end", length="soon")]))

    assert set(paths) == {"timeline.tracks.0.clips.0.start", "timeline.tracks.0.clips.0.length"}


def test_output_is_validated():
    edit = make_edit([])
    edit["output"]["fps"] = 500
    edit["output"]["format"] = "avi"

    assert set(_paths(edit)) == {"output.fps", "output.format"}


def test_placeholders_validate_after_substitution():
    edit = make_edit([image_clip(opacity="{{ OPACITY }}")], merge=[{"find": "OPACITY", "replace": 0.4}])
    assert validate_edit(edit).valid

    edit["merge"][0]["replace"] = 7
    assert set(_paths(edit)) == {"timeline.tracks.0.clips.0.opacity"}


def test_non_object_document():
    result = validate_edit(["not", "an", "edit"])

    assert not result.valid
    assert result.errors[0].path == ""


def test_parse_edit_raises_with_all_issues():
    with pytest.raises(SchemaValidationError) as error:
        parse_edit({"timeline": {"tracks": []}})

    assert [issue.path for issue in error.value.errors] == ["output"]


def test_shape_requires_matching_geometry():
    shape = {"asset": {"type": "shape", "shape": "circle"}, "start": 0, "length": 1}

    with pytest.raises(SchemaValidationError):
        parse_clip(shape)

    shape["asset"]["circle"] = {"radius": 40}
    assert parse_clip(shape).asset.shape == "circle"


def test_resolved_config_defaults_fit_by_asset_kind():
    image = resolved_clip_config(Clip.model_validate(image_clip()))
    rich = resolved_clip_config(Clip.model_validate({"asset": {"type": "rich-text", "text": "Hi"}, "start": 0, "length": 1}))

    assert image["fit"] == "crop"
    assert rich["fit"] == "cover"
    assert "position" not in image

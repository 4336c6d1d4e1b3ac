"""Parsing and validation entry points for Edit documents and fragments.

Validation runs on the merge-substituted document: placeholders such as
``"{{ OPACITY }}"`` only have a type once the ``merge`` list has been applied.
"""

import copy
from typing import Any

from pydantic import ValidationError

from src.common.errors import SchemaValidationError, ValidationIssue, ValidationResult, issues_from_validation_error
from src.merge_fields.substitution import apply_merge_fields
from src.merge_fields.types import SerializedMergeField
from src.schemas.asset_kind import AssetKind
from src.schemas.clip import Clip, ClipFit, Track
from src.schemas.edit import Edit


def merge_entries(raw: Any) -> list[SerializedMergeField]:
    """Read the ``merge`` list of a raw document, ignoring malformed entries."""
    if not isinstance(raw, dict) or not isinstance(raw.get("merge"), list):
        return []
    return [
        SerializedMergeField(find=entry["find"], replace=entry.get("replace"))
        for entry in raw["merge"]
        if isinstance(entry, dict) and isinstance(entry.get("find"), str)
    ]


def parse_edit(raw: Any) -> Edit:
    """Substitute the document's own merge fields, then validate it.

    Raises:
        SchemaValidationError: The document is malformed.
    """
    if not isinstance(raw, dict):
        raise SchemaValidationError([ValidationIssue(path="", message="Edit must be a JSON object")])

    substituted = apply_merge_fields(raw, merge_entries(raw))
    try:
        return Edit.model_validate(substituted)
    except ValidationError as e:
        raise SchemaValidationError.from_pydantic(e, substituted) from e


def validate_edit(raw: Any) -> ValidationResult:
    """Validate a raw document without applying it."""
    try:
        parse_edit(raw)
    except SchemaValidationError as e:
        return ValidationResult(valid=False, errors=e.errors)
    return ValidationResult(valid=True)


def parse_clip(raw: Any, prefix: str = "clip") -> Clip:
    """Validate one (already substituted) clip."""
    try:
        return Clip.model_validate(raw)
    except ValidationError as e:
        raise SchemaValidationError.from_pydantic(e, raw, prefix=prefix) from e


def parse_track(raw: Any, prefix: str = "track") -> Track:
    """Validate one (already substituted) track."""
    try:
        return Track.model_validate(raw)
    except ValidationError as e:
        raise SchemaValidationError.from_pydantic(e, raw, prefix=prefix) from e


def resolved_clip_config(clip: Clip) -> dict[str, Any]:
    """The runtime configuration of a parsed clip.

    Only keys present on the wire are kept; ``fit`` is the single default
    filled in (``cover`` for rich text, ``crop`` otherwise).
    """
    config = clip.model_dump(by_alias=True, exclude_unset=True, mode="json")
    if "fit" not in config:
        kind = AssetKind(config["asset"]["type"])
        config["fit"] = str(ClipFit.COVER if kind == AssetKind.RICH_TEXT else ClipFit.CROP)
    return copy.deepcopy(config)

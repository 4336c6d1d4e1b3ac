"""Merge field types.

Merge fields allow dynamic content substitution using ``{{ FIELD_NAME }}``
syntax. Values are replaced at render time, enabling template-based video
generation.
"""

import json
from typing import Any

from src.common.base_studio_model import BaseStudioModel


class MergeField(BaseStudioModel):
    """A merge field definition."""

    name: str
    # Used for preview when no runtime value is provided
    default_value: str
    description: str | None = None


class SerializedMergeField(BaseStudioModel):
    """Wire format entry (``{find, replace}``); replace may be any JSON value."""

    find: str
    replace: Any


class MergeFieldBinding(BaseStudioModel):
    """Links a clip property to the placeholder it was authored with."""

    property_path: str
    placeholder: str
    resolved_value: str


def replace_value_to_str(replace: Any) -> str:
    return replace if isinstance(replace, str) else json.dumps(replace)


def to_serialized(field: MergeField) -> SerializedMergeField:
    return SerializedMergeField(find=field.name, replace=field.default_value)


def from_serialized(field: SerializedMergeField) -> MergeField:
    return MergeField(name=field.find, default_value=replace_value_to_str(field.replace))

"""Placeholder substitution, binding detection and nested path helpers.

Property paths use dotted keys with bracketed list indices, e.g.
``asset.src`` or ``asset.customFonts[0].src``.
"""

import copy
import re
from collections.abc import Mapping
from typing import Any

from src.merge_fields.types import MergeFieldBinding, SerializedMergeField, replace_value_to_str

FIELD_NAME_PATTERN = r"[A-Z_0-9]+"
MERGE_FIELD_PATTERN = re.compile(r"\{\{\s*(" + FIELD_NAME_PATTERN + r")\s*\}\}", re.IGNORECASE)
WHOLE_PLACEHOLDER_PATTERN = re.compile(r"^\{\{\s*(" + FIELD_NAME_PATTERN + r")\s*\}\}$", re.IGNORECASE)

_PATH_TOKEN_PATTERN = re.compile(r"([^.\[\]]+)|\[(\d+)\]")


def substitute(text: str, values: Mapping[str, str]) -> str:
    """Replace every known ``{{NAME}}`` in ``text``; unknown names pass through.

    Field names are matched case-insensitively against upper-cased keys.
    """
    if not text or not values:
        return text

    def _replace(match: re.Match[str]) -> str:
        return values.get(match.group(1).upper(), match.group(0))

    return MERGE_FIELD_PATTERN.sub(_replace, text)


def _value_map(fields: list[SerializedMergeField]) -> dict[str, str]:
    return {field.find.upper(): replace_value_to_str(field.replace) for field in fields}


def _substitute_recursive(obj: Any, values: Mapping[str, str]) -> Any:
    if isinstance(obj, str):
        return substitute(obj, values)
    if isinstance(obj, list):
        return [_substitute_recursive(item, values) for item in obj]
    if isinstance(obj, dict):
        return {key: _substitute_recursive(value, values) for key, value in obj.items()}
    return obj


def apply_merge_fields(data: Any, fields: list[SerializedMergeField]) -> Any:
    """Apply merge field replacements to any JSON-like structure.

    Returns a deep copy with all known placeholders replaced; the input is
    never mutated.
    """
    if not fields:
        return copy.deepcopy(data)
    return _substitute_recursive(data, _value_map(fields))


def detect_bindings_in_object(
    obj: Any,
    fields: list[SerializedMergeField],
    base_path: str = "",
) -> dict[str, MergeFieldBinding]:
    """Find merge field placeholders in a raw (pre-substitution) object.

    Every string leaf containing a placeholder is recorded with its property
    path, the original placeholder text and the value it resolves to now.
    """
    values = _value_map(fields)
    bindings: dict[str, MergeFieldBinding] = {}
    _detect(obj, base_path, values, bindings)
    return bindings


def _detect(obj: Any, path: str, values: Mapping[str, str], bindings: dict[str, MergeFieldBinding]) -> None:
    if isinstance(obj, str):
        if MERGE_FIELD_PATTERN.search(obj):
            bindings[path] = MergeFieldBinding(
                property_path=path,
                placeholder=obj,
                resolved_value=substitute(obj, values),
            )
        return

    if isinstance(obj, list):
        for index, item in enumerate(obj):
            _detect(item, f"{path}[{index}]", values, bindings)
        return

    if isinstance(obj, dict):
        for key, value in obj.items():
            _detect(value, f"{path}.{key}" if path else key, values, bindings)


def parse_path(path: str) -> list[str | int]:
    """Split ``a.b[0].c`` into ``["a", "b", 0, "c"]``."""
    tokens: list[str | int] = []
    for key, index in _PATH_TOKEN_PATTERN.findall(path):
        tokens.append(int(index) if index else key)
    if not tokens:
        msg = f"Empty property path: {path!r}"
        raise ValueError(msg)
    return tokens


def get_nested_value(obj: Any, path: str) -> Any:
    """Read a nested value; returns None when any segment is missing."""
    current = obj
    for token in parse_path(path):
        if isinstance(token, int):
            if not isinstance(current, list) or token >= len(current):
                return None
            current = current[token]
        else:
            if not isinstance(current, dict) or token not in current:
                return None
            current = current[token]
    return current


def set_nested_value(obj: Any, path: str, value: Any) -> None:
    """Write a nested value in place, creating intermediate dicts as needed."""
    tokens = parse_path(path)
    current = obj
    for token, next_token in zip(tokens, tokens[1:]):
        if isinstance(token, int):
            current = current[token]
            continue
        if token not in current or current[token] is None:
            current[token] = [] if isinstance(next_token, int) else {}
        current = current[token]

    current[tokens[-1]] = value

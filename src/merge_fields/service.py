"""Merge field registry: CRUD, string resolution and serialization."""

import logging

from src.events.channel import EventChannel
from src.events.types import MergeFieldChanged, MergeFieldRegistered, MergeFieldRemoved, MergeFieldUpdated
from src.merge_fields.substitution import MERGE_FIELD_PATTERN, WHOLE_PLACEHOLDER_PATTERN, substitute
from src.merge_fields.types import MergeField, SerializedMergeField, from_serialized, to_serialized

logger = logging.getLogger(__name__)


class MergeFieldService:
    """Holds the named placeholders of an edit and their default values."""

    def __init__(self, events: EventChannel) -> None:
        """Initialize the service.

        Args:
            events: Channel used for registration notifications.
        """
        self.events = events
        # Keyed by upper-cased name; placeholders match names case-insensitively
        self._fields: dict[str, MergeField] = {}

    def register(self, field: MergeField, silent: bool = False) -> None:
        """Register or update a merge field.

        Args:
            field: The field to upsert.
            silent: Suppress notifications. Used when the field changes as a
                side effect of another command.
        """
        existing = self._fields.get(field.name.upper())
        is_new = existing is None
        if existing is not None and existing.name != field.name:
            field = field.model_copy(update={"name": existing.name})
        self._fields[field.name.upper()] = field
        logger.debug("[merge] %s field %s", "Registered" if is_new else "Updated", field.name)

        if not silent:
            self.events.emit(MergeFieldRegistered(field=field) if is_new else MergeFieldUpdated(field=field))
            self.events.emit(MergeFieldChanged(fields=self.get_all()))

    def remove(self, name: str, silent: bool = False) -> bool:
        removed_field = self._fields.pop(name.upper(), None)
        removed = removed_field is not None
        if removed and not silent:
            self.events.emit(MergeFieldRemoved(field_name=removed_field.name))
            self.events.emit(MergeFieldChanged(fields=self.get_all()))
        return removed

    def get(self, name: str) -> MergeField | None:
        return self._fields.get(name.upper())

    def get_all(self) -> list[MergeField]:
        return list(self._fields.values())

    def clear(self) -> None:
        self._fields.clear()

    def resolve(self, text: str) -> str:
        """Substitute every registered ``{{NAME}}``; unknown names pass through."""
        if not text or not self._fields:
            return text
        return substitute(text, self._value_map())

    def has_unresolved(self, text: str) -> bool:
        if not text:
            return False
        return MERGE_FIELD_PATTERN.search(self.resolve(text)) is not None

    @staticmethod
    def extract_field_name(value: str) -> str | None:
        """Return the field name when the whole string is one placeholder."""
        if not isinstance(value, str):
            return None
        match = WHOLE_PLACEHOLDER_PATTERN.match(value.strip())
        return match.group(1) if match else None

    @staticmethod
    def find_field_names(value: str) -> list[str]:
        """All placeholder names in a string, in order of appearance."""
        if not isinstance(value, str):
            return []
        return [match.group(1) for match in MERGE_FIELD_PATTERN.finditer(value)]

    @staticmethod
    def is_template(value: str) -> bool:
        return isinstance(value, str) and MERGE_FIELD_PATTERN.search(value) is not None

    @staticmethod
    def create_template(name: str) -> str:
        return "{{" + name + "}}"

    def to_serialized(self) -> list[SerializedMergeField]:
        """Export fields in ``{find, replace}`` form."""
        return [to_serialized(field) for field in self.get_all()]

    def load_from_serialized(self, items: list[SerializedMergeField]) -> None:
        """Replace all fields from ``{find, replace}`` entries without notifying."""
        self._fields.clear()
        for item in items:
            field = from_serialized(item)
            self._fields[field.name.upper()] = field

    def generate_unique_name(self, prefix: str) -> str:
        """Next free ``PREFIX_N`` name, starting at 1."""
        counter = 1
        while f"{prefix}_{counter}".upper() in self._fields:
            counter += 1
        return f"{prefix}_{counter}"

    def _value_map(self) -> dict[str, str]:
        return {key: field.default_value for key, field in self._fields.items()}

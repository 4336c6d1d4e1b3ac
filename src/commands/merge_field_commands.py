"""Merge field commands.

Each command keeps the clip's resolved value (for playback), its binding
(for export) and the merge field registry in step, and writes the registry
back into the document's ``merge`` list.
"""

import copy
import logging
from typing import Any

from src.commands.base import StructuralCommand
from src.commands.context import CommandContext
from src.events.types import ClipUpdated, MergeFieldApplied, MergeFieldChanged, MergeFieldRemoved, MergeFieldUpdated
from src.merge_fields.substitution import set_nested_value
from src.merge_fields.types import MergeField, replace_value_to_str
from src.runtime.layers import ReplaceClip

logger = logging.getLogger(__name__)


class _MergeFieldCommand(StructuralCommand):
    """Shared snapshot of the merge field registry and document list."""

    def __init__(self) -> None:
        super().__init__()
        self._fields_before: list[MergeField] = []
        self._document_merge_before: list[dict[str, Any]] = []
        self._affected_tracks: set[int] = set()

    def _snapshot_fields(self, context: CommandContext) -> None:
        self._inverse = []
        self._affected_tracks = set()
        self._fields_before = context.merge_fields.get_all()
        self._document_merge_before = context.document.get_merge_fields()

    async def _refresh(self, context: CommandContext, names: set[str], skip: tuple[str, ...] = ()) -> None:
        for track_index, inverse in await context.refresh_bound_clips(names, skip=skip):
            self._inverse.append(inverse)
            self._affected_tracks.add(track_index)

    def _restore_fields(self, context: CommandContext) -> None:
        self._revert(context)
        context.restore_merge_fields(self._fields_before)
        context.document.set_merge_fields(self._document_merge_before)

    def _propagate_affected(self, context: CommandContext, extra: int | None = None) -> None:
        tracks = set(self._affected_tracks)
        if extra is not None:
            tracks.add(extra)
        if not tracks:
            context.propagate(None)
        for track_index in sorted(tracks):
            context.propagate(track_index, 0)


class SetMergeFieldCommand(_MergeFieldCommand):
    """Apply a merge field to a clip property, or remove it.

    Applying sets the property's placeholder in the document and registers
    the field with ``new_value`` as its value. Removing writes ``new_value``
    back as a literal and drops the field once nothing else is bound to it.
    """

    name = "setMergeField"

    def __init__(
        self,
        track_index: int,
        clip_index: int,
        property_path: str,
        field_name: str | None,
        previous_field_name: str | None,
        previous_value: Any,
        new_value: Any,
    ) -> None:
        super().__init__()
        self.track_index = track_index
        self.clip_index = clip_index
        self.property_path = property_path
        self.field_name = field_name
        self.previous_field_name = previous_field_name
        self.previous_value = previous_value
        self.new_value = new_value
        self._clip_id = ""

    async def execute(self, context: CommandContext) -> None:
        self._snapshot_fields(context)
        clip = context.registry.get_clip(self.track_index, self.clip_index)
        self._clip_id = clip.id
        previous = context.clip_reference(self.track_index, self.clip_index)
        document_clip = copy.deepcopy(context.document.get_clip(self.track_index, self.clip_index))

        if self.field_name:
            context.merge_fields.register(
                MergeField(name=self.field_name, default_value=replace_value_to_str(self.new_value)),
                silent=True,
            )
            set_nested_value(document_clip, self.property_path, context.merge_fields.create_template(self.field_name))
        else:
            set_nested_value(document_clip, self.property_path, copy.deepcopy(self.new_value))
        context.sync_merge_fields_to_document()

        updated = await context.build_clip(document_clip, previous=clip)
        self._apply(
            context,
            ReplaceClip(
                track_index=self.track_index,
                clip_index=self.clip_index,
                document_clip=document_clip,
                clip=updated,
            ),
        )

        if self.field_name:
            # Other clips bound to the same field pick up its new value
            await self._refresh(context, {self.field_name}, skip=(clip.id,))
        elif self.previous_field_name and not self._still_bound(context, self.previous_field_name):
            context.merge_fields.remove(self.previous_field_name, silent=True)
            context.sync_merge_fields_to_document()

        if self.property_path == "asset.src" or self.property_path.endswith(".src"):
            await context.load_clip(updated)

        self._propagate_affected(context, self.track_index)
        context.emit(ClipUpdated(previous=previous, current=context.clip_reference(self.track_index, self.clip_index)))
        if self.field_name:
            context.emit(
                MergeFieldApplied(
                    track_index=self.track_index,
                    clip_index=self.clip_index,
                    clip_id=clip.id,
                    property_path=self.property_path,
                    field_name=self.field_name,
                )
            )
        else:
            context.emit(
                MergeFieldRemoved(
                    field_name=self.previous_field_name,
                    track_index=self.track_index,
                    clip_index=self.clip_index,
                    property_path=self.property_path,
                )
            )

    async def undo(self, context: CommandContext) -> None:
        previous = context.clip_reference(self.track_index, self.clip_index)
        self._restore_fields(context)
        self._propagate_affected(context, self.track_index)
        context.emit(ClipUpdated(previous=previous, current=context.clip_reference(self.track_index, self.clip_index)))
        if self.field_name:
            context.emit(
                MergeFieldRemoved(
                    field_name=self.field_name,
                    track_index=self.track_index,
                    clip_index=self.clip_index,
                    property_path=self.property_path,
                )
            )
        elif self.previous_field_name:
            context.emit(
                MergeFieldApplied(
                    track_index=self.track_index,
                    clip_index=self.clip_index,
                    clip_id=self._clip_id,
                    property_path=self.property_path,
                    field_name=self.previous_field_name,
                )
            )

    @staticmethod
    def _still_bound(context: CommandContext, field_name: str) -> bool:
        name = field_name.upper()
        return any(
            name == found.upper()
            for _, _, clip in context.registry.iter_clips()
            for binding in clip.bindings.values()
            for found in context.merge_fields.find_field_names(binding.placeholder)
        )


class UpdateMergeFieldValueCommand(_MergeFieldCommand):
    """Change the value of a field and re-resolve every clip bound to it."""

    name = "updateMergeFieldValue"

    def __init__(self, field_name: str, value: Any, description: str | None = None) -> None:
        super().__init__()
        self.field_name = field_name
        self.value = value
        self.description = description

    async def execute(self, context: CommandContext) -> None:
        self._snapshot_fields(context)
        existing = context.merge_fields.get(self.field_name)
        field = MergeField(
            name=self.field_name,
            default_value=replace_value_to_str(self.value),
            description=self.description if self.description is not None else (existing.description if existing else None),
        )
        context.merge_fields.register(field, silent=True)
        context.sync_merge_fields_to_document()
        await self._refresh(context, {self.field_name})
        self._propagate_affected(context)
        context.emit(MergeFieldUpdated(field=context.merge_fields.get(self.field_name) or field))
        context.emit(MergeFieldChanged(fields=context.merge_fields.get_all()))

    async def undo(self, context: CommandContext) -> None:
        self._restore_fields(context)
        self._propagate_affected(context)
        restored = context.merge_fields.get(self.field_name)
        if restored is not None:
            context.emit(MergeFieldUpdated(field=restored))
        else:
            context.emit(MergeFieldRemoved(field_name=self.field_name))
        context.emit(MergeFieldChanged(fields=context.merge_fields.get_all()))


class RemoveMergeFieldDefinitionCommand(_MergeFieldCommand):
    """Drop a field from the registry and the document ``merge`` list."""

    name = "removeMergeFieldDefinition"

    def __init__(self, field_name: str) -> None:
        super().__init__()
        self.field_name = field_name

    async def execute(self, context: CommandContext) -> None:
        self._snapshot_fields(context)
        field = context.merge_fields.get(self.field_name)
        if field is not None and context.merge_fields.remove(field.name, silent=True):
            context.sync_merge_fields_to_document()
            context.emit(MergeFieldRemoved(field_name=field.name))
            context.emit(MergeFieldChanged(fields=context.merge_fields.get_all()))

    async def undo(self, context: CommandContext) -> None:
        self._restore_fields(context)
        context.emit(MergeFieldChanged(fields=context.merge_fields.get_all()))


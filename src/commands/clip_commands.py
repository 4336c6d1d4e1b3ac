"""Clip-level commands: add, delete, update, split and move."""

import copy
import logging
from typing import Any

from src.commands.base import StructuralCommand
from src.commands.context import CommandContext
from src.common.errors import ClipNotFoundError, InvalidSplitError
from src.document.edit_document import deep_merge
from src.events.types import ClipAdded, ClipDeleted, ClipMoved, ClipRestored, ClipSplit, ClipUpdated
from src.merge_fields.substitution import get_nested_value, set_nested_value
from src.merge_fields.types import replace_value_to_str
from src.runtime.layers import InsertClip, RemoveClip, ReplaceClip
from src.runtime.runtime_clip import RuntimeClip
from src.timing.types import LengthValue, ResolvedTiming, StartValue, TimingIntent, is_auto

logger = logging.getLogger(__name__)

# Seconds; neither side of a split may be shorter
MIN_SPLIT_LENGTH = 0.1


def _wire_seconds(value: float) -> float | int:
    value = round(value, 6)
    return int(value) if float(value).is_integer() else value


class AddClipCommand(StructuralCommand):
    name = "addClip"

    def __init__(self, track_index: int, clip: dict[str, Any], clip_index: int | None = None) -> None:
        super().__init__()
        self.track_index = track_index
        self.clip = copy.deepcopy(clip)
        self.clip_index = clip_index
        self._runtime_clip: RuntimeClip | None = None
        self._inserted_at = 0

    @property
    def clip_id(self) -> str | None:
        return self._runtime_clip.id if self._runtime_clip is not None else None

    async def execute(self, context: CommandContext) -> None:
        self._inverse = []
        track = context.registry.get_track(self.track_index)
        clip_index = len(track) if self.clip_index is None else self.clip_index

        # Redo reuses the clip built on first execution, keeping its id
        if self._runtime_clip is None:
            self._runtime_clip = await context.build_clip(self.clip)
        clip = self._runtime_clip

        self._apply(
            context,
            InsertClip(track_index=self.track_index, clip_index=clip_index, document_clip=self.clip, clip=clip),
        )
        self._inserted_at = clip_index
        await context.load_clip(clip)
        context.propagate(self.track_index, clip_index)
        context.emit(ClipAdded(track_index=self.track_index, clip_index=clip_index, clip_id=clip.id))

    async def undo(self, context: CommandContext) -> None:
        self._revert(context)
        clip_id = self.clip_id or ""
        context.registry.pop_clip_error(clip_id)
        context.propagate(self.track_index, self._inserted_at)
        context.emit(ClipDeleted(track_index=self.track_index, clip_index=self._inserted_at, clip_id=clip_id))


class DeleteClipCommand(StructuralCommand):
    name = "deleteClip"

    def __init__(self, track_index: int, clip_index: int) -> None:
        super().__init__()
        self.track_index = track_index
        self.clip_index = clip_index
        self._clip_id = ""
        self._load_error: str | None = None

    async def execute(self, context: CommandContext) -> None:
        self._inverse = []
        clip = context.registry.get_clip(self.track_index, self.clip_index)
        self._clip_id = clip.id
        self._load_error = context.registry.pop_clip_error(clip.id)
        self._apply(context, RemoveClip(track_index=self.track_index, clip_index=self.clip_index))
        context.propagate(self.track_index, self.clip_index)
        context.emit(ClipDeleted(track_index=self.track_index, clip_index=self.clip_index, clip_id=clip.id))

    async def undo(self, context: CommandContext) -> None:
        self._revert(context)
        if self._load_error is not None:
            context.registry.set_clip_error(self._clip_id, self._load_error)
        context.propagate(self.track_index, self.clip_index)
        context.emit(ClipRestored(track_index=self.track_index, clip_index=self.clip_index, clip_id=self._clip_id))


class UpdateClipCommand(StructuralCommand):
    """Merge (or replace) clip properties given in resolved form.

    Properties bound to a merge field keep their placeholder while the new
    value equals the binding's resolved value; any other value overrides the
    placeholder and breaks the binding.
    """

    name = "updateClip"

    def __init__(self, track_index: int, clip_index: int, updates: dict[str, Any], replace: bool = False) -> None:
        super().__init__()
        self.track_index = track_index
        self.clip_index = clip_index
        self.updates = copy.deepcopy(updates)
        self.replace = replace
        self._load_error: str | None = None

    def next_document_clip(self, clip: RuntimeClip, document_clip: dict[str, Any]) -> dict[str, Any]:
        merged = copy.deepcopy(self.updates) if self.replace else deep_merge(document_clip, self.updates)
        for path, binding in clip.bindings.items():
            value = get_nested_value(merged, path)
            if value is None:
                continue
            if value == binding.resolved_value or replace_value_to_str(value) == binding.resolved_value:
                set_nested_value(merged, path, binding.placeholder)
        return merged

    async def execute(self, context: CommandContext) -> None:
        self._inverse = []
        clip = context.registry.get_clip(self.track_index, self.clip_index)
        document_clip = context.document.get_clip(self.track_index, self.clip_index)
        previous = context.clip_reference(self.track_index, self.clip_index)
        self._load_error = context.registry.get_clip_error(clip.id)

        next_document_clip = self.next_document_clip(clip, document_clip)
        updated = await context.build_clip(next_document_clip, previous=clip)
        self._apply(
            context,
            ReplaceClip(
                track_index=self.track_index,
                clip_index=self.clip_index,
                document_clip=next_document_clip,
                clip=updated,
            ),
        )
        if updated.asset != clip.asset:
            await context.load_clip(updated)

        context.propagate(self.track_index, self.clip_index)
        context.emit(ClipUpdated(previous=previous, current=context.clip_reference(self.track_index, self.clip_index)))

    async def undo(self, context: CommandContext) -> None:
        previous = context.clip_reference(self.track_index, self.clip_index)
        self._revert(context)
        clip = context.registry.get_clip(self.track_index, self.clip_index)
        if self._load_error is None:
            context.registry.pop_clip_error(clip.id)
        else:
            context.registry.set_clip_error(clip.id, self._load_error)
        context.propagate(self.track_index, self.clip_index)
        context.emit(ClipUpdated(previous=previous, current=context.clip_reference(self.track_index, self.clip_index)))


class UpdateClipTimingCommand(UpdateClipCommand):
    name = "updateClipTiming"

    def __init__(
        self,
        track_index: int,
        clip_index: int,
        start: StartValue | None = None,
        length: LengthValue | None = None,
    ) -> None:
        updates: dict[str, Any] = {}
        if start is not None:
            updates["start"] = start
        if length is not None:
            updates["length"] = length
        super().__init__(track_index, clip_index, updates)


class ReplaceClipCommand(UpdateClipCommand):
    """Set a document clip verbatim, placeholders included."""

    name = "replaceClip"

    def __init__(self, track_index: int, clip_index: int, document_clip: dict[str, Any]) -> None:
        super().__init__(track_index, clip_index, document_clip, replace=True)

    def next_document_clip(self, clip: RuntimeClip, document_clip: dict[str, Any]) -> dict[str, Any]:
        return copy.deepcopy(self.updates)


class SplitClipCommand(StructuralCommand):
    """Split a clip in two at an absolute timeline time (seconds).

    The left part keeps the clip's id and start; the right part starts at the
    split time. Trimmable assets continue where the left part stops.
    """

    name = "splitClip"

    def __init__(self, track_index: int, clip_index: int, split_time: float) -> None:
        super().__init__()
        self.track_index = track_index
        self.clip_index = clip_index
        self.split_time = split_time
        self._right_clip: RuntimeClip | None = None

    async def execute(self, context: CommandContext) -> None:
        self._inverse = []
        clip = context.registry.get_clip(self.track_index, self.clip_index)
        document_clip = context.document.get_clip(self.track_index, self.clip_index)

        split_point = self.split_time - clip.start
        if split_point <= MIN_SPLIT_LENGTH or split_point >= clip.length - MIN_SPLIT_LENGTH:
            msg = (
                f"Cannot split clip at {self.split_time}s: must be more than {MIN_SPLIT_LENGTH}s "
                f"inside [{clip.start}, {clip.end}]"
            )
            raise InvalidSplitError(msg)

        left_document = copy.deepcopy(document_clip)
        left_document["length"] = _wire_seconds(split_point)

        right_document = copy.deepcopy(document_clip)
        right_document["start"] = _wire_seconds(clip.start + split_point)
        right_document["length"] = _wire_seconds(clip.length - split_point)
        if clip.capabilities.trimmable:
            right_document["asset"]["trim"] = _wire_seconds((clip.asset.get("trim") or 0) + split_point)

        left = await context.build_clip(left_document, previous=clip)
        # Bindings follow the copied placeholders onto the right clip
        if self._right_clip is None:
            self._right_clip = await context.build_clip(right_document)
        right = self._right_clip

        self._apply(
            context,
            ReplaceClip(track_index=self.track_index, clip_index=self.clip_index, document_clip=left_document, clip=left),
        )
        self._apply(
            context,
            InsertClip(
                track_index=self.track_index,
                clip_index=self.clip_index + 1,
                document_clip=right_document,
                clip=right,
            ),
        )
        await context.load_clip(right)
        context.propagate(self.track_index, self.clip_index)
        logger.debug("[commands] Split clip %s at %.3fs into %s", clip.id, self.split_time, right.id)
        context.emit(
            ClipSplit(
                track_index=self.track_index,
                original_clip_index=self.clip_index,
                new_clip_index=self.clip_index + 1,
                clip_id=clip.id,
                new_clip_id=right.id,
            )
        )

    async def undo(self, context: CommandContext) -> None:
        self._revert(context)
        right_id = self._right_clip.id if self._right_clip is not None else ""
        context.registry.pop_clip_error(right_id)
        context.propagate(self.track_index, self.clip_index)
        context.emit(ClipDeleted(track_index=self.track_index, clip_index=self.clip_index + 1, clip_id=right_id))


class MoveClipCommand(StructuralCommand):
    """Move a clip to another position, optionally on another track.

    ``to_clip_index`` addresses the target track after the clip has been
    removed from its source. ``start`` optionally sets a new start value.
    """

    name = "moveClip"

    def __init__(
        self,
        from_track_index: int,
        from_clip_index: int,
        to_track_index: int,
        to_clip_index: int,
        start: StartValue | None = None,
    ) -> None:
        super().__init__()
        self.from_track_index = from_track_index
        self.from_clip_index = from_clip_index
        self.to_track_index = to_track_index
        self.to_clip_index = to_clip_index
        self.start = start
        self._clip_id = ""

    async def execute(self, context: CommandContext) -> None:
        self._inverse = []
        clip = context.registry.get_clip(self.from_track_index, self.from_clip_index)
        document_clip = context.document.get_clip(self.from_track_index, self.from_clip_index)
        target = context.registry.get_track(self.to_track_index)
        self._clip_id = clip.id

        target_size = len(target) - (1 if self.to_track_index == self.from_track_index else 0)
        if not 0 <= self.to_clip_index <= target_size:
            raise ClipNotFoundError(track_index=self.to_track_index, clip_index=self.to_clip_index)

        moved = clip
        if self.start is not None:
            document_clip = {**document_clip, "start": self.start}
            moved = _with_start(clip, self.start)

        self._apply(context, RemoveClip(track_index=self.from_track_index, clip_index=self.from_clip_index))
        self._apply(
            context,
            InsertClip(
                track_index=self.to_track_index,
                clip_index=self.to_clip_index,
                document_clip=document_clip,
                clip=moved,
            ),
        )
        context.propagate(self.from_track_index, self.from_clip_index)
        context.propagate(self.to_track_index, self.to_clip_index)
        context.emit(
            ClipMoved(
                clip_id=clip.id,
                from_track_index=self.from_track_index,
                from_clip_index=self.from_clip_index,
                to_track_index=self.to_track_index,
                to_clip_index=self.to_clip_index,
            )
        )

    async def undo(self, context: CommandContext) -> None:
        self._revert(context)
        context.propagate(self.to_track_index, self.to_clip_index)
        context.propagate(self.from_track_index, self.from_clip_index)
        context.emit(
            ClipMoved(
                clip_id=self._clip_id,
                from_track_index=self.to_track_index,
                from_clip_index=self.to_clip_index,
                to_track_index=self.from_track_index,
                to_clip_index=self.from_clip_index,
            )
        )


def _with_start(clip: RuntimeClip, start: StartValue) -> RuntimeClip:
    if not is_auto(start) and (not isinstance(start, int | float) or start < 0):
        msg = f"start must be a non-negative number or 'auto', got {start!r}"
        raise ValueError(msg)

    config = copy.deepcopy(clip.config)
    config["start"] = start
    return RuntimeClip(
        config=config,
        intent=TimingIntent(start=start, length=clip.intent.length),
        resolved=ResolvedTiming(start=clip.start if is_auto(start) else float(start), length=clip.length),
        bindings={path: binding for path, binding in clip.bindings.items() if path != "start"},
        clip_id=clip.id,
    )

"""Track-level commands."""

import copy
from typing import Any

from src.commands.base import StructuralCommand
from src.commands.context import CommandContext
from src.common.errors import TrackNotFoundError
from src.events.types import TrackAdded, TrackRemoved
from src.runtime.layers import InsertTrack, RemoveTrack
from src.runtime.runtime_clip import RuntimeClip


class AddTrackCommand(StructuralCommand):
    name = "addTrack"

    def __init__(self, track_index: int, clips: list[dict[str, Any]] | None = None) -> None:
        super().__init__()
        self.track_index = track_index
        self.clips = copy.deepcopy(clips or [])
        self._runtime_clips: list[RuntimeClip] | None = None

    async def execute(self, context: CommandContext) -> None:
        self._inverse = []
        if not 0 <= self.track_index <= context.registry.track_count:
            raise TrackNotFoundError(self.track_index)

        if self._runtime_clips is None:
            self._runtime_clips = [
                await context.build_clip(clip, prefix=f"clips.{index}") for index, clip in enumerate(self.clips)
            ]

        self._apply(
            context,
            InsertTrack(
                track_index=self.track_index,
                document_track={"clips": self.clips},
                clips=self._runtime_clips,
            ),
        )
        for clip in self._runtime_clips:
            await context.load_clip(clip)
        context.propagate(self.track_index, 0)
        context.emit(TrackAdded(track_index=self.track_index, total_tracks=context.registry.track_count))

    async def undo(self, context: CommandContext) -> None:
        self._revert(context)
        for clip in self._runtime_clips or []:
            context.registry.pop_clip_error(clip.id)
        context.propagate(None)
        context.emit(TrackRemoved(track_index=self.track_index))


class DeleteTrackCommand(StructuralCommand):
    name = "deleteTrack"

    def __init__(self, track_index: int) -> None:
        super().__init__()
        self.track_index = track_index
        self._load_errors: dict[str, str] = {}

    async def execute(self, context: CommandContext) -> None:
        self._inverse = []
        self._load_errors = {}
        for clip in context.registry.get_track(self.track_index):
            error = context.registry.pop_clip_error(clip.id)
            if error is not None:
                self._load_errors[clip.id] = error

        self._apply(context, RemoveTrack(track_index=self.track_index))
        context.propagate(None)
        context.emit(TrackRemoved(track_index=self.track_index))

    async def undo(self, context: CommandContext) -> None:
        self._revert(context)
        for clip_id, error in self._load_errors.items():
            context.registry.set_clip_error(clip_id, error)
        context.propagate(self.track_index, 0)
        context.emit(TrackAdded(track_index=self.track_index, total_tracks=context.registry.track_count))

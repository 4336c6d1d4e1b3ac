"""Typed edit events.

The set of events is closed: every message the session emits is one of the
models below, identified by its ``EditEventType``.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, ClassVar

from pydantic import Field

from src.common.base_studio_model import BaseStudioModel
from src.merge_fields.types import MergeField


class EditEventType(StrEnum):
    """Wire names of edit events."""

    PLAYBACK_PLAY = "playback:play"
    PLAYBACK_PAUSE = "playback:pause"
    TIMELINE_UPDATED = "timeline:updated"
    TIMELINE_BACKGROUND_CHANGED = "timeline:backgroundChanged"
    CLIP_ADDED = "clip:added"
    CLIP_SPLIT = "clip:split"
    CLIP_UPDATED = "clip:updated"
    CLIP_DELETED = "clip:deleted"
    CLIP_RESTORED = "clip:restored"
    CLIP_MOVED = "clip:moved"
    CLIP_LOAD_FAILED = "clip:loadFailed"
    EDIT_CHANGED = "edit:changed"
    EDIT_UNDO = "edit:undo"
    EDIT_REDO = "edit:redo"
    TRACK_ADDED = "track:added"
    TRACK_REMOVED = "track:removed"
    DURATION_CHANGED = "duration:changed"
    OUTPUT_RESIZED = "output:resized"
    OUTPUT_FPS_CHANGED = "output:fpsChanged"
    OUTPUT_FORMAT_CHANGED = "output:formatChanged"
    OUTPUT_DESTINATIONS_CHANGED = "output:destinationsChanged"
    MERGE_FIELD_REGISTERED = "mergefield:registered"
    MERGE_FIELD_UPDATED = "mergefield:updated"
    MERGE_FIELD_REMOVED = "mergefield:removed"
    MERGE_FIELD_CHANGED = "mergefield:changed"
    MERGE_FIELD_APPLIED = "mergefield:applied"


class EditEvent(BaseStudioModel):
    """Base class of every event sent on the channel.

    ``coalesce`` marks events where only the latest state matters; inside a
    batch they collapse to one message per ``coalesce_key``.
    """

    event_type: ClassVar[EditEventType]
    coalesce: ClassVar[bool] = False

    def coalesce_key(self) -> tuple[Any, ...]:
        return (self.event_type,)

    def absorb(self, earlier: EditEvent) -> EditEvent:
        """Combine with an earlier event of the same key (latest wins)."""
        return self


class ClipLocation(BaseStudioModel):
    track_index: int
    clip_index: int
    clip_id: str


class ClipReference(ClipLocation):
    clip: dict[str, Any]


class PlaybackPlay(EditEvent):
    event_type = EditEventType.PLAYBACK_PLAY


class PlaybackPause(EditEvent):
    event_type = EditEventType.PLAYBACK_PAUSE


class TimelineUpdated(EditEvent):
    event_type = EditEventType.TIMELINE_UPDATED
    coalesce = True

    current: dict[str, Any]


class TimelineBackgroundChanged(EditEvent):
    event_type = EditEventType.TIMELINE_BACKGROUND_CHANGED
    coalesce = True

    color: str


class ClipAdded(ClipLocation, EditEvent):
    event_type = EditEventType.CLIP_ADDED


class ClipSplit(EditEvent):
    event_type = EditEventType.CLIP_SPLIT

    track_index: int
    original_clip_index: int
    new_clip_index: int
    clip_id: str
    new_clip_id: str


class ClipUpdated(EditEvent):
    event_type = EditEventType.CLIP_UPDATED
    coalesce = True

    previous: ClipReference
    current: ClipReference

    def coalesce_key(self) -> tuple[Any, ...]:
        return (self.event_type, self.current.clip_id)

    def absorb(self, earlier: EditEvent) -> EditEvent:
        if isinstance(earlier, ClipUpdated):
            return ClipUpdated(previous=earlier.previous, current=self.current)
        return self


class ClipDeleted(ClipLocation, EditEvent):
    event_type = EditEventType.CLIP_DELETED


class ClipRestored(ClipLocation, EditEvent):
    event_type = EditEventType.CLIP_RESTORED


class ClipMoved(EditEvent):
    event_type = EditEventType.CLIP_MOVED

    clip_id: str
    from_track_index: int
    from_clip_index: int
    to_track_index: int
    to_clip_index: int


class ClipLoadFailed(ClipLocation, EditEvent):
    event_type = EditEventType.CLIP_LOAD_FAILED

    error: str
    asset_type: str


class EditChanged(EditEvent):
    event_type = EditEventType.EDIT_CHANGED
    coalesce = True

    source: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


class EditUndo(EditEvent):
    event_type = EditEventType.EDIT_UNDO

    command: str


class EditRedo(EditEvent):
    event_type = EditEventType.EDIT_REDO

    command: str


class TrackAdded(EditEvent):
    event_type = EditEventType.TRACK_ADDED

    track_index: int
    total_tracks: int


class TrackRemoved(EditEvent):
    event_type = EditEventType.TRACK_REMOVED

    track_index: int


class DurationChanged(EditEvent):
    event_type = EditEventType.DURATION_CHANGED
    coalesce = True

    # Seconds
    duration: float


class OutputResized(EditEvent):
    event_type = EditEventType.OUTPUT_RESIZED
    coalesce = True

    width: int
    height: int


class OutputFpsChanged(EditEvent):
    event_type = EditEventType.OUTPUT_FPS_CHANGED
    coalesce = True

    fps: float | None


class OutputFormatChanged(EditEvent):
    event_type = EditEventType.OUTPUT_FORMAT_CHANGED
    coalesce = True

    format: str


class OutputDestinationsChanged(EditEvent):
    event_type = EditEventType.OUTPUT_DESTINATIONS_CHANGED
    coalesce = True

    destinations: list[dict[str, Any]]


class MergeFieldRegistered(EditEvent):
    event_type = EditEventType.MERGE_FIELD_REGISTERED

    field: MergeField


class MergeFieldUpdated(EditEvent):
    event_type = EditEventType.MERGE_FIELD_UPDATED

    field: MergeField


class MergeFieldRemoved(EditEvent):
    event_type = EditEventType.MERGE_FIELD_REMOVED

    field_name: str | None
    track_index: int | None = None
    clip_index: int | None = None
    property_path: str | None = None


class MergeFieldChanged(EditEvent):
    event_type = EditEventType.MERGE_FIELD_CHANGED
    coalesce = True

    fields: list[MergeField]


class MergeFieldApplied(EditEvent):
    event_type = EditEventType.MERGE_FIELD_APPLIED

    track_index: int
    clip_index: int
    clip_id: str
    property_path: str
    field_name: str

"""Edit session: owns the document, registry and command log, and exposes the editing API."""

import asyncio
import logging
from typing import Any

from src.commands.base import CompositeCommand, EditCommand
from src.commands.clip_commands import (
    AddClipCommand,
    DeleteClipCommand,
    MoveClipCommand,
    ReplaceClipCommand,
    SplitClipCommand,
    UpdateClipCommand,
    UpdateClipTimingCommand,
)
from src.commands.context import CommandContext
from src.commands.log import CommandLog
from src.commands.merge_field_commands import (
    RemoveMergeFieldDefinitionCommand,
    SetMergeFieldCommand,
    UpdateMergeFieldValueCommand,
)
from src.commands.output_commands import OutputProperty, SetOutputCommand
from src.commands.track_commands import AddTrackCommand, DeleteTrackCommand
from src.common.errors import ValidationResult
from src.document.edit_document import EditDocument
from src.edit_session.config import EditSessionConfig
from src.edit_session.playback import PlaybackClock
from src.edit_session.providers import edit_session_config, media_prober
from src.events.channel import EventChannel
from src.events.types import EditChanged, MergeFieldChanged
from src.merge_fields.service import MergeFieldService
from src.merge_fields.substitution import apply_merge_fields, get_nested_value
from src.runtime.layers import EditLayers, InsertTrack
from src.runtime.loader import AssetLoader, NullAssetLoader
from src.runtime.registry import ClipRegistry
from src.runtime.runtime_clip import RuntimeClip
from src.schemas.validation import merge_entries, parse_clip, parse_edit, parse_track
from src.schemas.validation import validate_edit as validate_edit_document
from src.timing.probe import MediaProber
from src.timing.types import LengthValue, StartValue

logger = logging.getLogger(__name__)


def blank_edit(config: EditSessionConfig) -> dict[str, Any]:
    """An empty edit using the configured defaults."""
    return {
        "timeline": {"background": config.default_background, "tracks": []},
        "output": {"size": {"width": 1920, "height": 1080}, "fps": config.default_fps, "format": "mp4"},
    }


class EditSession:
    """Keeps the symbolic Edit document and the resolved runtime state in sync.

    Every mutation goes through the command log and can be undone. Reads
    come in two forms: ``get_edit`` returns the document as authored, and
    ``get_resolved_edit`` returns numeric timing with merge fields applied.
    """

    def __init__(
        self,
        config: EditSessionConfig | None = None,
        prober: MediaProber | None = None,
        loader: AssetLoader | None = None,
    ) -> None:
        """Initialize an empty session.

        Args:
            config: Engine settings; defaults to the environment configuration.
            prober: Media duration prober for "auto" lengths.
            loader: Asset loader run after clips are placed.
        """
        self.config = config or edit_session_config()
        self.events = EventChannel()
        self.merge_fields = MergeFieldService(self.events)
        self.document = EditDocument(blank_edit(self.config))
        self.registry = ClipRegistry()
        self.context = CommandContext(
            layers=EditLayers(self.document, self.registry),
            merge_fields=self.merge_fields,
            events=self.events,
            prober=prober or media_prober(),
            loader=loader or NullAssetLoader(),
            config=self.config,
        )
        self.log = CommandLog(self.context, max_history_size=self.config.max_history_size)
        self.playback = PlaybackClock(self.registry, self.events, lambda: self.total_duration)

    # Loading

    async def load(self, edit: dict[str, Any]) -> None:
        """Replace the session with a new Edit document and clear history.

        Raises:
            SchemaValidationError: The document is malformed; nothing changes.
        """
        parse_edit(edit)
        await self._reinitialize(edit)

    async def load_edit(self, edit: dict[str, Any]) -> None:
        """Hot-reload an Edit document.

        When track and clip counts, asset types, merge fields and fonts are
        unchanged, only the differing clips and output settings are applied
        as commands (undo history is kept). Otherwise the session is
        reinitialized and history is cleared.

        Raises:
            SchemaValidationError: The document is malformed; nothing changes.
        """
        parse_edit(edit)
        if not self._same_structure(edit):
            logger.info("[session] Structure changed, reloading edit")
            await self._reinitialize(edit)
            return

        commands = self._granular_commands(edit)
        logger.info("[session] Hot reload with %d granular change(s)", len(commands))
        checkpoint = self.log.checkpoint()
        state = self.context.capture_state()
        with self.events.batch():
            try:
                for command in commands:
                    await self.log.execute(command)
            except Exception:
                # The rejected document leaves neither state nor history behind
                self.context.restore_state(state)
                self.log.rollback(checkpoint)
                logger.error("[session] Hot reload failed, previous edit and history restored")
                raise
            self.events.emit(EditChanged(source="loadEdit:granular"))

    async def _reinitialize(self, edit: dict[str, Any]) -> None:
        async with self.log.lock:
            state = self.context.capture_state()
            try:
                with self.events.batch():
                    await self._build(edit)
            except Exception:
                self.context.restore_state(state)
                logger.exception("[session] Failed to load edit, previous state restored")
                raise
        self.log.clear()
        self.playback.seek(self.playback.time)

    async def _build(self, edit: dict[str, Any]) -> None:
        self.merge_fields.load_from_serialized(merge_entries(edit))

        tracks = edit["timeline"]["tracks"]
        shell = {**edit, "timeline": {**edit["timeline"], "tracks": []}}
        self.registry.clear()
        self.document.restore(EditDocument.from_json(shell))

        runtime_tracks = await asyncio.gather(
            *(
                asyncio.gather(
                    *(
                        self.context.build_clip(clip, prefix=f"timeline.tracks.{track_index}.clips.{clip_index}")
                        for clip_index, clip in enumerate(track["clips"])
                    )
                )
                for track_index, track in enumerate(tracks)
            )
        )
        for track_index, (track, clips) in enumerate(zip(tracks, runtime_tracks, strict=True)):
            self.context.apply(InsertTrack(track_index=track_index, document_track=track, clips=list(clips)))

        await asyncio.gather(*(self.context.load_clip(clip) for _, _, clip in self.registry.iter_clips()))
        self.context.resolve_all()
        self.events.emit(MergeFieldChanged(fields=self.merge_fields.get_all()))
        self.events.emit(EditChanged(source="load"))
        logger.info(
            "[session] Loaded edit: %d track(s), %d clip(s), duration %.3fs",
            self.registry.track_count,
            sum(len(track) for track in self.registry.tracks),
            self.total_duration,
        )

    def _same_structure(self, edit: dict[str, Any]) -> bool:
        tracks = edit["timeline"]["tracks"]
        if len(tracks) != self.document.track_count:
            return False
        for track_index, track in enumerate(tracks):
            if len(track["clips"]) != self.document.clip_count(track_index):
                return False
            for clip_index, clip in enumerate(track["clips"]):
                current = self.document.get_clip(track_index, clip_index)
                if clip["asset"].get("type") != current["asset"].get("type"):
                    return False
        if (edit.get("merge") or []) != self.document.get_merge_fields():
            return False
        return (edit["timeline"].get("fonts") or []) == self.document.get_fonts()

    def _granular_commands(self, edit: dict[str, Any]) -> list[EditCommand]:
        commands: list[EditCommand] = []
        for track_index, track in enumerate(edit["timeline"]["tracks"]):
            for clip_index, clip in enumerate(track["clips"]):
                if clip != self.document.get_clip(track_index, clip_index):
                    commands.append(ReplaceClipCommand(track_index, clip_index, clip))

        output = edit["output"]
        current = self.document.output
        for prop, key in (
            (OutputProperty.SIZE, "size"),
            (OutputProperty.FPS, "fps"),
            (OutputProperty.FORMAT, "format"),
            (OutputProperty.DESTINATIONS, "destinations"),
        ):
            if output.get(key) != current.get(key):
                commands.append(SetOutputCommand(prop, output.get(key)))
        if edit["timeline"].get("background") != self.document.get_background():
            commands.append(SetOutputCommand(OutputProperty.BACKGROUND, edit["timeline"].get("background")))
        return commands

    # Reading

    def get_edit(self) -> dict[str, Any]:
        """The document form: symbols and placeholders as authored."""
        return self.document.to_json()

    def get_resolved_edit(self) -> dict[str, Any]:
        """The resolved form: numeric timing, merge fields substituted."""
        return self.context.resolved_edit()

    @staticmethod
    def validate_edit(edit: Any) -> ValidationResult:
        return validate_edit_document(edit)

    @property
    def total_duration(self) -> float:
        return self.context.total_duration

    def get_track(self, track_index: int) -> list[RuntimeClip] | None:
        if not 0 <= track_index < self.registry.track_count:
            return None
        return list(self.registry.tracks[track_index])

    def get_clip(self, track_index: int, clip_index: int) -> RuntimeClip | None:
        track = self.get_track(track_index)
        if track is None or not 0 <= clip_index < len(track):
            return None
        return track[clip_index]

    def get_clip_id(self, track_index: int, clip_index: int) -> str | None:
        clip = self.get_clip(track_index, clip_index)
        return clip.id if clip is not None else None

    def find_clip(self, clip_id: str) -> tuple[int, int] | None:
        return self.registry.find_clip(clip_id)

    def get_clip_error(self, clip_id: str) -> str | None:
        return self.registry.get_clip_error(clip_id)

    # History

    async def undo(self) -> bool:
        return await self.log.undo()

    async def redo(self) -> bool:
        return await self.log.redo()

    def can_undo(self) -> bool:
        return self.log.can_undo()

    def can_redo(self) -> bool:
        return self.log.can_redo()

    # Clips and tracks

    async def add_clip(self, track_index: int, clip: dict[str, Any], clip_index: int | None = None) -> str:
        """Insert a clip (appended when ``clip_index`` is None); returns its id.

        Raises:
            SchemaValidationError: The clip is malformed; nothing changes.
            CommandExecutionError: The command failed and was rolled back.
        """
        self._check_clip(clip)
        command = AddClipCommand(track_index, clip, clip_index)
        await self.log.execute(command)
        return command.clip_id or ""

    async def delete_clip(self, track_index: int, clip_index: int) -> None:
        await self.log.execute(DeleteClipCommand(track_index, clip_index))

    async def update_clip(
        self,
        track_index: int,
        clip_index: int,
        updates: dict[str, Any],
        replace: bool = False,
    ) -> None:
        """Deep-merge ``updates`` into a clip, or replace it when ``replace`` is set."""
        await self.log.execute(UpdateClipCommand(track_index, clip_index, updates, replace=replace))

    async def update_clip_timing(
        self,
        track_index: int,
        clip_index: int,
        start: StartValue | None = None,
        length: LengthValue | None = None,
    ) -> None:
        await self.log.execute(UpdateClipTimingCommand(track_index, clip_index, start=start, length=length))

    async def add_track(self, track_index: int, clips: list[dict[str, Any]] | None = None) -> None:
        self._check_track({"clips": clips or []})
        await self.log.execute(AddTrackCommand(track_index, clips))

    async def delete_track(self, track_index: int) -> None:
        await self.log.execute(DeleteTrackCommand(track_index))

    async def split_clip(self, track_index: int, clip_index: int, split_time: float) -> str:
        """Split a clip at ``split_time`` (timeline seconds); returns the new right clip's id."""
        command = SplitClipCommand(track_index, clip_index, split_time)
        await self.log.execute(command)
        return self.get_clip_id(track_index, clip_index + 1) or ""

    async def move_clip(
        self,
        from_track_index: int,
        from_clip_index: int,
        to_track_index: int,
        to_clip_index: int,
        start: StartValue | None = None,
    ) -> None:
        await self.log.execute(
            MoveClipCommand(from_track_index, from_clip_index, to_track_index, to_clip_index, start=start)
        )

    # Merge fields

    def get_merge_field_for_property(self, track_index: int, clip_index: int, property_path: str) -> str | None:
        clip = self.get_clip(track_index, clip_index)
        if clip is None:
            return None
        binding = clip.get_binding(property_path)
        if binding is None:
            return None
        return self.merge_fields.extract_field_name(binding.placeholder)

    async def apply_merge_field(
        self,
        track_index: int,
        clip_index: int,
        property_path: str,
        field_name: str,
        value: Any = None,
    ) -> None:
        """Bind a clip property to ``field_name``; ``value`` defaults to the current value."""
        clip = self.registry.get_clip(track_index, clip_index)
        current = get_nested_value(clip.config, property_path)
        await self.log.execute(
            SetMergeFieldCommand(
                track_index,
                clip_index,
                property_path,
                field_name=field_name,
                previous_field_name=self.get_merge_field_for_property(track_index, clip_index, property_path),
                previous_value=current,
                new_value=current if value is None else value,
            )
        )

    async def remove_merge_field(
        self,
        track_index: int,
        clip_index: int,
        property_path: str,
        restore_value: Any = None,
    ) -> None:
        """Unbind a clip property, writing ``restore_value`` (default: current value) back."""
        clip = self.registry.get_clip(track_index, clip_index)
        current = get_nested_value(clip.config, property_path)
        await self.log.execute(
            SetMergeFieldCommand(
                track_index,
                clip_index,
                property_path,
                field_name=None,
                previous_field_name=self.get_merge_field_for_property(track_index, clip_index, property_path),
                previous_value=current,
                new_value=current if restore_value is None else restore_value,
            )
        )

    async def update_merge_field_value(self, field_name: str, value: Any, description: str | None = None) -> None:
        await self.log.execute(UpdateMergeFieldValueCommand(field_name, value, description))

    async def delete_merge_field_globally(self, field_name: str) -> None:
        """Unbind ``field_name`` everywhere (keeping resolved values) and drop the field."""
        name = field_name.upper()
        commands: list[EditCommand] = []
        for track_index, clip_index, clip in self.registry.iter_clips():
            for path, binding in clip.bindings.items():
                found = {found.upper() for found in self.merge_fields.find_field_names(binding.placeholder)}
                if name in found:
                    commands.append(
                        SetMergeFieldCommand(
                            track_index,
                            clip_index,
                            path,
                            field_name=None,
                            previous_field_name=self.merge_fields.extract_field_name(binding.placeholder),
                            previous_value=binding.resolved_value,
                            new_value=get_nested_value(clip.config, path),
                        )
                    )
        commands.append(RemoveMergeFieldDefinitionCommand(field_name))
        await self.log.execute(CompositeCommand(commands, name="deleteMergeFieldGlobally"))

    # Output

    async def set_output_size(self, width: int, height: int) -> None:
        await self.log.execute(SetOutputCommand(OutputProperty.SIZE, {"width": width, "height": height}))

    async def set_output_fps(self, fps: float | None) -> None:
        await self.log.execute(SetOutputCommand(OutputProperty.FPS, fps))

    async def set_output_format(self, output_format: str) -> None:
        await self.log.execute(SetOutputCommand(OutputProperty.FORMAT, output_format))

    async def set_output_destinations(self, destinations: list[dict[str, Any]]) -> None:
        await self.log.execute(SetOutputCommand(OutputProperty.DESTINATIONS, destinations))

    async def set_timeline_background(self, color: str | None) -> None:
        await self.log.execute(SetOutputCommand(OutputProperty.BACKGROUND, color))

    # Validation helpers

    def _check_clip(self, clip: dict[str, Any]) -> None:
        parse_clip(apply_merge_fields(clip, self.merge_fields.to_serialized()))

    def _check_track(self, track: dict[str, Any]) -> None:
        parse_track(apply_merge_fields(track, self.merge_fields.to_serialized()))

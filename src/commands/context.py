"""Everything a command may touch, and the shared steps commands are built from."""

import logging
from collections.abc import Iterable
from typing import Any

from src.common.base_studio_model import BaseStudioModel
from src.common.errors import ClipLoadError
from src.document.edit_document import EditDocument
from src.edit_session.config import EditSessionConfig
from src.events.channel import EventChannel
from src.events.types import ClipLoadFailed, ClipReference, DurationChanged, EditEvent, TimelineUpdated
from src.merge_fields.service import MergeFieldService
from src.merge_fields.substitution import apply_merge_fields, detect_bindings_in_object
from src.merge_fields.types import MergeField
from src.runtime.layers import EditLayers, ReplaceClip, StructuralChange
from src.runtime.loader import AssetLoader
from src.runtime.registry import ClipRegistry, RegistrySnapshot
from src.runtime.runtime_clip import RuntimeClip
from src.schemas.validation import parse_clip, resolved_clip_config
from src.timing.probe import MediaProber
from src.timing.resolver import propagate_timing_changes, resolve_all_timing, resolve_auto_length_or_default
from src.timing.types import ResolvedTiming, TimingIntent

logger = logging.getLogger(__name__)


class ContextState(BaseStudioModel, arbitrary_types_allowed=True):
    """Full copy of session state, taken before a command runs."""

    document: EditDocument
    registry: RegistrySnapshot
    merge_fields: list[MergeField]
    total_duration: float


class CommandContext:
    """Shared state and helpers handed to every command."""

    def __init__(
        self,
        layers: EditLayers,
        merge_fields: MergeFieldService,
        events: EventChannel,
        prober: MediaProber,
        loader: AssetLoader,
        config: EditSessionConfig,
    ) -> None:
        self.layers = layers
        self.merge_fields = merge_fields
        self.events = events
        self.prober = prober
        self.loader = loader
        self.config = config
        self.total_duration = 0.0

    @property
    def document(self) -> EditDocument:
        return self.layers.document

    @property
    def registry(self) -> ClipRegistry:
        return self.layers.registry

    def apply(self, change: StructuralChange) -> StructuralChange:
        return self.layers.apply(change)

    def emit(self, event: EditEvent) -> None:
        self.events.emit(event)

    # Building clips

    async def build_clip(
        self,
        document_clip: dict[str, Any],
        previous: RuntimeClip | None = None,
        prefix: str = "clip",
    ) -> RuntimeClip:
        """Turn a document clip into a runtime clip.

        Substitutes merge fields, validates, records bindings and resolves
        the clip's own length. Auto starts and end lengths are left for
        propagation. With ``previous`` the clip keeps that id, and an auto
        length is reused when the asset is unchanged.

        Raises:
            SchemaValidationError: The substituted clip is malformed.
            AssetProbeError: Auto length could not be probed and fallback is off.
        """
        fields = self.merge_fields.to_serialized()
        substituted = apply_merge_fields(document_clip, fields)
        clip = parse_clip(substituted, prefix=prefix)
        config = resolved_clip_config(clip)
        intent = TimingIntent(start=clip.start, length=clip.length)

        if intent.has_end_length:
            length = 0.0
        elif intent.has_auto_length:
            if previous is not None and previous.intent.has_auto_length and previous.asset == config["asset"]:
                length = previous.length
            else:
                length = await resolve_auto_length_or_default(
                    config["asset"],
                    self.prober,
                    self.config.default_auto_length_seconds,
                    self.config.fallback_on_probe_failure,
                )
        else:
            length = float(clip.length)

        start = 0.0 if intent.has_auto_start else float(clip.start)
        if intent.has_auto_start and previous is not None:
            start = previous.start

        return RuntimeClip(
            config=config,
            intent=intent,
            resolved=ResolvedTiming(start=start, length=length),
            bindings=detect_bindings_in_object(document_clip, fields),
            clip_id=previous.id if previous is not None else None,
        )

    async def load_clip(self, clip: RuntimeClip) -> None:
        """Run the asset loader; failures are recorded against the clip id."""
        try:
            await self.loader.load(clip)
        except ClipLoadError as e:
            logger.warning("[session] Clip %s failed to load: %s", clip.id, e.reason)
            self.registry.set_clip_error(clip.id, e.reason)
            position = self.registry.find_clip(clip.id)
            if position is not None:
                self.emit(
                    ClipLoadFailed(
                        track_index=position[0],
                        clip_index=position[1],
                        clip_id=clip.id,
                        error=e.reason,
                        asset_type=clip.kind,
                    )
                )
            return
        self.registry.pop_clip_error(clip.id)

    async def refresh_bound_clips(
        self,
        field_names: Iterable[str],
        skip: Iterable[str] = (),
    ) -> list[tuple[int, StructuralChange]]:
        """Rebuild every clip bound to one of ``field_names``.

        Returns:
            ``(track_index, inverse change)`` for each rebuilt clip.
        """
        names = {name.upper() for name in field_names}
        skipped = set(skip)
        affected = [
            (track_index, clip_index, clip)
            for track_index, clip_index, clip in self.registry.iter_clips()
            if clip.id not in skipped and _references_any(clip, names, self.merge_fields)
        ]

        inverses: list[tuple[int, StructuralChange]] = []
        for track_index, clip_index, clip in affected:
            document_clip = self.document.get_clip(track_index, clip_index)
            rebuilt = await self.build_clip(document_clip, previous=clip)
            inverses.append(
                (
                    track_index,
                    self.apply(
                        ReplaceClip(
                            track_index=track_index,
                            clip_index=clip_index,
                            document_clip=document_clip,
                            clip=rebuilt,
                        )
                    ),
                )
            )
        return inverses

    # Timing

    def propagate(self, track_index: int | None, from_clip_index: int = 0) -> float:
        """Cascade timing from a change point, then publish the new timeline."""
        timeline_end = propagate_timing_changes(self.registry, track_index, from_clip_index)
        self._publish_timing()
        return timeline_end

    def resolve_all(self) -> float:
        timeline_end = resolve_all_timing(self.registry)
        self._publish_timing()
        return timeline_end

    def _publish_timing(self) -> None:
        duration = self.registry.total_duration()
        if abs(duration - self.total_duration) > self.config.end_length_epsilon_seconds:
            self.total_duration = duration
            self.emit(DurationChanged(duration=duration))
        else:
            self.total_duration = duration
        self.emit(TimelineUpdated(current=self.resolved_edit()))

    # Views

    def resolved_edit(self) -> dict[str, Any]:
        """The fully resolved edit: substituted values, numeric timing."""
        fields = self.merge_fields.to_serialized()
        data = self.document.to_json()

        timeline = {key: value for key, value in data["timeline"].items() if key != "tracks"}
        timeline = apply_merge_fields(timeline, fields)
        timeline["tracks"] = [{"clips": [clip.to_resolved() for clip in track]} for track in self.registry.tracks]

        resolved: dict[str, Any] = {
            "timeline": timeline,
            "output": apply_merge_fields(data["output"], fields),
        }
        if fields:
            resolved["merge"] = [field.model_dump(mode="json") for field in fields]
        return resolved

    def clip_reference(self, track_index: int, clip_index: int) -> ClipReference:
        clip = self.registry.get_clip(track_index, clip_index)
        return ClipReference(track_index=track_index, clip_index=clip_index, clip_id=clip.id, clip=clip.to_resolved())

    def sync_merge_fields_to_document(self) -> None:
        self.document.set_merge_fields([field.model_dump(mode="json") for field in self.merge_fields.to_serialized()])

    def restore_merge_fields(self, fields: list[MergeField]) -> None:
        self.merge_fields.clear()
        for field in fields:
            self.merge_fields.register(field, silent=True)

    # Rollback

    def capture_state(self) -> ContextState:
        return ContextState(
            document=self.document.clone(),
            registry=self.registry.snapshot(),
            merge_fields=self.merge_fields.get_all(),
            total_duration=self.total_duration,
        )

    def restore_state(self, state: ContextState) -> None:
        self.document.restore(state.document)
        self.registry.restore(state.registry)
        self.restore_merge_fields(state.merge_fields)
        self.total_duration = state.total_duration


def _references_any(clip: RuntimeClip, names: set[str], merge_fields: MergeFieldService) -> bool:
    return any(
        name.upper() in names
        for binding in clip.bindings.values()
        for name in merge_fields.find_field_names(binding.placeholder)
    )

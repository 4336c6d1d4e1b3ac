"""The single entry point for structural changes to both layers.

Every change that adds, removes or replaces a track or clip is described as
a ``StructuralChange`` and applied with ``apply_structural_change``, which
updates the Edit document and the runtime registry together and returns the
change that reverts it.
"""

import logging
from enum import StrEnum
from typing import Any, Literal

from src.common.base_studio_model import BaseStudioModel
from src.document.edit_document import EditDocument
from src.runtime.registry import ClipRegistry
from src.runtime.runtime_clip import RuntimeClip

logger = logging.getLogger(__name__)


class StructuralChangeKind(StrEnum):
    INSERT_TRACK = "insert_track"
    REMOVE_TRACK = "remove_track"
    INSERT_CLIP = "insert_clip"
    REMOVE_CLIP = "remove_clip"
    REPLACE_CLIP = "replace_clip"


class _Change(BaseStudioModel, arbitrary_types_allowed=True):
    pass


class InsertTrack(_Change):
    kind: Literal[StructuralChangeKind.INSERT_TRACK] = StructuralChangeKind.INSERT_TRACK
    track_index: int
    document_track: dict[str, Any]
    clips: list[RuntimeClip]


class RemoveTrack(_Change):
    kind: Literal[StructuralChangeKind.REMOVE_TRACK] = StructuralChangeKind.REMOVE_TRACK
    track_index: int


class InsertClip(_Change):
    kind: Literal[StructuralChangeKind.INSERT_CLIP] = StructuralChangeKind.INSERT_CLIP
    track_index: int
    clip_index: int
    document_clip: dict[str, Any]
    clip: RuntimeClip


class RemoveClip(_Change):
    kind: Literal[StructuralChangeKind.REMOVE_CLIP] = StructuralChangeKind.REMOVE_CLIP
    track_index: int
    clip_index: int


class ReplaceClip(_Change):
    kind: Literal[StructuralChangeKind.REPLACE_CLIP] = StructuralChangeKind.REPLACE_CLIP
    track_index: int
    clip_index: int
    document_clip: dict[str, Any]
    clip: RuntimeClip


StructuralChange = InsertTrack | RemoveTrack | InsertClip | RemoveClip | ReplaceClip


def apply_structural_change(document: EditDocument, registry: ClipRegistry, change: StructuralChange) -> StructuralChange:
    """Apply ``change`` to both layers and return its inverse.

    Bounds are checked against both layers before either is touched.
    """
    _check_mirrored(document, registry)

    match change:
        case InsertTrack(track_index=track_index, document_track=document_track, clips=clips):
            if len(document_track.get("clips", [])) != len(clips):
                msg = f"Track insert at {track_index} has {len(clips)} runtime clips for {len(document_track.get('clips', []))} document clips"
                raise ValueError(msg)
            registry.insert_track(track_index, clips)
            document.add_track(track_index, document_track)
            logger.debug("[layers] Inserted track %d (%d clips)", track_index, len(clips))
            return RemoveTrack(track_index=track_index)

        case RemoveTrack(track_index=track_index):
            clips = registry.remove_track(track_index)
            document_track = document.remove_track(track_index)
            logger.debug("[layers] Removed track %d", track_index)
            return InsertTrack(track_index=track_index, document_track=document_track, clips=clips)

        case InsertClip(track_index=track_index, clip_index=clip_index, document_clip=document_clip, clip=clip):
            registry.insert_clip(track_index, clip_index, clip)
            document.add_clip(track_index, document_clip, clip_index)
            logger.debug("[layers] Inserted clip %s at %d:%d", clip.id, track_index, clip_index)
            return RemoveClip(track_index=track_index, clip_index=clip_index)

        case RemoveClip(track_index=track_index, clip_index=clip_index):
            clip = registry.remove_clip(track_index, clip_index)
            document_clip = document.remove_clip(track_index, clip_index)
            logger.debug("[layers] Removed clip %s at %d:%d", clip.id, track_index, clip_index)
            return InsertClip(track_index=track_index, clip_index=clip_index, document_clip=document_clip, clip=clip)

        case ReplaceClip(track_index=track_index, clip_index=clip_index, document_clip=document_clip, clip=clip):
            previous_clip = registry.replace_clip(track_index, clip_index, clip)
            previous_document_clip = document.replace_clip(track_index, clip_index, document_clip)
            return ReplaceClip(
                track_index=track_index,
                clip_index=clip_index,
                document_clip=previous_document_clip,
                clip=previous_clip,
            )

    msg = f"Unknown structural change: {change!r}"
    raise TypeError(msg)


def _check_mirrored(document: EditDocument, registry: ClipRegistry) -> None:
    if document.track_count != registry.track_count:
        msg = f"Layers out of sync: document has {document.track_count} tracks, registry {registry.track_count}"
        raise RuntimeError(msg)


class EditLayers:
    """Document and registry paired behind ``apply_structural_change``."""

    def __init__(self, document: EditDocument, registry: ClipRegistry) -> None:
        self.document = document
        self.registry = registry

    def apply(self, change: StructuralChange) -> StructuralChange:
        return apply_structural_change(self.document, self.registry, change)

"""Export a resolved edit as an OpenTimelineIO timeline."""

import logging
from pathlib import Path
from typing import Any

import opentimelineio as otio

from src.runtime.capabilities import capabilities_for
from src.schemas.asset_kind import AssetKind

logger = logging.getLogger(__name__)

DEFAULT_FRAME_RATE = 25.0


class OtioExporter:
    """Converts the resolved form of an edit to OTIO.

    Track order is kept, so later tracks stay on top as in the edit.
    """

    def export(self, resolved_edit: dict[str, Any], output_path: Path, name: str = "Studio Edit") -> Path:
        """Write a resolved edit to an OTIO file.

        Args:
            resolved_edit: Output of ``EditSession.get_resolved_edit``.
            output_path: Where to save the .otio file.
            name: Timeline name.

        Returns:
            The path to the saved OTIO file.
        """
        timeline = self.create_timeline(resolved_edit, name=name)
        otio.adapters.write_to_file(timeline, str(output_path))
        logger.info("[export] Wrote %d track(s) to %s", len(timeline.tracks), output_path)
        return output_path

    def create_timeline(self, resolved_edit: dict[str, Any], name: str = "Studio Edit") -> otio.schema.Timeline:
        frame_rate = float((resolved_edit.get("output") or {}).get("fps") or DEFAULT_FRAME_RATE)

        timeline = otio.schema.Timeline(name=name)
        timeline.global_start_time = otio.opentime.RationalTime(0, frame_rate)
        timeline.metadata["studio"] = {
            "background": resolved_edit["timeline"].get("background"),
            "output": resolved_edit.get("output", {}),
        }

        for track_index, track in enumerate(resolved_edit["timeline"]["tracks"]):
            timeline.tracks.append(self._create_track(track_index, track["clips"], frame_rate))
        return timeline

    def _create_track(self, track_index: int, clips: list[dict[str, Any]], frame_rate: float) -> otio.schema.Track:
        is_audio = bool(clips) and all(clip["asset"]["type"] == AssetKind.AUDIO for clip in clips)
        track = otio.schema.Track(
            name=f"Track {track_index}",
            kind=otio.schema.TrackKind.Audio if is_audio else otio.schema.TrackKind.Video,
        )

        current_time = 0.0
        for clip_index, clip in enumerate(sorted(clips, key=lambda c: c["start"])):
            if clip["length"] <= 0:
                continue

            if clip["start"] > current_time:
                track.append(self._create_gap(clip["start"] - current_time, frame_rate))
            elif clip["start"] < current_time:
                # OTIO tracks are strictly sequential
                logger.warning(
                    "[export] Clip %d on track %d overlaps its predecessor; placed at %.3fs",
                    clip_index,
                    track_index,
                    current_time,
                )

            track.append(self._create_clip(track_index, clip_index, clip, frame_rate))
            current_time = max(current_time, clip["start"]) + clip["length"]

        return track

    def _create_clip(
        self,
        track_index: int,
        clip_index: int,
        clip: dict[str, Any],
        frame_rate: float,
    ) -> otio.schema.Clip:
        asset = clip["asset"]
        capabilities = capabilities_for(asset["type"])

        if capabilities.has_src and asset.get("src"):
            media_reference: otio.core.MediaReference = otio.schema.ExternalReference(target_url=asset["src"])
        else:
            media_reference = otio.schema.MissingReference()

        source_start = float(asset.get("trim") or 0.0) if capabilities.trimmable else 0.0
        source_range = otio.opentime.TimeRange(
            start_time=otio.opentime.RationalTime(source_start * frame_rate, frame_rate),
            duration=otio.opentime.RationalTime(clip["length"] * frame_rate, frame_rate),
        )

        otio_clip = otio.schema.Clip(
            name=f"{asset['type']}_{track_index}_{clip_index}",
            media_reference=media_reference,
            source_range=source_range,
        )
        otio_clip.metadata["studio"] = {
            "asset": asset,
            "start": clip["start"],
            "length": clip["length"],
            "fit": clip.get("fit"),
            "position": clip.get("position"),
            "opacity": clip.get("opacity"),
            "scale": clip.get("scale"),
        }

        angle = ((clip.get("transform") or {}).get("rotate") or {}).get("angle")
        if isinstance(angle, int | float) and angle != 0:
            otio_clip.effects.append(
                otio.schema.Effect(
                    name="Rotation",
                    effect_name="rotation",
                    metadata={"rotation": float(angle)},
                )
            )
        return otio_clip

    def _create_gap(self, duration_seconds: float, frame_rate: float) -> otio.schema.Gap:
        return otio.schema.Gap(
            source_range=otio.opentime.TimeRange(
                start_time=otio.opentime.RationalTime(0, frame_rate),
                duration=otio.opentime.RationalTime(duration_seconds * frame_rate, frame_rate),
            ),
        )


def export_otio(resolved_edit: dict[str, Any], output_path: Path) -> Path:
    return OtioExporter().export(resolved_edit, output_path)

"""Runtime clip: one resolved clip held by the registry."""

import copy
from typing import Any
from uuid import uuid4

from src.merge_fields.types import MergeFieldBinding
from src.runtime.capabilities import AssetCapabilities, capabilities_for
from src.timing.types import ResolvedTiming, TimingIntent


def new_clip_id() -> str:
    return uuid4().hex


class RuntimeClip:
    """A clip in resolved form.

    ``config`` is the merge-substituted clip configuration with the timing
    intent (``"auto"``/``"end"``) still in place; ``resolved`` carries the
    concrete numbers. Everything except ``resolved`` is fixed once the clip
    is built: edits replace the clip with a new instance under the same id,
    while timing propagation only rewrites ``resolved``.
    """

    def __init__(
        self,
        config: dict[str, Any],
        intent: TimingIntent,
        resolved: ResolvedTiming,
        bindings: dict[str, MergeFieldBinding] | None = None,
        clip_id: str | None = None,
    ) -> None:
        self.id = clip_id or new_clip_id()
        self.config = config
        self.intent = intent
        self.resolved = resolved
        self.bindings = dict(bindings or {})
        self.capabilities: AssetCapabilities = capabilities_for(config["asset"]["type"])

    @property
    def kind(self) -> str:
        return self.capabilities.kind

    @property
    def asset(self) -> dict[str, Any]:
        return self.config["asset"]

    @property
    def start(self) -> float:
        return self.resolved.start

    @property
    def length(self) -> float:
        return self.resolved.length

    @property
    def end(self) -> float:
        return self.resolved.end

    def set_resolved(self, start: float | None = None, length: float | None = None) -> None:
        self.resolved = ResolvedTiming(
            start=self.resolved.start if start is None else start,
            length=self.resolved.length if length is None else length,
        )

    def get_binding(self, property_path: str) -> MergeFieldBinding | None:
        return self.bindings.get(property_path)

    def to_resolved(self) -> dict[str, Any]:
        """Fully resolved clip with numeric timing."""
        resolved = copy.deepcopy(self.config)
        resolved["start"] = self.resolved.start
        resolved["length"] = self.resolved.length
        return resolved

    def __repr__(self) -> str:
        return f"RuntimeClip(id={self.id!r}, kind={self.kind!r}, start={self.start}, length={self.length})"

"""Exception hierarchy for the edit engine."""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from src.common.base_studio_model import BaseStudioModel


class ValidationIssue(BaseStudioModel):
    """A single schema problem, addressed by a dotted path."""

    path: str
    message: str


class ValidationResult(BaseStudioModel):
    """Outcome of validating an Edit document without applying it."""

    valid: bool
    errors: list[ValidationIssue] = []


def format_location(location: tuple[int | str, ...], data: Any = None) -> str:
    """Join a pydantic error location into a dotted path.

    Pydantic inserts union member names and discriminator tags into error
    locations. Walking the input alongside the location keeps only the parts
    that address real keys or indices, so the path matches the document.
    """
    parts: list[str] = []
    current = data
    after_tag = False
    for position, item in enumerate(location):
        is_last = position == len(location) - 1
        if isinstance(current, dict) and not after_tag and not is_last and item == current.get("type"):
            # Discriminator tag; asset kinds such as "text" are also keys of their asset
            after_tag = True
            continue
        after_tag = False
        if isinstance(current, dict) and item in current:
            parts.append(str(item))
            current = current[item]
        elif isinstance(current, list) and isinstance(item, int) and 0 <= item < len(current):
            parts.append(str(item))
            current = current[item]
        elif is_last and isinstance(current, dict) and isinstance(item, str):
            # Missing required keys and forbidden extras end the location
            parts.append(item)
        elif data is None:
            parts.append(str(item))
    return ".".join(parts)


def issues_from_validation_error(error: ValidationError, data: Any = None) -> list[ValidationIssue]:
    """Convert a pydantic ValidationError into path/message pairs."""
    issues: list[ValidationIssue] = []
    seen: set[tuple[str, str]] = set()
    for detail in error.errors():
        path = format_location(detail["loc"], data)
        key = (path, detail["msg"])
        if key in seen:
            continue
        seen.add(key)
        issues.append(ValidationIssue(path=path, message=detail["msg"]))
    return issues


class StudioError(Exception):
    """Base error for the edit engine."""


class SchemaValidationError(StudioError):
    """The Edit document (or a clip/track fragment) is malformed."""

    def __init__(self, errors: list[ValidationIssue]) -> None:
        self.errors = errors
        summary = "; ".join(f"{issue.path or '<root>'}: {issue.message}" for issue in errors[:5])
        super().__init__(f"Invalid edit document ({len(errors)} issue(s)): {summary}")

    @classmethod
    def from_pydantic(cls, error: ValidationError, data: Any = None, prefix: str = "") -> SchemaValidationError:
        issues = issues_from_validation_error(error, data)
        if prefix:
            issues = [
                ValidationIssue(
                    path=f"{prefix}.{issue.path}" if issue.path else prefix,
                    message=issue.message,
                )
                for issue in issues
            ]
        return cls(issues)


class AssetProbeError(StudioError):
    """The duration of an asset could not be determined."""


class ClipLoadError(StudioError):
    """A single clip's asset failed to initialize."""

    def __init__(self, clip_id: str, asset_type: str, reason: str) -> None:
        self.clip_id = clip_id
        self.asset_type = asset_type
        self.reason = reason
        super().__init__(f"Clip {clip_id} ({asset_type}) failed to load: {reason}")


class UnsupportedAssetTypeError(StudioError):
    """The asset kind has no runtime capability entry."""

    def __init__(self, asset_type: str) -> None:
        self.asset_type = asset_type
        super().__init__(f"Unsupported asset type: {asset_type!r}")


class TrackNotFoundError(StudioError):
    """A track index is out of range."""

    def __init__(self, track_index: int) -> None:
        self.track_index = track_index
        super().__init__(f"Track {track_index} does not exist")


class ClipNotFoundError(StudioError):
    """A clip position or id does not exist."""

    def __init__(self, track_index: int | None = None, clip_index: int | None = None, clip_id: str | None = None) -> None:
        self.track_index = track_index
        self.clip_index = clip_index
        self.clip_id = clip_id
        if clip_id is not None:
            msg = f"Clip {clip_id} does not exist"
        else:
            msg = f"Clip at track {track_index}, index {clip_index} does not exist"
        super().__init__(msg)


class InvalidSplitError(StudioError):
    """The split point is outside the splittable range of a clip."""


class CommandExecutionError(StudioError):
    """A command failed; the session state was rolled back before raising."""

    def __init__(self, command_name: str, cause: BaseException) -> None:
        self.command_name = command_name
        self.cause = cause
        super().__init__(f"Command {command_name} failed: {cause}")

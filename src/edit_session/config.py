"""Edit session configuration."""

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field

from src.common.base_studio_model import BaseStudioModel

# Load .env file from the project root
_project_dir = Path(__file__).parent.parent.parent
load_dotenv(_project_dir / ".env")


class EditSessionConfig(BaseStudioModel):
    """Tunables of the resolution engine."""

    # Used for "auto" lengths when probing fails
    default_auto_length_seconds: float = Field(default=3.0, gt=0)
    fallback_on_probe_failure: bool = True

    # Duration changes smaller than this are not reported
    end_length_epsilon_seconds: float = Field(default=0.001, ge=0)

    # None keeps every command
    max_history_size: int | None = Field(default=None, gt=0)

    ffprobe_binary: str = "ffprobe"
    probe_timeout_seconds: float = Field(default=15.0, gt=0)

    default_background: str = "#000000"
    default_fps: float = Field(default=25, gt=0, le=120)


def _env_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


def get_edit_session_config() -> EditSessionConfig:
    """Get edit session configuration from environment variables.

    Environment variables (all optional):
        STUDIO_DEFAULT_AUTO_LENGTH_SECONDS: Fallback length for "auto" (default: 3.0)
        STUDIO_FALLBACK_ON_PROBE_FAILURE: Use the fallback length (default: true)
        STUDIO_END_LENGTH_EPSILON_SECONDS: Duration change threshold (default: 0.001)
        STUDIO_MAX_HISTORY_SIZE: Undo history limit (default: unbounded)
        STUDIO_FFPROBE_BINARY: ffprobe executable (default: ffprobe)
        STUDIO_PROBE_TIMEOUT_SECONDS: ffprobe timeout (default: 15)
        STUDIO_DEFAULT_BACKGROUND: Background colour of new edits (default: #000000)
        STUDIO_DEFAULT_FPS: Output fps of new edits (default: 25)
    """
    values: dict[str, object] = {}

    if value := os.environ.get("STUDIO_DEFAULT_AUTO_LENGTH_SECONDS"):
        values["default_auto_length_seconds"] = float(value)
    if value := os.environ.get("STUDIO_FALLBACK_ON_PROBE_FAILURE"):
        values["fallback_on_probe_failure"] = _env_bool(value)
    if value := os.environ.get("STUDIO_END_LENGTH_EPSILON_SECONDS"):
        values["end_length_epsilon_seconds"] = float(value)
    if value := os.environ.get("STUDIO_MAX_HISTORY_SIZE"):
        values["max_history_size"] = int(value)
    if value := os.environ.get("STUDIO_FFPROBE_BINARY"):
        values["ffprobe_binary"] = value
    if value := os.environ.get("STUDIO_PROBE_TIMEOUT_SECONDS"):
        values["probe_timeout_seconds"] = float(value)
    if value := os.environ.get("STUDIO_DEFAULT_BACKGROUND"):
        values["default_background"] = value
    if value := os.environ.get("STUDIO_DEFAULT_FPS"):
        values["default_fps"] = float(value)

    return EditSessionConfig.model_validate(values)

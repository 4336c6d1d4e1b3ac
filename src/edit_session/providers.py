"""Providers for the edit session."""

from functools import cache

from src.edit_session.config import EditSessionConfig, get_edit_session_config
from src.timing.probe import FFprobeMediaProber


@cache
def edit_session_config() -> EditSessionConfig:
    """Provide the cached environment configuration."""
    return get_edit_session_config()


@cache
def media_prober() -> FFprobeMediaProber:
    """Provide a cached prober configured from the environment."""
    config = edit_session_config()
    return FFprobeMediaProber(ffprobe_binary=config.ffprobe_binary, timeout_seconds=config.probe_timeout_seconds)

"""Platform-aware path helpers for ghbackport."""

from __future__ import annotations

import os
import platform
import tempfile
from pathlib import Path

from platformdirs import user_config_dir

APP_NAME = "ghbackport"


def get_config_dir() -> Path:
    """Get the config directory (config.toml)."""
    override = os.environ.get("GHBACKPORT_CONFIG_DIR")
    if override:
        return Path(override).resolve()
    return Path(user_config_dir(APP_NAME))


def get_config_path() -> Path:
    """Get the path to the main config file."""
    return get_config_dir() / "config.toml"


def get_worktree_base_dir() -> Path:
    """Get the base directory for temporary cherry-pick worktrees."""
    override = os.environ.get("GHBACKPORT_WORKTREE_BASE")
    if override:
        return Path(override).resolve()

    system = platform.system()
    if system == "Linux" and Path("/var/tmp").exists():
        base = Path("/var/tmp")
    else:
        base = Path(tempfile.gettempdir())
    return base / APP_NAME


__all__ = [
    "APP_NAME",
    "get_config_dir",
    "get_config_path",
    "get_worktree_base_dir",
]

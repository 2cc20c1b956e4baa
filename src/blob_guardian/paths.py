"""Where Blob Guardian looks for its configuration."""
from __future__ import annotations

import sys
from pathlib import Path

from platformdirs import user_config_path

CONFIG_FILENAME = "config.yaml"
PROJECT_DIRNAME = ".blob_guardian"


def _app_name() -> str:
    # Title case on Windows and macOS, where the directory is user-visible.
    return "Blob Guardian" if sys.platform in ("win32", "darwin") else "blob-guardian"


def user_config_dir() -> Path:
    return user_config_path(_app_name(), appauthor=False, roaming=sys.platform == "win32")


def default_config_path() -> Path:
    """Per-user configuration file, e.g. ``~/.config/blob-guardian/config.yaml``."""
    return user_config_dir() / CONFIG_FILENAME


def project_config_path(root: Path | None = None) -> Path:
    return (root or Path.cwd()) / PROJECT_DIRNAME / CONFIG_FILENAME


__all__ = ["default_config_path", "project_config_path", "user_config_dir"]

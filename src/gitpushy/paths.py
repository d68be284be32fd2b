"""Filesystem locations.

Only configuration lives on disk; every cache is in memory for the process
lifetime, so there is no data or state directory.
"""

from __future__ import annotations

import os
from pathlib import Path

APP_NAME = "gitpushy"
CONFIG_FILE_NAME = "config.yaml"


def config_dir() -> Path:
    """Return ``$XDG_CONFIG_HOME/gitpushy``, defaulting to ``~/.config/gitpushy``."""
    base = os.environ.get("XDG_CONFIG_HOME")
    root = Path(base).expanduser() if base else Path.home() / ".config"
    return root / APP_NAME


def default_config_path() -> Path:
    """Return the per-user configuration file path."""
    return config_dir() / CONFIG_FILE_NAME

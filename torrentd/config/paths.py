"""Platform-aware default directories.

Pure reads of environment and OS state: nothing here creates directories,
and every resolver is recomputed on each call.
"""

from __future__ import annotations

import os
from pathlib import Path

from platformdirs import user_config_dir, user_downloads_dir

PRODUCT_NAME = "torrentd"

# Overrides the default configuration directory, used verbatim
CONFIG_DIR_ENV = "TORRENTD_HOME"


def _os_config_dir() -> Path | None:
    try:
        base = user_config_dir()
    except (OSError, RuntimeError, KeyError):
        return None
    return Path(base) if base else None


def _home_dir() -> Path | None:
    try:
        return Path.home()
    except (OSError, RuntimeError, KeyError):
        return None


def resolve_config_dir() -> Path | None:
    """Return the default configuration directory.

    Resolution order: ``$TORRENTD_HOME`` (no existence check), the OS
    per-user configuration directory, ``~/.config``, else ``None``.
    """
    override = os.environ.get(CONFIG_DIR_ENV)
    if override:
        return Path(override)

    config_dir = _os_config_dir()
    if config_dir is not None:
        return config_dir / PRODUCT_NAME

    home = _home_dir()
    if home is not None:
        return home / ".config" / PRODUCT_NAME

    return None


def resolve_download_dir() -> Path | None:
    """Return the OS downloads directory, or ``None`` if there is none."""
    try:
        downloads = user_downloads_dir()
    except (OSError, RuntimeError, KeyError):
        return None
    return Path(downloads) if downloads else None

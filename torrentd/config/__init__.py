"""Configuration resolution.

This package resolves default directories, loads and saves the persisted
settings document, and merges command-line overrides into it.
"""

from __future__ import annotations

from torrentd.config.paths import resolve_config_dir, resolve_download_dir
from torrentd.config.resolver import resolve
from torrentd.config.settings import (
    default_settings,
    deserialize,
    load_settings,
    save_settings,
    serialize,
)

__all__ = [
    "default_settings",
    "deserialize",
    "load_settings",
    "resolve",
    "resolve_config_dir",
    "resolve_download_dir",
    "save_settings",
    "serialize",
]

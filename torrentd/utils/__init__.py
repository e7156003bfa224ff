"""Shared utilities and infrastructure.

This module contains the exception hierarchy and logging setup.
"""

from __future__ import annotations

from torrentd.utils.exceptions import (
    ConfigurationError,
    ParseError,
    ResolveError,
    SchemaError,
    TorrentdError,
    ValidationError,
)
from torrentd.utils.logging_config import get_logger, setup_logging

__all__ = [
    "ConfigurationError",
    "ParseError",
    "ResolveError",
    "SchemaError",
    "TorrentdError",
    "ValidationError",
    "get_logger",
    "setup_logging",
]

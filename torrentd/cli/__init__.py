"""Command-line interface for torrentd.

Provides the flag schema and the daemon entry point.
"""

from torrentd.cli.main import main
from torrentd.cli.options import daemon_command, parse

__all__ = [
    "daemon_command",
    "main",
    "parse",
]

#!/usr/bin/env python3
"""Run the torrentd daemon: ``python -m torrentd``."""

from __future__ import annotations

import sys

from torrentd.cli.main import main

if __name__ == "__main__":
    sys.exit(main())

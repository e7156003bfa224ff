"""torrentd - configuration layer of a BitTorrent download daemon."""

from __future__ import annotations

__version__ = "0.1.0"

"""Pydantic models for torrentd.

Provides the canonical session settings document and its enumerated
choices. Field declaration order is the validation order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from ipaddress import IPv4Address, IPv6Address
from pathlib import Path
from urllib.parse import urlparse

from pydantic import (
    BaseModel,
    Field,
    IPvAnyAddress,
    StrictBool,
    StrictFloat,
    StrictInt,
    field_validator,
)

MAX_U16 = 65535
MAX_U32 = 2**32 - 1
MAX_MINUTE_OF_DAY = 24 * 60 - 1
ALL_WEEKDAYS = 0b1111111

# Persisted documents may omit these; absence means "unset"
OPTIONAL_FIELDS = frozenset({"download_dir", "incomplete_dir", "watch_dir"})


class EncryptionMode(str, Enum):
    """Peer connection encryption preference."""

    CLEAR_PREFERRED = "ClearPreferred"
    ENCRYPTION_PREFERRED = "EncryptionPreferred"
    ENCRYPTION_REQUIRED = "EncryptionRequired"


class LogLevel(str, Enum):
    """Daemon message levels, ordered by increasing verbosity."""

    ERROR = "Error"
    INFO = "Info"
    DEBUG = "Debug"
    FIREHOSE = "Firehose"

    @property
    def verbosity(self) -> int:
        """Position in the verbosity order (0 = least verbose)."""
        return list(LogLevel).index(self)

    @property
    def logging_level(self) -> int:
        """Matching stdlib logging level."""
        return _LOGGING_LEVELS[self]


_LOGGING_LEVELS = {
    LogLevel.ERROR: logging.ERROR,
    LogLevel.INFO: logging.INFO,
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.FIREHOSE: logging.DEBUG,
}


class PreallocationMode(str, Enum):
    """File preallocation strategies."""

    NONE = "None"
    SPARSE = "Sparse"
    FULL = "Full"


def _u16(default: int, description: str):
    return Field(default=default, ge=0, le=MAX_U16, description=description)


class SessionSettings(BaseModel):
    """Canonical session settings consumed by the session engine."""

    blocklist_enabled: StrictBool = Field(
        default=True,
        description="Enable peer blocklists",
    )
    blocklist_url: str = Field(
        default="http://www.example.com/blocklist",
        description="URL the blocklist is fetched from",
    )
    cache_size_mb: StrictInt = _u16(4, "Disk cache size in MiB")
    dht_enabled: StrictBool = Field(default=True, description="Enable DHT")
    utp_enabled: StrictBool = Field(
        default=True,
        description="Enable uTP for peer connections",
    )
    lpd_enabled: StrictBool = Field(
        default=False,
        description="Enable local peer discovery",
    )
    download_dir: Path | None = Field(
        default=None,
        description="Where downloaded data is saved",
    )
    speed_limit_down: StrictInt = _u16(100, "Download speed limit in KiB/s")
    speed_limit_down_enabled: StrictBool = Field(
        default=False,
        description="Apply speed_limit_down",
    )
    encryption: EncryptionMode = Field(
        default=EncryptionMode.ENCRYPTION_PREFERRED,
        description="Peer connection encryption preference",
    )
    idle_seeding_limit: StrictInt = _u16(
        30,
        "Stop seeding after this many idle minutes",
    )
    idle_seeding_limit_enabled: StrictBool = Field(
        default=False,
        description="Apply idle_seeding_limit",
    )
    incomplete_dir: Path | None = Field(
        default=None,
        description="Where torrents are stored until complete",
    )
    incomplete_dir_enabled: StrictBool = Field(
        default=False,
        description="Store incomplete torrents in incomplete_dir",
    )
    watch_dir: Path | None = Field(
        default=None,
        description="Directory watched for new .torrent files",
    )
    watch_dir_enabled: StrictBool = Field(default=False, description="Enable watch_dir")
    message_level: LogLevel = Field(default=LogLevel.INFO, description="Log verbosity")
    download_queue_size: StrictInt = Field(
        default=5,
        ge=0,
        le=MAX_U32,
        description="Maximum number of simultaneous downloads",
    )
    download_queue_enabled: StrictBool = Field(
        default=True,
        description="Apply download_queue_size",
    )
    peer_limit_global: StrictInt = _u16(200, "Maximum overall number of peers")
    peer_limit_per_torrent: StrictInt = _u16(50, "Maximum number of peers per torrent")
    peer_port: StrictInt = _u16(51413, "Port for incoming peer connections")
    peer_port_random_on_start: StrictBool = Field(
        default=False,
        description="Pick a random peer port on every start",
    )
    peer_port_random_low: StrictInt = _u16(49152, "Lowest random peer port")
    peer_port_random_high: StrictInt = _u16(65535, "Highest random peer port")
    peer_socket_tos: str = Field(
        default="default",
        description="Type-of-service value for peer sockets",
    )
    pex_enabled: StrictBool = Field(default=True, description="Enable peer exchange")
    port_forwarding_enabled: StrictBool = Field(
        default=True,
        description="Enable port mapping via NAT-PMP or UPnP",
    )
    preallocation: PreallocationMode = Field(
        default=PreallocationMode.SPARSE,
        description="File preallocation strategy",
    )
    prefetch_enabled: StrictBool = Field(
        default=True,
        description="Enable read prefetching",
    )
    peer_id_ttl_hours: StrictInt = _u16(6, "Hours before the peer ID is regenerated")
    queue_stalled_enabled: StrictBool = Field(
        default=True,
        description="Skip stalled torrents when counting the queue",
    )
    queue_stalled_minutes: StrictInt = _u16(
        30,
        "Minutes of inactivity before a torrent is stalled",
    )
    ratio_limit: StrictFloat = Field(
        default=2.0,
        ge=0.0,
        allow_inf_nan=False,
        description="Seed ratio after which seeding stops",
    )
    ratio_limit_enabled: StrictBool = Field(
        default=False,
        description="Apply ratio_limit",
    )
    rename_partial_files: StrictBool = Field(
        default=True,
        description="Append .part to incomplete files",
    )
    rpc_authentication_required: StrictBool = Field(
        default=False,
        description="Require RPC authentication",
    )
    rpc_bind_address: IPvAnyAddress = Field(
        default=IPv4Address("0.0.0.0"),
        description="Address the RPC server listens on",
    )
    rpc_enabled: StrictBool = Field(default=False, description="Enable the RPC server")
    rpc_password: str = Field(default="", description="RPC password")
    rpc_username: str = Field(default="", description="RPC username")
    rpc_whitelist: list[IPvAnyAddress] = Field(
        default_factory=lambda: [IPv4Address("127.0.0.1"), IPv6Address("::1")],
        description="Addresses allowed to use the RPC server",
    )
    rpc_whitelist_enabled: StrictBool = Field(
        default=True,
        description="Apply rpc_whitelist",
    )
    rpc_host_whitelist: list[str] = Field(
        default_factory=list,
        description="Host names allowed in RPC requests",
    )
    rpc_host_whitelist_enabled: StrictBool = Field(
        default=True,
        description="Apply rpc_host_whitelist",
    )
    rpc_port: StrictInt = _u16(9091, "RPC port")
    rpc_url: str = Field(default="", description="RPC URL prefix")
    scrape_paused_torrents_enabled: StrictBool = Field(
        default=True,
        description="Scrape trackers for paused torrents",
    )
    script_torrent_done_filename: str = Field(
        default="",
        description="Script run when a torrent completes",
    )
    script_torrent_done_enabled: StrictBool = Field(
        default=False,
        description="Run script_torrent_done_filename",
    )
    seed_queue_size: StrictInt = _u16(10, "Maximum number of simultaneous seeds")
    seed_queue_enabled: StrictBool = Field(
        default=False,
        description="Apply seed_queue_size",
    )
    alt_speed_enabled: StrictBool = Field(
        default=False,
        description="Use alternative speed limits",
    )
    alt_speed_up: StrictInt = _u16(50, "Alternative upload limit in KiB/s")
    alt_speed_down: StrictInt = _u16(50, "Alternative download limit in KiB/s")
    alt_speed_time_begin: StrictInt = Field(
        default=540,
        ge=0,
        le=MAX_MINUTE_OF_DAY,
        description="Minute of the day the alternative limits start",
    )
    alt_speed_time_enabled: StrictBool = Field(
        default=False,
        description="Schedule the alternative limits",
    )
    alt_speed_time_end: StrictInt = Field(
        default=1020,
        ge=0,
        le=MAX_MINUTE_OF_DAY,
        description="Minute of the day the alternative limits end",
    )
    alt_speed_time_day: StrictInt = Field(
        default=0,
        ge=0,
        le=ALL_WEEKDAYS,
        description="Weekday bitmask for the schedule (Sunday = 1)",
    )
    speed_limit_up: StrictInt = _u16(100, "Upload speed limit in KiB/s")
    speed_limit_up_enabled: StrictBool = Field(
        default=False,
        description="Apply speed_limit_up",
    )
    start_paused: StrictBool = Field(
        default=False,
        description="Pause all torrents on startup",
    )
    umask: StrictInt = Field(default=0o022, ge=0, le=0o777, description="File creation mask")
    upload_slots_per_torrent: StrictInt = _u16(14, "Upload slots per torrent")
    bind_address_ipv4: IPv4Address = Field(
        default=IPv4Address("0.0.0.0"),
        description="IPv4 address peers connect to",
    )
    bind_address_ipv6: IPv6Address = Field(
        default=IPv6Address("::"),
        description="IPv6 address peers connect to",
    )
    start_added_torrents: StrictBool = Field(
        default=True,
        description="Start torrents as soon as they are added",
    )
    trash_original_torrent_files: StrictBool = Field(
        default=False,
        description="Delete .torrent files once added",
    )

    @field_validator("blocklist_url")
    @classmethod
    def validate_blocklist_url(cls, v: str) -> str:
        """Validate blocklist URL format."""
        parsed = urlparse(v)
        if parsed.scheme not in {"http", "https", "file"} or not (
            parsed.netloc or parsed.path
        ):
            msg = f"blocklist_url must be an http, https or file URL, got {v}"
            raise ValueError(msg)
        return v

    @classmethod
    def default(cls) -> SessionSettings:
        """Build settings from schema defaults.

        The download and incomplete directories come from the platform's
        downloads directory.
        """
        from torrentd.config.paths import resolve_download_dir

        download_dir = resolve_download_dir()
        return cls(download_dir=download_dir, incomplete_dir=download_dir)

    model_config = {"frozen": True, "extra": "ignore"}


class Toggle(str, Enum):
    """Effective state of a paired ``--X`` / ``--no-X`` flag."""

    ABSENT = "absent"
    ENABLE = "enable"
    DISABLE = "disable"
    CONFLICT = "conflict"

    @classmethod
    def from_flags(cls, positive: bool, negative: bool) -> Toggle:
        """Reduce the two presence flags of a pair."""
        if positive and negative:
            return cls.CONFLICT
        if positive:
            return cls.ENABLE
        if negative:
            return cls.DISABLE
        return cls.ABSENT


@dataclass(frozen=True)
class RawOptions:
    """Parsed command-line flags.

    Value flags are ``None`` and presence flags ``False`` when not given.
    Only per-flag validation has happened; pairs and groups are reconciled
    by the precedence resolver.
    """

    allowed: tuple[IPv4Address | IPv6Address, ...] | None = None
    blocklist: bool = False
    no_blocklist: bool = False
    watch_dir: Path | None = None
    no_watch_dir: bool = False
    incomplete_dir: Path | None = None
    no_incomplete_dir: bool = False
    dump_settings: bool = False
    logfile: Path | None = None
    foreground: bool = False
    config_dir: Path | None = None
    port: int | None = None
    auth: bool = False
    no_auth: bool = False
    username: str | None = None
    password: str | None = None
    log_error: bool = False
    log_info: bool = False
    log_debug: bool = False
    download_dir: Path | None = None
    paused: bool = False
    dht: bool = False
    no_dht: bool = False
    lpd: bool = False
    no_lpd: bool = False
    utp: bool = False
    no_utp: bool = False
    peerport: int | None = None
    portmap: bool = False
    no_portmap: bool = False
    peerlimit_global: int | None = None
    peerlimit_torrent: int | None = None
    encryption_required: bool = False
    encryption_preferred: bool = False
    encryption_tolerated: bool = False
    bind_address_ipv4: IPv4Address | None = None
    bind_address_ipv6: IPv6Address | None = None
    rpc_bind_address: IPv4Address | IPv6Address | None = None
    global_seedratio: str | None = None
    no_global_seedratio: bool = False
    pid_file: Path | None = None

    def toggle(self, name: str) -> Toggle:
        """Return the state of the ``name`` / ``no_name`` flag pair."""
        return Toggle.from_flags(getattr(self, name), getattr(self, f"no_{name}"))

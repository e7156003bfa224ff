"""Command-line flag schema for the torrentd daemon.

Each flag is a click option; validating flags use the parameter types
below, which raise the torrentd parse errors directly so the first bad
flag aborts parsing with the offending field and raw value.
"""

from __future__ import annotations

import ipaddress
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import click

from torrentd import __version__
from torrentd.config.paths import CONFIG_DIR_ENV, PRODUCT_NAME
from torrentd.models import MAX_U16, RawOptions
from torrentd.utils.exceptions import (
    InvalidAddressError,
    InvalidNumberError,
    InvalidPathError,
    InvalidUsageError,
)

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


def _field(param: click.Parameter | None) -> str | None:
    return param.name if param is not None else None


class IPAddressType(click.ParamType):
    """IP address literal, optionally restricted to one IP version."""

    name = "ip addr"

    def __init__(self, version: int | None = None):
        self.version = version
        if version is not None:
            self.name = f"ipv{version} addr"

    def parse_address(self, raw: str, param: click.Parameter | None):
        try:
            address = ipaddress.ip_address(raw.strip())
        except ValueError:
            raise InvalidAddressError(_field(param), raw) from None
        if self.version is not None and address.version != self.version:
            raise InvalidAddressError(_field(param), raw)
        return address

    def convert(self, value: Any, param: click.Parameter | None, ctx: click.Context | None):
        if isinstance(value, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
            return value
        return self.parse_address(str(value), param)


class IPAddressListType(IPAddressType):
    """Comma-separated list of IP address literals."""

    name = "ip addr[,ip addr...]"

    def convert(self, value: Any, param: click.Parameter | None, ctx: click.Context | None):
        if isinstance(value, tuple):
            return value
        return tuple(self.parse_address(item, param) for item in str(value).split(","))


class ExistingDirectory(click.ParamType):
    """Path that must name an existing directory when parsed."""

    name = "directory"

    def convert(self, value: Any, param: click.Parameter | None, ctx: click.Context | None):
        path = Path(value)
        if not path.is_dir():
            raise InvalidPathError(_field(param), str(value))
        return path


class UInt16(click.ParamType):
    """Unsigned 16-bit integer (ports, peer limits)."""

    name = "integer"

    def convert(self, value: Any, param: click.Parameter | None, ctx: click.Context | None):
        if isinstance(value, int) and not isinstance(value, bool):
            number = value
        else:
            try:
                number = int(str(value).strip(), 10)
            except ValueError:
                raise InvalidNumberError(_field(param), value) from None
        if not 0 <= number <= MAX_U16:
            raise InvalidNumberError(_field(param), value)
        return number


IP_ADDRESS = IPAddressType()
IPV4_ADDRESS = IPAddressType(version=4)
IPV6_ADDRESS = IPAddressType(version=6)
IP_ADDRESS_LIST = IPAddressListType()
EXISTING_DIRECTORY = ExistingDirectory()
UINT16 = UInt16()
PATH = click.Path(path_type=Path)


@click.command(name=PRODUCT_NAME, context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, "-V", "--version", prog_name=PRODUCT_NAME)
@click.option(
    "--allowed",
    "-a",
    type=IP_ADDRESS_LIST,
    multiple=True,
    help="Allowed RPC client addresses, comma-separated (default: 127.0.0.1,::1)",
)
@click.option("--blocklist", "-b", is_flag=True, help="Enable peer blocklists")
@click.option("--no-blocklist", "-B", is_flag=True, help="Disable peer blocklists")
@click.option(
    "--watch-dir",
    "-c",
    type=PATH,
    metavar="DIRECTORY",
    help="Where to watch for new .torrent files",
)
@click.option("--no-watch-dir", "-C", is_flag=True, help="Disable the watch directory")
@click.option(
    "--incomplete-dir",
    type=PATH,
    metavar="DIRECTORY",
    help="Where to store new torrents until they are complete",
)
@click.option(
    "--no-incomplete-dir",
    is_flag=True,
    help="Don't store incomplete torrents in a different location",
)
@click.option("--dump-settings", "-d", is_flag=True, help="Dump the settings and exit")
@click.option(
    "--logfile",
    "-e",
    type=PATH,
    metavar="FILENAME",
    help="Dump the log messages to this file",
)
@click.option(
    "--foreground",
    "-f",
    is_flag=True,
    help="Run in the foreground instead of daemonizing",
)
@click.option(
    "--config-dir",
    "-g",
    type=EXISTING_DIRECTORY,
    help=f"Where to look for configuration files (default: ${CONFIG_DIR_ENV} or the OS config dir)",
)
@click.option("--port", "-p", type=UINT16, metavar="PORT", help="RPC port (default: 9091)")
@click.option("--auth", "-t", is_flag=True, help="Require authentication")
@click.option("--no-auth", "-T", is_flag=True, help="Don't require authentication")
@click.option("--username", "-u", help="Set username for authentication")
@click.option("--password", "-v", help="Set password for authentication")
@click.option("--log-error", is_flag=True, help="Show error messages")
@click.option("--log-info", is_flag=True, help="Show error and info messages")
@click.option("--log-debug", is_flag=True, help="Show error, info, and debug messages")
@click.option(
    "--download-dir",
    "-w",
    type=PATH,
    metavar="DIRECTORY",
    help="Where to save downloaded data",
)
@click.option("--paused", is_flag=True, help="Pause all torrents on startup")
@click.option("--dht", "-o", is_flag=True, help="Enable distributed hash tables (DHT)")
@click.option("--no-dht", "-O", is_flag=True, help="Disable distributed hash tables (DHT)")
@click.option("--lpd", "-y", is_flag=True, help="Enable local peer discovery (LPD)")
@click.option("--no-lpd", "-Y", is_flag=True, help="Disable local peer discovery (LPD)")
@click.option("--utp", is_flag=True, help="Enable uTP for peer connections")
@click.option("--no-utp", is_flag=True, help="Disable uTP for peer connections")
@click.option(
    "--peerport",
    "-P",
    type=UINT16,
    metavar="PORT",
    help="Port for incoming peer connections (default: 51413)",
)
@click.option("--portmap", "-m", is_flag=True, help="Enable portmapping via NAT-PMP or UPnP")
@click.option("--no-portmap", "-M", is_flag=True, help="Disable portmapping")
@click.option(
    "--peerlimit-global",
    "-L",
    type=UINT16,
    metavar="LIMIT",
    help="Maximum overall number of peers (default: 200)",
)
@click.option(
    "--peerlimit-torrent",
    "-l",
    type=UINT16,
    metavar="LIMIT",
    help="Maximum number of peers per torrent (default: 50)",
)
@click.option("--encryption-required", is_flag=True, help="Encrypt all peer connections")
@click.option("--encryption-preferred", is_flag=True, help="Prefer encrypted peer connections")
@click.option(
    "--encryption-tolerated",
    is_flag=True,
    help="Prefer unencrypted peer connections",
)
@click.option(
    "--bind-address-ipv4",
    "-i",
    type=IPV4_ADDRESS,
    help="Where to listen for peer connections (default: 0.0.0.0)",
)
@click.option(
    "--bind-address-ipv6",
    "-I",
    type=IPV6_ADDRESS,
    help="Where to listen for peer connections (default: ::)",
)
@click.option(
    "--rpc-bind-address",
    "-r",
    type=IP_ADDRESS,
    help="Where to listen for RPC connections (default: 0.0.0.0)",
)
@click.option(
    "--global-seedratio",
    metavar="RATIO",
    help="All torrents, unless overridden by a per-torrent setting, should seed until a specific ratio",
)
@click.option(
    "--no-global-seedratio",
    is_flag=True,
    help="All torrents, unless overridden by a per-torrent setting, should seed regardless of ratio",
)
@click.option("--pid-file", "-x", type=PATH, metavar="FILENAME", help="Enable PID file")
def daemon_command(**params: Any) -> RawOptions:
    """Torrentd - BitTorrent download daemon."""
    return options_from_params(params)


def options_from_params(params: dict[str, Any]) -> RawOptions:
    """Build RawOptions from click's parsed parameter values."""
    values = dict(params)
    # --allowed is repeatable and each occurrence may hold several addresses
    allowed = tuple(
        address for group in values.pop("allowed", None) or () for address in group
    )
    return RawOptions(allowed=allowed or None, **values)


def parse(args: Sequence[str]) -> RawOptions:
    """Parse process arguments into RawOptions.

    Parsing stops at the first invalid flag.

    Raises:
        InvalidAddressError: an address flag is not a valid IP literal
        InvalidPathError: ``--config-dir`` is not an existing directory
        InvalidNumberError: a port or limit is not an integer in [0, 65535]
        InvalidUsageError: unknown flag or missing value
        click.exceptions.Exit: ``--help`` or ``--version`` was handled

    """
    try:
        ctx = daemon_command.make_context(PRODUCT_NAME, list(args))
    except click.UsageError as e:
        option_name = getattr(e, "option_name", None)
        param = getattr(e, "param", None)
        if option_name:
            field = option_name.lstrip("-").replace("-", "_")
        else:
            field = param.name if param is not None else None
        raise InvalidUsageError(field, e.format_message()) from e
    return options_from_params(ctx.params)

"""Precedence resolution of persisted settings and CLI overrides.

A CLI value that is present always wins over the base settings (persisted
document or schema defaults); an absent one leaves the base untouched.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from torrentd.config.settings import describe_violation
from torrentd.models import EncryptionMode, LogLevel, RawOptions, SessionSettings, Toggle
from torrentd.utils.exceptions import ConflictingFlagsError, InvalidSettingError
from torrentd.utils.logging_config import get_logger

logger = get_logger(__name__)

# option -> settings field, for values that map one to one
DIRECT_OVERRIDES: dict[str, str] = {
    "download_dir": "download_dir",
    "port": "rpc_port",
    "peerport": "peer_port",
    "peerlimit_global": "peer_limit_global",
    "peerlimit_torrent": "peer_limit_per_torrent",
    "bind_address_ipv4": "bind_address_ipv4",
    "bind_address_ipv6": "bind_address_ipv6",
    "rpc_bind_address": "rpc_bind_address",
}

# --X / --no-X pair -> boolean settings field
TOGGLE_FIELDS: dict[str, str] = {
    "blocklist": "blocklist_enabled",
    "auth": "rpc_authentication_required",
    "dht": "dht_enabled",
    "lpd": "lpd_enabled",
    "utp": "utp_enabled",
    "portmap": "port_forwarding_enabled",
}

ENCRYPTION_FLAGS: dict[str, EncryptionMode] = {
    "encryption_required": EncryptionMode.ENCRYPTION_REQUIRED,
    "encryption_preferred": EncryptionMode.ENCRYPTION_PREFERRED,
    "encryption_tolerated": EncryptionMode.CLEAR_PREFERRED,
}

LOG_LEVEL_FLAGS: dict[str, LogLevel] = {
    "log_error": LogLevel.ERROR,
    "log_info": LogLevel.INFO,
    "log_debug": LogLevel.DEBUG,
}


@dataclass(frozen=True)
class ValueOverride:
    """A value flag paired with an ``...enabled`` settings field."""

    option: str
    value_field: str
    enabled_field: str
    implies_enabled: bool
    negation: str | None = None
    parse: Callable[[Any], Any] | None = None


def parse_ratio(raw: str) -> float:
    """Parse a seed ratio given on the command line."""
    try:
        return float(raw)
    except ValueError:
        raise InvalidSettingError("ratio_limit", raw, "not a number") from None


VALUE_OVERRIDES: tuple[ValueOverride, ...] = (
    ValueOverride("watch_dir", "watch_dir", "watch_dir_enabled", True, "no_watch_dir"),
    ValueOverride(
        "incomplete_dir",
        "incomplete_dir",
        "incomplete_dir_enabled",
        True,
        "no_incomplete_dir",
    ),
    ValueOverride(
        "global_seedratio",
        "ratio_limit",
        "ratio_limit_enabled",
        True,
        "no_global_seedratio",
        parse_ratio,
    ),
    ValueOverride("allowed", "rpc_whitelist", "rpc_whitelist_enabled", True),
    ValueOverride("username", "rpc_username", "rpc_authentication_required", False),
    ValueOverride("password", "rpc_password", "rpc_authentication_required", False),
)


def check_conflicts(cli: RawOptions) -> None:
    """Reject paired or grouped flags given together.

    Raises:
        ConflictingFlagsError: first conflicting pair or group, in
            declaration order

    """
    for pair in TOGGLE_FIELDS:
        if cli.toggle(pair) is Toggle.CONFLICT:
            raise ConflictingFlagsError(pair, [f"--{pair}", f"--no-{pair}"])

    given = [flag for flag in ENCRYPTION_FLAGS if getattr(cli, flag)]
    if len(given) > 1:
        raise ConflictingFlagsError(
            "encryption", [f"--{flag.replace('_', '-')}" for flag in given]
        )


def collect_overrides(cli: RawOptions) -> dict[str, Any]:
    """Translate CLI options into settings field updates."""
    updates: dict[str, Any] = {}

    for option, field in DIRECT_OVERRIDES.items():
        value = getattr(cli, option)
        if value is not None:
            updates[field] = value

    for pair, field in TOGGLE_FIELDS.items():
        state = cli.toggle(pair)
        if state is Toggle.ENABLE:
            updates[field] = True
        elif state is Toggle.DISABLE:
            updates[field] = False

    for flag, mode in ENCRYPTION_FLAGS.items():
        if getattr(cli, flag):
            updates["encryption"] = mode

    levels = [level for flag, level in LOG_LEVEL_FLAGS.items() if getattr(cli, flag)]
    if levels:
        updates["message_level"] = max(levels, key=lambda level: level.verbosity)

    for override in VALUE_OVERRIDES:
        value = getattr(cli, override.option)
        if value is not None:
            if override.parse is not None:
                value = override.parse(value)
            updates[override.value_field] = (
                list(value) if isinstance(value, tuple) else value
            )
            if override.implies_enabled:
                updates[override.enabled_field] = True
        if override.negation and getattr(cli, override.negation):
            updates[override.enabled_field] = False

    if cli.paused:
        updates["start_paused"] = True

    return updates


def resolve(base: SessionSettings, cli: RawOptions) -> SessionSettings:
    """Overlay CLI options onto base settings.

    Raises:
        ConflictingFlagsError: a pair or group was given more than once
        InvalidSettingError: a CLI value cannot be parsed, or the merged
            document fails validation; the first violation in field
            declaration order is reported

    """
    check_conflicts(cli)
    updates = collect_overrides(cli)
    if updates:
        logger.debug("Applying CLI overrides: %s", ", ".join(sorted(updates)))

    data = base.model_dump()
    data.update(updates)
    try:
        return SessionSettings.model_validate(data)
    except PydanticValidationError as e:
        kind, field, value = describe_violation(e)
        reason = "value out of range" if kind == "range" else "invalid value"
        raise InvalidSettingError(field, value, reason) from e

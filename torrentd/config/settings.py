"""Persisted session settings.

Reads and writes the settings document (JSON by default, TOML by file
extension) and maps validation failures onto the schema error types.
"""

from __future__ import annotations

import json
import os
import tempfile
import tomllib
from pathlib import Path
from typing import Any

import tomli_w
from pydantic import ValidationError as PydanticValidationError

from torrentd.models import OPTIONAL_FIELDS, SessionSettings
from torrentd.utils.exceptions import (
    InvalidValueError,
    MalformedDocumentError,
    MissingFieldError,
    OutOfRangeError,
    SchemaError,
    UnknownVariantError,
)
from torrentd.utils.logging_config import get_logger

logger = get_logger(__name__)

SETTINGS_FILE_NAMES = {
    "json": "settings.json",
    "toml": "settings.toml",
}

_RANGE_ERRORS = frozenset(
    {"greater_than", "greater_than_equal", "less_than", "less_than_equal"}
)


def describe_violation(exc: PydanticValidationError) -> tuple[str, str, Any]:
    """Return ``(kind, field, value)`` for the first error pydantic reported.

    ``kind`` is one of ``missing``, ``variant``, ``range`` or ``value``.
    Pydantic reports errors in field declaration order.
    """
    error = exc.errors()[0]
    loc = error.get("loc") or ("<document>",)
    field = str(loc[0])
    value = error.get("input")
    error_type = error.get("type", "")
    if error_type == "missing":
        return "missing", field, None
    if error_type == "enum":
        return "variant", field, value
    if error_type in _RANGE_ERRORS:
        return "range", field, value
    return "value", field, value


def _schema_error(exc: PydanticValidationError) -> SchemaError:
    kind, field, value = describe_violation(exc)
    if kind == "missing":
        return MissingFieldError(field)
    if kind == "variant":
        return UnknownVariantError(field, value)
    if kind == "range":
        return OutOfRangeError(field, value)
    return InvalidValueError(field, value)


def default_settings() -> SessionSettings:
    """Return settings built from schema defaults."""
    return SessionSettings.default()


def validate_document(document: Any) -> SessionSettings:
    """Validate a decoded settings mapping.

    Raises:
        MalformedDocumentError: document is not a mapping
        MissingFieldError: a required field is absent
        UnknownVariantError: an enumerated field holds an unknown tag
        OutOfRangeError: a numeric field is outside its bounds
        InvalidValueError: any other type or format error

    """
    if not isinstance(document, dict):
        msg = f"expected a mapping, got {type(document).__name__}"
        raise MalformedDocumentError(msg)

    for name in SessionSettings.model_fields:
        if name not in document and name not in OPTIONAL_FIELDS:
            raise MissingFieldError(name)

    try:
        return SessionSettings.model_validate(document)
    except PydanticValidationError as e:
        raise _schema_error(e) from e


def _decode(data: bytes, fmt: str) -> Any:
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as e:
        msg = f"not valid UTF-8: {e}"
        raise MalformedDocumentError(msg) from e

    if fmt == "json":
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            msg = f"invalid JSON: {e}"
            raise MalformedDocumentError(msg) from e
    if fmt == "toml":
        try:
            return tomllib.loads(text)
        except tomllib.TOMLDecodeError as e:
            msg = f"invalid TOML: {e}"
            raise MalformedDocumentError(msg) from e
    msg = f"unsupported settings format: {fmt}"
    raise MalformedDocumentError(msg)


def deserialize(data: bytes, fmt: str = "json") -> SessionSettings:
    """Parse a persisted settings document.

    Unknown keys are ignored. Only ``download_dir``, ``incomplete_dir`` and
    ``watch_dir`` may be missing.
    """
    return validate_document(_decode(data, fmt))


def serialize(settings: SessionSettings, fmt: str = "json") -> bytes:
    """Render settings as a persisted document; inverse of :func:`deserialize`."""
    data = settings.model_dump(mode="json")
    if fmt == "json":
        return (json.dumps(data, indent=4) + "\n").encode("utf-8")
    if fmt == "toml":
        # TOML has no null; unset optional fields are left out
        data = {key: value for key, value in data.items() if value is not None}
        return tomli_w.dumps(data).encode("utf-8")
    msg = f"unsupported settings format: {fmt}"
    raise MalformedDocumentError(msg)


def settings_path(config_dir: str | Path, fmt: str = "json") -> Path:
    """Return the settings file path inside a configuration directory."""
    return Path(config_dir) / SETTINGS_FILE_NAMES[fmt]


def find_settings_file(config_dir: str | Path) -> tuple[Path, str] | None:
    """Locate an existing settings file, preferring JSON over TOML."""
    for fmt in SETTINGS_FILE_NAMES:
        path = settings_path(config_dir, fmt)
        if path.is_file():
            return path, fmt
    return None


def load_settings(config_dir: str | Path | None) -> SessionSettings:
    """Load persisted settings, or schema defaults when none exist.

    Args:
        config_dir: Configuration directory; ``None`` means no persisted
            settings are available

    """
    if config_dir is None:
        logger.debug("No configuration directory; using default settings")
        return default_settings()

    found = find_settings_file(config_dir)
    if found is None:
        logger.debug("No settings file in %s; using default settings", config_dir)
        return default_settings()

    path, fmt = found
    logger.debug("Loading settings from %s", path)
    return deserialize(path.read_bytes(), fmt)


def save_settings(
    settings: SessionSettings,
    config_dir: str | Path,
    fmt: str | None = None,
) -> Path:
    """Write settings atomically into ``config_dir``.

    Without an explicit ``fmt`` the format of the existing settings file is
    kept, falling back to JSON.

    The document is written to a temporary file in the same directory and
    renamed over the target, so readers never see a torn document.

    Returns:
        Path of the written settings file

    """
    if fmt is None:
        found = find_settings_file(config_dir)
        fmt = found[1] if found else "json"
    target = settings_path(config_dir, fmt)
    target.parent.mkdir(parents=True, exist_ok=True)
    payload = serialize(settings, fmt)

    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{target.name}.", suffix=".tmp", dir=target.parent
    )
    temp_file = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        # Atomic rename
        temp_file.replace(target)
    except BaseException:
        temp_file.unlink(missing_ok=True)
        raise

    logger.debug("Settings saved to %s", target)
    return target


def settings_schema() -> dict[str, Any]:
    """Return the JSON Schema of the settings document."""
    return SessionSettings.model_json_schema(mode="serialization")

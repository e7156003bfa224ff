"""Exception hierarchy for torrentd.

Every configuration error names the offending field (and the raw value
where there is one) so the message is actionable on its own.
"""

from __future__ import annotations

from typing import Any


class TorrentdError(Exception):
    """Base exception for all torrentd errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        """Initialize torrentd error."""
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message


class ValidationError(TorrentdError):
    """Data validation errors."""


class ConfigurationError(ValidationError):
    """Configuration validation errors."""


class ParseError(ConfigurationError):
    """Malformed command-line input."""

    reason = "invalid value"

    def __init__(self, field: str | None, value: Any):
        """Initialize parse error for a flag and its raw value."""
        self.field = field
        self.value = value
        flag = f"--{field.replace('_', '-')}" if field else "command line"
        super().__init__(f"Invalid value for {flag}: {value!r} ({self.reason})")


class InvalidAddressError(ParseError):
    """Value is not a valid IP address literal."""

    reason = "not a valid IP address"


class InvalidPathError(ParseError):
    """Path does not name an existing directory."""

    reason = "not an existing directory"


class InvalidNumberError(ParseError):
    """Value is not an integer in the accepted range."""

    reason = "not an integer between 0 and 65535"


class InvalidUsageError(ParseError):
    """Unknown flag or missing flag value."""

    def __init__(self, field: str | None, value: Any):
        """Initialize usage error; ``value`` is click's own message."""
        self.field = field
        self.value = value
        ConfigurationError.__init__(self, f"Usage error: {value}")


class SchemaError(ConfigurationError):
    """Malformed persisted settings document."""

    reason = "invalid value"

    def __init__(self, field: str | None, value: Any = None):
        """Initialize schema error for a settings field."""
        self.field = field
        self.value = value
        super().__init__(f"Setting {field!r}: {self.reason} ({value!r})")


class UnknownVariantError(SchemaError):
    """Enumerated field holds an unrecognized variant name."""

    reason = "unknown variant"


class OutOfRangeError(SchemaError):
    """Numeric field outside its declared bounds."""

    reason = "value out of range"


class MissingFieldError(SchemaError):
    """Required field absent from the document."""

    def __init__(self, field: str):
        """Initialize missing field error."""
        self.field = field
        self.value = None
        ConfigurationError.__init__(self, f"Setting {field!r} is required but missing")


class InvalidValueError(SchemaError):
    """Field value has the wrong type or cannot be parsed."""


class MalformedDocumentError(SchemaError):
    """Document cannot be decoded into a mapping of settings."""

    def __init__(self, reason: str):
        """Initialize malformed document error."""
        self.field = None
        self.value = None
        ConfigurationError.__init__(self, f"Malformed settings document: {reason}")


class ResolveError(ConfigurationError):
    """CLI overrides cannot be merged into the settings."""


class ConflictingFlagsError(ResolveError):
    """Mutually exclusive flags were given together."""

    def __init__(self, pair: str, flags: list[str] | None = None):
        """Initialize conflict error for a flag pair or group."""
        self.pair = pair
        self.field = pair
        self.flags = flags or []
        given = " and ".join(self.flags) if self.flags else pair
        super().__init__(f"Conflicting flags for {pair!r}: {given} cannot be combined")


class InvalidSettingError(ResolveError):
    """Merged settings violate a field's bounds or type."""

    def __init__(self, field: str, value: Any, reason: str = "invalid value"):
        """Initialize post-merge validation error."""
        self.field = field
        self.value = value
        super().__init__(f"Resolved setting {field!r}: {reason} ({value!r})")

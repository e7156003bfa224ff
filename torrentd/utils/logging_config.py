"""Logging configuration for torrentd.

Console output goes through Rich on stderr; ``--logfile`` adds a rotating
plain-text file handler. The level comes from the resolved
``message_level`` setting.
"""

from __future__ import annotations

import logging
import logging.config
import uuid
from contextvars import ContextVar
from pathlib import Path
from typing import TYPE_CHECKING, Any, cast

from torrentd.utils.rich_logging import FileFormatter, create_rich_handler

if TYPE_CHECKING:  # pragma: no cover
    from torrentd.models import LogLevel

ROOT_LOGGER = "torrentd"

# Context variable for correlation ID
correlation_id: ContextVar[str | None] = cast(
    "ContextVar[str | None]",
    ContextVar("correlation_id", default=None),
)


class CorrelationFilter(logging.Filter):
    """Filter to add correlation ID to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Add correlation ID to log record."""
        record.correlation_id = correlation_id.get() or "no-correlation-id"
        return True


def setup_logging(level: LogLevel, log_file: str | Path | None = None) -> str:
    """Set up logging for the daemon.

    Args:
        level: Resolved message level
        log_file: Optional path of a log file; parent directories are created

    Returns:
        Correlation ID attached to every record of this run

    """
    python_level = logging.getLevelName(level.logging_level)

    logging_config: dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "simple": {
                "()": FileFormatter,
                "format": "%(asctime)s %(levelname)s %(correlation_id)s %(name)s.%(funcName)s: %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "filters": {
            "correlation": {
                "()": CorrelationFilter,
            },
        },
        "handlers": {},
        "loggers": {
            ROOT_LOGGER: {
                "level": python_level,
                "handlers": [],
                "propagate": False,
            },
        },
        "root": {
            "level": python_level,
            "handlers": [],
        },
    }

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        logging_config["handlers"]["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": python_level,
            "formatter": "simple",
            "filters": ["correlation"],
            "filename": str(log_path),
            "maxBytes": 10 * 1024 * 1024,  # 10MB
            "backupCount": 5,
            "encoding": "utf-8",
        }
        logging_config["loggers"][ROOT_LOGGER]["handlers"].append("file")

    logging.config.dictConfig(logging_config)

    # RichHandler is attached after dictConfig so it keeps its own console
    rich_handler = create_rich_handler(level=level.logging_level)
    rich_handler.addFilter(CorrelationFilter())
    logging.getLogger(ROOT_LOGGER).addHandler(rich_handler)
    logging.getLogger().addHandler(rich_handler)

    return set_correlation_id()


def get_logger(name: str) -> logging.Logger:
    """Get a logger namespaced under ``torrentd``."""
    if name == ROOT_LOGGER or name.startswith(f"{ROOT_LOGGER}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def set_correlation_id(corr_id: str | None = None) -> str:
    """Set correlation ID for the current context."""
    if corr_id is None:
        corr_id = str(uuid.uuid4())
    correlation_id.set(corr_id)
    return corr_id

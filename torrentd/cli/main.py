"""Daemon entry point.

Parses the command line, loads the persisted settings, resolves CLI
overrides, and hands the finished settings to the session engine.
"""

from __future__ import annotations

import sys
from collections.abc import Callable, Sequence

import click
from rich.console import Console
from rich.markup import escape

from torrentd.cli.options import parse
from torrentd.config.paths import resolve_config_dir
from torrentd.config.resolver import resolve
from torrentd.config.settings import load_settings, save_settings, serialize
from torrentd.models import RawOptions, SessionSettings
from torrentd.utils.exceptions import ConfigurationError
from torrentd.utils.logging_config import get_logger, setup_logging

logger = get_logger(__name__)

SessionStarter = Callable[[SessionSettings, RawOptions], int]


def _report_error(error: object) -> None:
    console = Console(stderr=True, highlight=False)
    console.print(f"[red]Error:[/red] {escape(str(error))}", soft_wrap=True)


def main(
    argv: Sequence[str] | None = None,
    start_session: SessionStarter | None = None,
) -> int:
    """Run the daemon startup sequence.

    Args:
        argv: Process arguments without the program name (default: sys.argv[1:])
        start_session: Session engine receiving the resolved settings; its
            return value becomes the exit status

    Returns:
        Process exit status

    """
    args = list(sys.argv[1:] if argv is None else argv)
    try:
        options = parse(args)
    except click.exceptions.Exit as e:
        return e.exit_code
    except ConfigurationError as e:
        _report_error(e)
        return 1

    config_dir = options.config_dir or resolve_config_dir()
    try:
        base = load_settings(config_dir)
        settings = resolve(base, options)
    except ConfigurationError as e:
        _report_error(e)
        return 1
    except OSError as e:
        _report_error(f"Cannot read settings from {config_dir}: {e}")
        return 1

    try:
        run_id = setup_logging(settings.message_level, options.logfile)
    except (OSError, ValueError) as e:
        _report_error(f"Cannot open log file {options.logfile}: {e.__cause__ or e}")
        return 1
    logger.debug("Run %s; configuration directory: %s", run_id, config_dir)

    if options.dump_settings:
        click.echo(serialize(settings).decode("utf-8"), nl=False)
        return 0

    if config_dir is not None:
        try:
            save_settings(settings, config_dir)
        except OSError as e:
            logger.warning("Could not save settings to %s: %s", config_dir, e)

    if start_session is None:
        logger.info("Settings resolved; no session engine attached")
        return 0
    return start_session(settings, options)


if __name__ == "__main__":
    sys.exit(main())

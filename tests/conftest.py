"""Pytest configuration and shared fixtures for torrentd tests."""

from __future__ import annotations

import logging

import pytest


def pytest_configure(config):
    """Register all project markers to avoid warnings when ini isn't loaded."""
    markers = [
        ("unit", "marks tests as unit tests"),
        ("integration", "marks tests as integration tests"),
        ("config", "marks tests as configuration tests"),
        ("cli", "marks tests as CLI tests"),
        ("property", "marks tests as property-based tests"),
    ]
    for name, desc in markers:
        config.addinivalue_line("markers", f"{name}: {desc}")


@pytest.fixture(autouse=True)
def _isolate_torrentd_dirs(monkeypatch, tmp_path):
    """Point every platform directory lookup into the test's tmp_path.

    Keeps the daemon from reading or writing a real user configuration
    and makes the default download directory deterministic.
    """
    monkeypatch.setenv("TORRENTD_HOME", str(tmp_path / "config"))
    monkeypatch.setattr(
        "torrentd.config.paths.user_downloads_dir",
        lambda: str(tmp_path / "Downloads"),
    )


@pytest.fixture
def config_dir(tmp_path):
    """Existing, empty configuration directory."""
    path = tmp_path / "config"
    path.mkdir(exist_ok=True)
    return path


@pytest.fixture(autouse=True)
def cleanup_logging():
    """Clean up logging handlers after each test to prevent closed file errors."""
    yield
    # Clean up all handlers to prevent "I/O operation on closed file" errors
    for logger_name in list(logging.Logger.manager.loggerDict.keys()):
        logger = logging.getLogger(logger_name)
        for handler in logger.handlers[:]:
            handler.close()
            logger.removeHandler(handler)

    # Also clean up root logger
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        handler.close()
        root_logger.removeHandler(handler)

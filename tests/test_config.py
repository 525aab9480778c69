"""Tests for settings resolution and log setup."""

import logging

from tmux_time_tracker.config import (
    DB_FILENAME,
    LOG_FILENAME,
    configure_logging,
    resolve_settings,
)


def test_resolve_settings_creates_home(tmp_path):
    home = tmp_path / "nested" / "tracker"

    settings = resolve_settings(home)

    assert home.is_dir()
    assert settings.db_path == home / DB_FILENAME
    assert settings.log_path == home / LOG_FILENAME
    assert settings.log_level == "INFO"
    assert settings.week_start == 0


def test_resolve_settings_custom_db(tmp_path):
    db_path = tmp_path / "elsewhere" / "custom.db"

    settings = resolve_settings(tmp_path / "home", db_path, log_level="debug", week_start=6)

    assert settings.db_path == db_path
    assert db_path.parent.is_dir()
    assert settings.log_level == "DEBUG"
    assert settings.week_start == 6


def test_configure_logging_writes_log_file(tmp_path):
    settings = resolve_settings(tmp_path)
    handler = configure_logging(settings)
    try:
        logging.getLogger("tmux_time_tracker.test").info("START - attached")
        handler.flush()
    finally:
        logging.getLogger("tmux_time_tracker").removeHandler(handler)
        handler.close()

    content = (tmp_path / LOG_FILENAME).read_text()
    assert "[INFO] START - attached" in content


def test_configure_logging_replaces_previous_handler(tmp_path):
    first = configure_logging(resolve_settings(tmp_path / "a"))
    second = configure_logging(resolve_settings(tmp_path / "b"))
    package_logger = logging.getLogger("tmux_time_tracker")
    try:
        assert first not in package_logger.handlers
        assert second in package_logger.handlers
    finally:
        package_logger.removeHandler(second)
        second.close()

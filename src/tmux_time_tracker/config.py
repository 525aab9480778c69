"""Settings and log setup for tmux-time-tracker."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

DEFAULT_HOME = Path.home() / ".config" / "tmux-time-tracker"
DB_FILENAME = "tmux.db"
LOG_FILENAME = "output.log"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass(frozen=True)
class Settings:
    home: Path
    db_path: Path
    log_path: Path
    log_level: str = "INFO"
    week_start: int = 0


def resolve_settings(
    home: Path | None = None,
    db_path: Path | None = None,
    *,
    log_level: str = "INFO",
    week_start: int = 0,
) -> Settings:
    """Resolve paths and create the home directory if it does not exist.

    Args:
        home: Directory holding the database and log (default:
            ~/.config/tmux-time-tracker).
        db_path: Database file (default: HOME/tmux.db).
        log_level: Name of the logging level for the log file.
        week_start: Weekday the week starts on, 0 = Monday.
    """
    home = (home or DEFAULT_HOME).expanduser()
    home.mkdir(parents=True, exist_ok=True)

    if db_path is None:
        db_path = home / DB_FILENAME
    else:
        db_path = db_path.expanduser()
        db_path.parent.mkdir(parents=True, exist_ok=True)

    return Settings(
        home=home,
        db_path=db_path,
        log_path=home / LOG_FILENAME,
        log_level=log_level.upper(),
        week_start=week_start,
    )


def configure_logging(settings: Settings) -> logging.Handler:
    """Send log records from the package to the log file in the home directory."""
    handler = logging.FileHandler(settings.log_path, encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))

    package_logger = logging.getLogger("tmux_time_tracker")
    package_logger.setLevel(settings.log_level)
    # One handler per invocation; drop any left from an earlier call in this process
    for existing in list(package_logger.handlers):
        if isinstance(existing, logging.FileHandler):
            package_logger.removeHandler(existing)
            existing.close()
    package_logger.addHandler(handler)
    return handler

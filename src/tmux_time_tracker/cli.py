"""CLI entry point for tmux-time-tracker.

Meant to be called from tmux hooks, for example in ~/.tmux.conf:

    set-hook -g client-attached 'run-shell "tmux-time-tracker attached #S"'
    set-hook -g client-detached 'run-shell "tmux-time-tracker detached"'
    set-hook -g client-session-changed 'run-shell "tmux-time-tracker changed #S"'
"""

from __future__ import annotations

import logging
import sqlite3
import sys
from collections.abc import Callable
from pathlib import Path
from typing import TypeVar

import click

from tmux_time_tracker.config import Settings, configure_logging, resolve_settings
from tmux_time_tracker.db import SessionStore, SessionTotal, TrackerError
from tmux_time_tracker.hooks import Action, run_action
from tmux_time_tracker.tmux import display_message

logger = logging.getLogger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]

T = TypeVar("T")


def format_session_totals(totals: list[SessionTotal]) -> list[str]:
    """Format totals as 'session - Nh' lines."""
    return [f"{total.session_name} - {total.hours}h" for total in totals]


def _with_store(settings: Settings, name: str, operation: Callable[[SessionStore], T]) -> T:
    """Open the store, run one operation on it and log its outcome."""
    logger.info("START - %s", name)
    try:
        with SessionStore.open(settings.db_path, week_start=settings.week_start) as store:
            result = operation(store)
    except (TrackerError, sqlite3.Error) as e:
        logger.error("Error executing tmux-time-tracker %s: %s", name, e)
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    logger.info("tmux-time-tracker ran successfully for %s", name)
    return result


def _run(
    settings: Settings,
    action: Action,
    session: str | None = None,
    notify: Callable[[str], None] | None = None,
) -> int | None:
    return _with_store(
        settings,
        action.value,
        lambda store: run_action(store, action, session, notify=notify or display_message),
    )


def _notifier(to_stdout: bool) -> Callable[[str], None]:
    if to_stdout:
        return click.echo
    return display_message


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--home",
    type=click.Path(file_okay=False, path_type=Path),
    envvar="TMUX_TIME_TRACKER_HOME",
    default=None,
    help="Directory for the database and log file [default: ~/.config/tmux-time-tracker]",
)
@click.option(
    "--db",
    "db_path",
    type=click.Path(dir_okay=False, path_type=Path),
    envvar="TMUX_TIME_TRACKER_DB",
    default=None,
    help="Path to SQLite database [default: HOME/tmux.db]",
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    envvar="TMUX_TIME_TRACKER_LOG_LEVEL",
    default="INFO",
    show_default=True,
    help="Level of messages written to the log file",
)
@click.option(
    "--week-start",
    type=click.IntRange(0, 6),
    envvar="TMUX_TIME_TRACKER_WEEK_START",
    default=0,
    show_default=True,
    help="Day the week starts on (0 = Monday, 6 = Sunday)",
)
@click.pass_context
def main(
    ctx: click.Context,
    home: Path | None,
    db_path: Path | None,
    log_level: str,
    week_start: int,
) -> None:
    """Track time spent attached to tmux sessions."""
    try:
        settings = resolve_settings(home, db_path, log_level=log_level, week_start=week_start)
    except OSError as e:
        click.echo(f"Error: cannot create tracker directory: {e}", err=True)
        sys.exit(1)
    configure_logging(settings)
    ctx.obj = settings


@main.command("attached")
@click.argument("session")
@click.option("--stdout", "to_stdout", is_flag=True, help="Print the summary instead of showing it in tmux")
@click.pass_obj
def attached_command(settings: Settings, session: str, to_stdout: bool) -> None:
    """Mark SESSION as attached and show today's and this week's hours."""
    _run(settings, Action.ATTACHED, session, _notifier(to_stdout))


@main.command("detached")
@click.pass_obj
def detached_command(settings: Settings) -> None:
    """Roll up the attached time of every live session."""
    _run(settings, Action.DETACHED)


@main.command("changed")
@click.argument("session")
@click.option("--stdout", "to_stdout", is_flag=True, help="Print the summary instead of showing it in tmux")
@click.pass_obj
def changed_command(settings: Settings, session: str, to_stdout: bool) -> None:
    """Roll up all live sessions, then attach SESSION."""
    _run(settings, Action.CHANGED, session, _notifier(to_stdout))


@main.command("today")
@click.argument("session")
@click.option("--seconds", "in_seconds", is_flag=True, help="Print seconds instead of whole hours")
@click.pass_obj
def today_command(settings: Settings, session: str, in_seconds: bool) -> None:
    """Print the hours SESSION has been attached today.

    Time from an attachment that is still live is counted once the session
    is detached.
    """
    if not in_seconds:
        click.echo(_run(settings, Action.TODAY, session))
        return

    click.echo(_with_store(settings, "today", lambda store: store.today_seconds(session)))


@main.command("week")
@click.argument("session")
@click.pass_obj
def week_command(settings: Settings, session: str) -> None:
    """Print the hours SESSION has been attached this week."""
    click.echo(_run(settings, Action.WEEK, session))


@main.command("show")
@click.pass_obj
def show_command(settings: Settings) -> None:
    """List every session with its all-time hours."""
    totals = _with_store(settings, "show", lambda store: store.session_totals())

    if not totals:
        click.echo("No sessions recorded")
        return

    for line in format_session_totals(totals):
        click.echo(line)


@main.command("clear")
@click.confirmation_option(prompt="Reset all tracked time to zero?")
@click.pass_obj
def clear_command(settings: Settings) -> None:
    """Reset every session's tracked time to zero."""
    cleared = _with_store(settings, "clear", lambda store: store.clear_all())
    click.echo(f"Cleared {cleared} daily records")


if __name__ == "__main__":
    main()

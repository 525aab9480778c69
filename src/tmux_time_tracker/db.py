"""SQLite session store for tmux-time-tracker."""

from __future__ import annotations

import logging
import math
import sqlite3
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import date, datetime, timedelta, tzinfo
from pathlib import Path

from pydantic import BaseModel

SECONDS_PER_HOUR = 3600


class TrackerError(Exception):
    """Base exception for tracker errors."""

    pass


class StoreError(TrackerError):
    """Raised when the database cannot be opened or its schema created."""

    pass


class SessionAttachment(BaseModel):
    """A tmux session and, if it is live, when it was last attached."""

    session_name: str
    last_attached_time: float | None = None

    @property
    def is_live(self) -> bool:
        return self.last_attached_time is not None


class DailyRecord(BaseModel):
    """Seconds a session spent attached on one calendar day."""

    session_name: str
    day: date
    time_attached: int


class SessionTotal(BaseModel):
    """All-time attached seconds for a session."""

    session_name: str
    total_seconds: int

    @property
    def hours(self) -> int:
        return self.total_seconds // SECONDS_PER_HOUR


SCHEMA = """
CREATE TABLE IF NOT EXISTS sessions (
    session_name TEXT PRIMARY KEY,
    last_attached_time REAL
);

CREATE TABLE IF NOT EXISTS daily_records (
    session_name TEXT NOT NULL,
    day TEXT NOT NULL,
    time_attached INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (session_name, day)
);

CREATE INDEX IF NOT EXISTS idx_sessions_live ON sessions(last_attached_time);
"""

logger = logging.getLogger(__name__)


def _elapsed_seconds(session_name: str, last_attached_time: float, now: float) -> int:
    """Whole seconds between attach and now, clamped at zero.

    Both endpoints are floored to whole seconds, so the sub-second parts
    cancel out across consecutive intervals instead of being lost each time.

    A negative span means the wall clock moved backward since the attach.
    Crediting it would shrink a stored total, so it is dropped instead.
    """
    elapsed = math.floor(now) - math.floor(last_attached_time)
    if elapsed < 0:
        logger.warning(
            "Clock moved backward for session %r (attached at %s, now %s); crediting 0s",
            session_name,
            last_attached_time,
            now,
        )
        return 0
    return elapsed


class SessionStore:
    """SQLite-backed store of tmux session attachments and daily totals.

    Each tracker invocation opens one store, performs one operation and
    closes it. Writes run in ``BEGIN IMMEDIATE`` transactions so that
    concurrent hook invocations serialize on the database lock.

    Not thread-safe. Each thread should have its own SessionStore instance.
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        *,
        clock: Callable[[], float] | None = None,
        tz: tzinfo | None = None,
        week_start: int = 0,
    ) -> None:
        """Wrap an open connection and make sure the schema exists.

        Args:
            conn: Connection opened in autocommit mode (``isolation_level=None``).
            clock: Returns the current time in seconds since the epoch
                (default ``time.time``).
            tz: Timezone used to decide which calendar day a timestamp falls
                on (default: the local timezone).
            week_start: Weekday the week starts on, 0 = Monday ... 6 = Sunday.

        Raises:
            StoreError: If the schema cannot be created.
        """
        if not 0 <= week_start <= 6:
            raise ValueError(f"week_start must be between 0 and 6, got {week_start}")
        self._conn = conn
        self._clock = clock or time.time
        self._tz = tz
        self._week_start = week_start
        try:
            self.ensure_schema()
        except StoreError:
            self._conn.close()
            raise

    def __enter__(self) -> "SessionStore":
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    def ensure_schema(self) -> None:
        """Create the tables if they are missing. Safe to call repeatedly."""
        try:
            self._conn.executescript(SCHEMA)
        except sqlite3.Error as e:
            raise StoreError(f"Failed to create database schema: {e}") from e

    @classmethod
    def open(
        cls,
        path: Path,
        *,
        clock: Callable[[], float] | None = None,
        tz: tzinfo | None = None,
        week_start: int = 0,
        busy_timeout: float = 5.0,
    ) -> SessionStore:
        """Open or create a database at the given path.

        Args:
            busy_timeout: Seconds a writer waits for another invocation's
                lock before giving up.
        """
        try:
            conn = sqlite3.connect(path, timeout=busy_timeout, isolation_level=None)
        except sqlite3.Error as e:
            raise StoreError(f"Failed to open database {path}: {e}") from e
        conn.row_factory = sqlite3.Row
        return cls(conn, clock=clock, tz=tz, week_start=week_start)

    @classmethod
    def open_in_memory(
        cls,
        *,
        clock: Callable[[], float] | None = None,
        tz: tzinfo | None = None,
        week_start: int = 0,
    ) -> SessionStore:
        """Create an in-memory database for testing."""
        conn = sqlite3.connect(":memory:", isolation_level=None)
        conn.row_factory = sqlite3.Row
        return cls(conn, clock=clock, tz=tz, week_start=week_start)

    @contextmanager
    def _write_transaction(self) -> Iterator[sqlite3.Connection]:
        """Run the body in an immediate transaction, rolling back on any error."""
        self._conn.execute("BEGIN IMMEDIATE")
        try:
            yield self._conn
        except BaseException:
            self._conn.execute("ROLLBACK")
            raise
        try:
            self._conn.execute("COMMIT")
        except sqlite3.Error:
            # A busy COMMIT leaves the transaction open
            if self._conn.in_transaction:
                self._conn.execute("ROLLBACK")
            raise

    def _day_for(self, timestamp: float) -> date:
        return datetime.fromtimestamp(timestamp, tz=self._tz).date()

    def today(self) -> date:
        """Today's date in the store's timezone, according to its clock."""
        return self._day_for(self._clock())

    def week_start_day(self, day: date | None = None) -> date:
        """First day of the week containing ``day`` (default: today)."""
        if day is None:
            day = self.today()
        return day - timedelta(days=(day.weekday() - self._week_start) % 7)

    # --- attachment state -------------------------------------------------

    def attach(self, session_name: str) -> None:
        """Mark a session as attached now, creating it on first use.

        Attaching a session that is already live moves its start point to
        now. The interval since the previous attach is not credited.
        """
        if not session_name:
            raise ValueError("session_name must not be empty")
        with self._write_transaction() as conn:
            now = math.floor(self._clock())
            conn.execute(
                """
                INSERT INTO sessions (session_name, last_attached_time)
                VALUES (?, ?)
                ON CONFLICT(session_name)
                DO UPDATE SET last_attached_time = excluded.last_attached_time
                """,
                (session_name, now),
            )
        logger.debug("Attached session %r at %s", session_name, now)

    def detach_all(self) -> dict[str, int]:
        """Roll up every live session into today's totals and mark it detached.

        Reading the live sessions, crediting their elapsed time and clearing
        their markers happen in one transaction. If anything fails, nothing
        is credited and every session stays live.

        Returns:
            Dict mapping each detached session name to the seconds credited.
        """
        credited: dict[str, int] = {}
        with self._write_transaction() as conn:
            now = self._clock()
            day = self._day_for(now).isoformat()
            rows = conn.execute(
                """
                SELECT session_name, last_attached_time
                FROM sessions
                WHERE last_attached_time IS NOT NULL
                ORDER BY session_name
                """
            ).fetchall()

            for row in rows:
                name = row["session_name"]
                elapsed = _elapsed_seconds(name, row["last_attached_time"], now)
                if elapsed > 0:
                    self._credit_day(name, day, elapsed)
                credited[name] = elapsed

            conn.executemany(
                "UPDATE sessions SET last_attached_time = NULL WHERE session_name = ?",
                [(name,) for name in credited],
            )

        if credited:
            logger.info(
                "Detached %d session(s): %s",
                len(credited),
                ", ".join(f"{name}=+{seconds}s" for name, seconds in credited.items()),
            )
        return credited

    def _credit_day(self, session_name: str, day: str, seconds: int) -> None:
        """Add seconds to a daily record. Does not commit."""
        self._conn.execute(
            """
            INSERT INTO daily_records (session_name, day, time_attached)
            VALUES (?, ?, ?)
            ON CONFLICT(session_name, day)
            DO UPDATE SET time_attached = time_attached + excluded.time_attached
            """,
            (session_name, day, seconds),
        )

    def clear_all(self) -> int:
        """Reset every daily total to zero, keeping the sessions themselves.

        Returns:
            Number of daily records reset.
        """
        with self._write_transaction() as conn:
            cursor = conn.execute("UPDATE daily_records SET time_attached = 0")
        logger.info("Cleared %d daily record(s)", cursor.rowcount)
        return cursor.rowcount

    # --- queries ----------------------------------------------------------

    def today_seconds(self, session_name: str) -> int:
        """Seconds attached today, not counting a still-live attachment."""
        row = self._conn.execute(
            "SELECT time_attached FROM daily_records WHERE session_name = ? AND day = ?",
            (session_name, self.today().isoformat()),
        ).fetchone()
        if row is None:
            return 0
        return int(row["time_attached"])

    def today_hours(self, session_name: str) -> int:
        """Whole hours attached today (truncated)."""
        return self.today_seconds(session_name) // SECONDS_PER_HOUR

    def week_seconds(self, session_name: str) -> int:
        """Seconds attached from the start of this week through today."""
        today = self.today()
        row = self._conn.execute(
            """
            SELECT COALESCE(SUM(time_attached), 0) AS total
            FROM daily_records
            WHERE session_name = ? AND day >= ? AND day <= ?
            """,
            (session_name, self.week_start_day(today).isoformat(), today.isoformat()),
        ).fetchone()
        return int(row["total"])

    def week_hours(self, session_name: str) -> int:
        """Whole hours attached this week (truncated)."""
        return self.week_seconds(session_name) // SECONDS_PER_HOUR

    def session_totals(self) -> list[SessionTotal]:
        """All known sessions with their all-time totals, largest first."""
        cursor = self._conn.execute(
            """
            SELECT s.session_name, COALESCE(SUM(d.time_attached), 0) AS total_seconds
            FROM sessions s
            LEFT JOIN daily_records d ON d.session_name = s.session_name
            GROUP BY s.session_name
            ORDER BY total_seconds DESC, s.session_name ASC
            """
        )
        return [SessionTotal.model_validate(dict(row)) for row in cursor.fetchall()]

    def get_session(self, session_name: str) -> SessionAttachment | None:
        row = self._conn.execute(
            "SELECT session_name, last_attached_time FROM sessions WHERE session_name = ?",
            (session_name,),
        ).fetchone()
        if row is None:
            return None
        return SessionAttachment.model_validate(dict(row))

    def get_daily_records(self, session_name: str | None = None) -> list[DailyRecord]:
        """Daily records ordered by day, optionally for one session only."""
        query = "SELECT session_name, day, time_attached FROM daily_records"
        params: list[str] = []
        if session_name is not None:
            query += " WHERE session_name = ?"
            params.append(session_name)
        query += " ORDER BY day ASC, session_name ASC"
        cursor = self._conn.execute(query, params)
        return [DailyRecord.model_validate(dict(row)) for row in cursor.fetchall()]

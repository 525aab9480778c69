"""Dispatch of tmux hook actions onto the session store."""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum

from tmux_time_tracker.db import SessionStore, TrackerError
from tmux_time_tracker.tmux import display_message

logger = logging.getLogger(__name__)


class UsageError(TrackerError):
    """Raised when an action is invoked without the arguments it needs."""

    pass


class Action(str, Enum):
    """Everything the tracker can be asked to do in one invocation."""

    ATTACHED = "attached"
    DETACHED = "detached"
    CHANGED = "changed"
    TODAY = "today"
    WEEK = "week"

    @property
    def needs_session(self) -> bool:
        return self is not Action.DETACHED


def format_attached_message(session: str, today_hours: int, week_hours: int) -> str:
    return f"Attached to: {session} today for {today_hours}h, this week for {week_hours}h"


def _attach_and_notify(
    store: SessionStore,
    session: str,
    notify: Callable[[str], None],
) -> None:
    store.attach(session)
    notify(
        format_attached_message(
            session,
            store.today_hours(session),
            store.week_hours(session),
        )
    )


def run_action(
    store: SessionStore,
    action: Action,
    session: str | None = None,
    *,
    notify: Callable[[str], None] = display_message,
) -> int | None:
    """Perform a single action against the store.

    ``changed`` is what tmux reports when a client switches sessions: the
    old session is rolled up and the new one attached. Because tmux does not
    say which session was left, every live session is rolled up.

    Args:
        store: Open session store.
        action: Action to perform.
        session: Session name, required by every action except ``detached``.
        notify: Called with the message shown after attaching.

    Returns:
        Hours for ``today`` and ``week``, None for the hook actions.

    Raises:
        UsageError: If the action needs a session and none was given.
    """
    if action.needs_session and not session:
        raise UsageError(f"Action '{action.value}' requires a session name")

    if action is Action.DETACHED:
        store.detach_all()
    elif action is Action.ATTACHED:
        _attach_and_notify(store, session, notify)
    elif action is Action.CHANGED:
        store.detach_all()
        _attach_and_notify(store, session, notify)
    elif action is Action.TODAY:
        return store.today_hours(session)
    elif action is Action.WEEK:
        return store.week_hours(session)
    return None

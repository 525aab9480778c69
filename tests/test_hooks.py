"""Tests for hook action dispatch."""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from tmux_time_tracker.db import SessionStore
from tmux_time_tracker.hooks import Action, UsageError, format_attached_message, run_action

START = datetime(2026, 2, 4, 9, 0, tzinfo=timezone.utc).timestamp()


class FakeClock:
    def __init__(self, now: float = START) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> SessionStore:
    return SessionStore.open_in_memory(clock=clock, tz=ZoneInfo("UTC"))


def test_format_attached_message():
    assert (
        format_attached_message("work", 2, 11)
        == "Attached to: work today for 2h, this week for 11h"
    )


def test_action_values():
    assert [action.value for action in Action] == ["attached", "detached", "changed", "today", "week"]
    assert Action("detached") is Action.DETACHED
    assert not Action.DETACHED.needs_session
    assert Action.CHANGED.needs_session


class TestHookActions:
    """Tests for actions fired by tmux hooks."""

    def test_attached_marks_live_and_notifies(self, store, clock):
        messages: list[str] = []

        result = run_action(store, Action.ATTACHED, "work", notify=messages.append)

        assert result is None
        assert store.get_session("work").is_live
        assert messages == ["Attached to: work today for 0h, this week for 0h"]

    def test_attached_message_includes_rolled_up_time(self, store, clock):
        messages: list[str] = []
        run_action(store, Action.ATTACHED, "work", notify=messages.append)
        clock.now += 2 * 3600
        run_action(store, Action.DETACHED)

        run_action(store, Action.ATTACHED, "work", notify=messages.append)

        assert messages[-1] == "Attached to: work today for 2h, this week for 2h"

    def test_detached_rolls_up_all_sessions(self, store, clock):
        run_action(store, Action.ATTACHED, "work", notify=lambda msg: None)
        run_action(store, Action.ATTACHED, "play", notify=lambda msg: None)
        clock.now += 600

        assert run_action(store, Action.DETACHED) is None

        assert store.today_seconds("work") == 600
        assert store.today_seconds("play") == 600

    def test_detached_ignores_session_argument(self, store, clock):
        run_action(store, Action.ATTACHED, "work", notify=lambda msg: None)
        clock.now += 60

        run_action(store, Action.DETACHED, "play")

        assert store.today_seconds("work") == 60

    def test_changed_credits_previous_session(self, store, clock):
        messages: list[str] = []
        run_action(store, Action.ATTACHED, "work", notify=messages.append)
        clock.now += 3600

        run_action(store, Action.CHANGED, "play", notify=messages.append)

        assert store.today_seconds("work") == 3600
        assert not store.get_session("work").is_live
        assert store.get_session("play").is_live
        assert messages[-1] == "Attached to: play today for 0h, this week for 0h"

    def test_notify_failure_keeps_attach(self, store):
        """The attach is committed even if the message cannot be shown."""

        def broken_notify(message: str) -> None:
            raise RuntimeError("no tmux server")

        with pytest.raises(RuntimeError):
            run_action(store, Action.ATTACHED, "work", notify=broken_notify)

        assert store.get_session("work").is_live


class TestQueryActions:
    """Tests for read-only actions."""

    def test_today_and_week(self, store, clock):
        run_action(store, Action.ATTACHED, "work", notify=lambda msg: None)
        clock.now += 3 * 3600 + 59
        run_action(store, Action.DETACHED)

        assert run_action(store, Action.TODAY, "work") == 3
        assert run_action(store, Action.WEEK, "work") == 3

    def test_query_unknown_session(self, store):
        assert run_action(store, Action.TODAY, "ghost") == 0
        assert run_action(store, Action.WEEK, "ghost") == 0

    @pytest.mark.parametrize("action", [Action.ATTACHED, Action.CHANGED, Action.TODAY, Action.WEEK])
    def test_missing_session_is_usage_error(self, store, action):
        with pytest.raises(UsageError, match=action.value):
            run_action(store, action, None)

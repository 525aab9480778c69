"""Messages shown in the tmux status line."""

from __future__ import annotations

import logging
import subprocess

from tmux_time_tracker.db import TrackerError

DEFAULT_MESSAGE_DURATION_MS = 1_000

logger = logging.getLogger(__name__)


class TmuxError(TrackerError):
    """Raised when tmux cannot be asked to display a message."""

    pass


def display_message(
    message: str,
    duration_ms: int = DEFAULT_MESSAGE_DURATION_MS,
    *,
    timeout: float = 5.0,
) -> None:
    """Show ``message`` in the status line of the current tmux client.

    Args:
        message: Text to display. Passed as a single argument, never
            through a shell.
        duration_ms: How long tmux keeps the message visible.
        timeout: Seconds to wait for the tmux command.

    Raises:
        TmuxError: If tmux is missing, times out or exits non-zero.
    """
    try:
        result = subprocess.run(
            ["tmux", "display-message", "-d", str(duration_ms), message],
            capture_output=True,
            timeout=timeout,
        )
    except FileNotFoundError as e:
        raise TmuxError("tmux executable not found") from e
    except subprocess.TimeoutExpired as e:
        raise TmuxError(f"tmux display-message timed out after {timeout}s") from e

    if result.returncode != 0:
        stderr = result.stderr.decode("utf-8", errors="replace").strip()
        raise TmuxError(f"tmux display-message failed (exit {result.returncode}): {stderr}")

    logger.debug("Displayed tmux message: %s", message)

"""Error types for tmuxdeck.

Listing failures never raise (they degrade to empty lists), and batch
failures are reported as counts, so only single-target mutations and the
stream transport have exception types.
"""

from __future__ import annotations


class TmuxDeckError(Exception):
    """Base exception for all tmuxdeck errors."""


class ExecutionError(TmuxDeckError):
    """A single-target tmux mutation exited nonzero."""

    def __init__(self, message: str, stderr: str = "", command: str | None = None):
        super().__init__(message)
        self.stderr = stderr
        self.command = command


class TransportError(TmuxDeckError):
    """Event stream connect or read failed.

    Raised and caught inside the reconnect loop only; never reaches listeners.
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code

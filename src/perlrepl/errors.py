"""Exceptions raised by perlrepl commands."""

from __future__ import annotations


class ReplError(Exception):
    """Base class for errors surfaced to the user."""


class NoSelectionError(ReplError):
    """``send-region`` was invoked without an active, non-empty selection."""

    def __init__(self, message: str = "No active region to send") -> None:
        super().__init__(message)


class SpawnError(ReplError):
    """The configured interpreter could not be located or started."""

    def __init__(self, executable: str, reason: str) -> None:
        super().__init__(f"Cannot start {executable!r}: {reason}")
        self.executable = executable
        self.reason = reason


class SessionClosedError(ReplError, RuntimeError):
    """Input was written to a session whose process is gone."""

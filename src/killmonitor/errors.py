"""Exceptions raised by killmonitor."""

from __future__ import annotations


class KillMonitorError(Exception):
    """Base class for killmonitor errors."""


class InvalidTargetError(KillMonitorError, ValueError):
    """The requested log file or player name cannot be monitored."""


class FatalMonitorError(KillMonitorError):
    """A poll failure that ends the monitoring session.

    Attributes:
        path: Log file the failure concerns.
    """

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path

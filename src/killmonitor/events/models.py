"""Notice types and handler protocol for the monitor event bus."""

from collections.abc import Awaitable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Protocol

SESSION_EVENT = "session.event"
MONITOR_NOTICE = "monitor.notice"
MONITOR_ERROR = "monitor.error"

# Topic constants published by the poll scheduler
MONITOR_TOPICS: dict[str, str] = {
    SESSION_EVENT: "Kill or death relevant to the monitoring session",
    MONITOR_NOTICE: "Recoverable condition worth showing to the user",
    MONITOR_ERROR: "Monitoring stopped after a fatal failure",
}


class NoticeKind(Enum):
    """
    Kinds of non-fatal diagnostic notices.

    Attributes:
        ROTATION_DETECTED: The log was replaced or truncated; reading restarted
        FILE_UNAVAILABLE: The log is missing or locked; retrying next poll
        FILE_RECOVERED: The log is readable again after being unavailable
        READ_ERROR: A read failed transiently; retrying next poll
        LINE_DROPPED: An overlong unterminated line was discarded
    """

    ROTATION_DETECTED = "rotation_detected"
    FILE_UNAVAILABLE = "file_unavailable"
    FILE_RECOVERED = "file_recovered"
    READ_ERROR = "read_error"
    LINE_DROPPED = "line_dropped"


@dataclass(frozen=True)
class MonitorNotice:
    """
    Immutable diagnostic notice.

    Attributes:
        kind: What happened
        message: Human-readable description
        path: Log file the notice concerns
        timestamp: When the notice was raised
        session_id: Session that raised it
    """

    kind: NoticeKind
    message: str
    path: str
    timestamp: datetime
    session_id: str | None = None


@dataclass(frozen=True)
class MonitorFailure:
    """
    Terminal error published when monitoring stops on its own.

    Attributes:
        message: Human-readable description
        path: Log file the failure concerns
        timestamp: When monitoring stopped
        error_type: Name of the underlying exception class
        session_id: Session that was stopped
    """

    message: str
    path: str
    timestamp: datetime
    error_type: str
    session_id: str | None = None


class EventHandler(Protocol):
    """
    Protocol for bus subscribers.

    Handlers receive the published payload. They may be plain callables or
    coroutine functions; coroutine handlers are awaited in turn.

    Example:
        def on_event(payload: SessionEvent) -> None:
            print(payload.sequence)

        bus.subscribe(SESSION_EVENT, on_event)
    """

    def __call__(self, payload: Any) -> None | Awaitable[None]:
        ...

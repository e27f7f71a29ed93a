"""Event delivery for killmonitor."""

from killmonitor.events.bus import EventBus, QueueSubscriber
from killmonitor.events.models import (
    MONITOR_ERROR,
    MONITOR_NOTICE,
    MONITOR_TOPICS,
    SESSION_EVENT,
    EventHandler,
    MonitorFailure,
    MonitorNotice,
    NoticeKind,
)

__all__ = [
    "EventBus",
    "EventHandler",
    "MONITOR_ERROR",
    "MONITOR_NOTICE",
    "MONITOR_TOPICS",
    "MonitorFailure",
    "MonitorNotice",
    "NoticeKind",
    "QueueSubscriber",
    "SESSION_EVENT",
]

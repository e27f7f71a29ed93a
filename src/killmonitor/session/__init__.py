"""Session state tracking for killmonitor."""

from killmonitor.session.models import (
    Classification,
    DedupWindow,
    MonitorSession,
    MonitorTarget,
    SessionEvent,
    SessionSnapshot,
)
from killmonitor.session.tracker import classify, track

__all__ = [
    "Classification",
    "DedupWindow",
    "MonitorSession",
    "MonitorTarget",
    "SessionEvent",
    "SessionSnapshot",
    "classify",
    "track",
]

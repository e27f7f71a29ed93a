"""Star Citizen kill monitor: tails Game.log and reports kills and deaths."""

__version__ = "0.1.0"

from .config import ChannelType, MonitorConfig, default_log_path, load_config
from .errors import FatalMonitorError, InvalidTargetError, KillMonitorError
from .events import EventBus, QueueSubscriber
from .scheduler import PollScheduler, SchedulerState
from .session import Classification, MonitorTarget, SessionEvent, SessionSnapshot

__all__ = [
    "ChannelType",
    "Classification",
    "EventBus",
    "FatalMonitorError",
    "InvalidTargetError",
    "KillMonitorError",
    "MonitorConfig",
    "MonitorTarget",
    "PollScheduler",
    "QueueSubscriber",
    "SchedulerState",
    "SessionEvent",
    "SessionSnapshot",
    "default_log_path",
    "load_config",
]

"""
KillEventRecorder - Appends delivered session events to a JSON lines file.

One file is written per recorder, named after the time recording started:
``kill-events_<yyMMdd-HHmmss>.jsonl``.
"""

import json
import logging
from datetime import UTC, datetime
from pathlib import Path

import aiofiles

from killmonitor.events.bus import EventBus
from killmonitor.events.models import SESSION_EVENT
from killmonitor.filters import EventFilter
from killmonitor.session.models import SessionEvent


class KillEventRecorder:
    """
    Bus subscriber that writes accepted events to disk.

    Example:
        recorder = KillEventRecorder("~/.killmonitor/events", EventFilter())
        recorder.subscribe(scheduler.bus)
        ...
        recorder.close()
    """

    def __init__(
        self,
        record_dir: str | Path,
        event_filter: EventFilter | None = None,
        started_at: datetime | None = None,
    ):
        """
        Initialize the recorder.

        Args:
            record_dir: Directory the JSON lines file is created in
            event_filter: Only events it accepts are written (all when None)
            started_at: Time used in the file name (defaults to now, UTC)
        """
        self.record_dir = Path(record_dir).expanduser()
        self.event_filter = event_filter
        started_at = started_at or datetime.now(UTC)
        self.file_path = self.record_dir / f"kill-events_{started_at:%y%m%d-%H%M%S}.jsonl"
        self.written = 0

        self._bus: EventBus | None = None
        self._subscription_id: str | None = None
        self._logger = logging.getLogger(__name__)

    def subscribe(self, bus: EventBus) -> None:
        """Start receiving ``session.event`` payloads from ``bus``."""
        if self._subscription_id is not None:
            raise RuntimeError("KillEventRecorder is already subscribed")
        self.record_dir.mkdir(parents=True, exist_ok=True)
        self._bus = bus
        self._subscription_id = bus.subscribe(SESSION_EVENT, self.record)
        self._logger.info(f"Recording kill events to {self.file_path}")

    async def record(self, event: SessionEvent) -> bool:
        """
        Append one event to the file.

        Returns:
            True if the event was written, False if the filter rejected it
        """
        if self.event_filter is not None and not self.event_filter.accepts(event):
            return False

        self.record_dir.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(self.file_path, "a", encoding="utf-8") as f:
            await f.write(json.dumps(event.to_dict()) + "\n")
            await f.flush()

        self.written += 1
        self._logger.debug(f"Recorded event #{event.sequence} to {self.file_path}")
        return True

    def close(self) -> None:
        """Stop receiving events. Already written lines stay on disk."""
        if self._bus is not None and self._subscription_id is not None:
            self._bus.unsubscribe(self._subscription_id)
        self._bus = None
        self._subscription_id = None

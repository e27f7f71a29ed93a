"""
PollScheduler - Background task that tails the game log and publishes events.

The scheduler owns the active MonitorSession and is the only code that writes
to it. Each poll runs the file cursor, line reader, parser and session tracker
in turn and publishes the resulting events on the EventBus in file order.
"""

import asyncio
import logging
import uuid
from collections.abc import Sequence
from datetime import UTC, datetime
from enum import Enum

import aiofiles

from killmonitor.config import MonitorConfig
from killmonitor.errors import FatalMonitorError, InvalidTargetError
from killmonitor.events.bus import EventBus
from killmonitor.events.models import (
    MONITOR_ERROR,
    MONITOR_NOTICE,
    SESSION_EVENT,
    MonitorFailure,
    MonitorNotice,
    NoticeKind,
)
from killmonitor.monitoring.file_cursor import advance, read_range, stat_file
from killmonitor.monitoring.line_reader import read_lines
from killmonitor.monitoring.models import CursorStatus, FilePosition, FileStat
from killmonitor.parsing.parser import parse_line
from killmonitor.parsing.patterns import DEFAULT_MATCHERS, EntryMatcher
from killmonitor.session.models import DedupWindow, MonitorSession, MonitorTarget, SessionSnapshot
from killmonitor.session.tracker import track


class SchedulerState(str, Enum):
    """Lifecycle state of the poll scheduler."""

    STOPPED = "stopped"
    RUNNING = "running"


class PollScheduler:
    """
    Drives the log tailing pipeline on a fixed interval.

    Lifecycle: ``start`` creates a fresh session and polls immediately,
    ``stop`` lets the current poll finish and discards the session, and
    ``change_target`` does both. Fatal poll failures stop the scheduler on its
    own and publish a MonitorFailure on the ``monitor.error`` topic.
    """

    def __init__(
        self,
        config: MonitorConfig | None = None,
        bus: EventBus | None = None,
        matchers: Sequence[EntryMatcher] = DEFAULT_MATCHERS,
    ):
        """
        Initialize the scheduler.

        Args:
            config: Monitor configuration (defaults apply when None)
            bus: Event bus to publish on (a private one is created when None)
            matchers: Ordered log entry formats handed to the parser
        """
        self.config = (config or MonitorConfig()).validate()
        self.bus = bus or EventBus()
        self.matchers = tuple(matchers)

        self._state = SchedulerState.STOPPED
        self._session: MonitorSession | None = None
        self._task: asyncio.Task | None = None
        self._detached_tasks: set[asyncio.Task] = set()
        self._stop_event: asyncio.Event | None = None
        self._wake_event: asyncio.Event | None = None
        self._cycle_done: asyncio.Condition | None = None
        self._cycles = 0
        self._polling = False
        self._lifecycle_lock = asyncio.Lock()
        self._logger = logging.getLogger(__name__)

    # ============================================================================
    # Lifecycle Methods
    # ============================================================================

    async def start(self, target: MonitorTarget, initial_position: FilePosition | None = None) -> None:
        """
        Start monitoring ``target``.

        Args:
            target: Log file and player name to monitor
            initial_position: Position to resume from, e.g. one saved by the
                caller in an earlier run. When None, reading starts at the
                beginning of the file (or at its end if ``read_existing`` is off).

        Raises:
            InvalidTargetError: If the file is missing, not a regular file, or unreadable
            RuntimeError: If the scheduler is already running
        """
        async with self._lifecycle_lock:
            await self._start_locked(target, initial_position)

    async def stop(self) -> None:
        """
        Stop monitoring. Safe to call at any time, including while stopped.

        The poll in progress, if any, runs to completion before the session is
        discarded. If it does not finish within ``stop_timeout_seconds`` the
        task is cancelled. Called from a subscriber, it returns at once and
        the current poll still delivers the rest of its batch.
        """
        if asyncio.current_task() is self._task and self._lifecycle_lock.locked():
            # Another stop is already waiting for this poll to finish
            return
        async with self._lifecycle_lock:
            await self._stop_locked()

    async def change_target(
        self, target: MonitorTarget, initial_position: FilePosition | None = None
    ) -> None:
        """
        Switch to a different log file or player.

        Equivalent to ``stop()`` followed by ``start(target)``; the running
        session is never modified.
        """
        async with self._lifecycle_lock:
            await self._stop_locked()
            await self._start_locked(target, initial_position)

    def is_running(self) -> bool:
        """Check if the scheduler is currently monitoring a file."""
        return (
            self._state is SchedulerState.RUNNING
            and self._task is not None
            and not self._task.done()
        )

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def session(self) -> MonitorSession | None:
        """The active session; read-only for anything but the poll task."""
        return self._session

    def snapshot(self) -> SessionSnapshot:
        """Return an immutable view of the scheduler and its session."""
        session = self._session
        if session is None:
            return SessionSnapshot(state=self._state.value)
        return SessionSnapshot(
            state=self._state.value,
            session_id=session.session_id,
            target=session.target,
            position=session.position,
            next_sequence=session.next_sequence,
            kill_count=session.kill_count,
            death_count=session.death_count,
            rotations=session.rotations,
            started_at=session.started_at,
        )

    async def poll_now(self, timeout: float | None = None) -> None:
        """
        Run a poll without waiting for the interval and wait for it to finish.

        Raises:
            RuntimeError: If the scheduler is not running
            TimeoutError: If the poll does not complete within ``timeout``
        """
        if not self.is_running() or self._wake_event is None or self._cycle_done is None:
            raise RuntimeError("PollScheduler is not running")

        # A poll already in flight may have read the file before the caller's
        # change; wait for the one after it.
        wanted = self._cycles + (2 if self._polling else 1)
        condition = self._cycle_done
        self._wake_event.set()
        async with condition:
            await asyncio.wait_for(
                condition.wait_for(lambda: self._cycles >= wanted or not self.is_running()),
                timeout=timeout,
            )

    async def _start_locked(self, target: MonitorTarget, initial_position: FilePosition | None) -> None:
        if self.is_running():
            raise RuntimeError("PollScheduler is already running")

        file_stat = await self._validate_target(target)

        if initial_position is None:
            if self.config.read_existing:
                initial_position = FilePosition(identity=file_stat.identity, byte_offset=0)
            else:
                initial_position = FilePosition(identity=file_stat.identity, byte_offset=file_stat.size)

        session = MonitorSession(
            session_id=self._new_session_id(),
            target=target,
            dedup=DedupWindow(self.config.dedup_window_size),
            position=initial_position,
        )

        self._session = session
        self._stop_event = asyncio.Event()
        self._wake_event = asyncio.Event()
        self._cycle_done = asyncio.Condition()
        self._cycles = 0
        self._polling = False
        self._state = SchedulerState.RUNNING
        self._task = asyncio.create_task(
            self._poll_loop(session, self._stop_event, self._wake_event, self._cycle_done),
            name=f"killmonitor-poll-{session.session_id}",
        )

        self._logger.info(
            f"Monitoring {target.path} for player {target.player_name} "
            f"(session: {session.session_id}, offset: {initial_position.byte_offset}, "
            f"poll interval: {self.config.poll_interval_seconds}s)"
        )

    async def _stop_locked(self) -> None:
        task = self._task
        if self._state is SchedulerState.STOPPED and task is None:
            return

        self._logger.info("Stopping PollScheduler...")
        self._state = SchedulerState.STOPPED
        if self._stop_event is not None:
            self._stop_event.set()
        if self._wake_event is not None:
            self._wake_event.set()

        if task is not None and task is asyncio.current_task():
            # Stopped by a subscriber; the loop sees the stop event once this cycle ends.
            self._detached_tasks.add(task)
            task.add_done_callback(self._detached_tasks.discard)
        elif task is not None and not task.done():
            try:
                await asyncio.wait_for(asyncio.shield(task), timeout=self.config.stop_timeout_seconds)
            except TimeoutError:
                self._logger.warning("Poll task did not stop within timeout, cancelling")
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)

        self._task = None
        self._session = None
        self._stop_event = None
        self._wake_event = None
        self._logger.info("PollScheduler stopped")

    async def _validate_target(self, target: MonitorTarget) -> FileStat:
        """Check the target can be monitored before a session is created."""
        path = target.path
        if not target.player_name:
            raise InvalidTargetError("Player name is empty")

        try:
            file_stat = await stat_file(path)
        except OSError as e:
            raise InvalidTargetError(f"Cannot access log file {path}: {e}") from e

        if file_stat is None:
            raise InvalidTargetError(f"Log file not found: {path}")
        if not file_stat.is_regular:
            raise InvalidTargetError(f"Log file path is not a regular file: {path}")

        try:
            async with aiofiles.open(path, "rb"):
                pass
        except OSError as e:
            raise InvalidTargetError(f"Log file is not readable: {path} ({e})") from e

        return file_stat

    def _new_session_id(self) -> str:
        return datetime.now(UTC).strftime("session_%Y%m%d_%H%M%S_") + uuid.uuid4().hex[:6]

    # ============================================================================
    # Core Polling Methods
    # ============================================================================

    async def _poll_loop(
        self,
        session: MonitorSession,
        stop_event: asyncio.Event,
        wake_event: asyncio.Event,
        cycle_done: asyncio.Condition,
    ) -> None:
        """
        Main polling loop (runs in background task).

        Polls immediately, then once per interval until the stop event is set.
        The stop event is only checked between polls, so a poll is never
        abandoned half way through its byte range.
        """
        self._logger.debug(f"Poll loop started for {session.session_id}")

        try:
            while not stop_event.is_set():
                if self._task is asyncio.current_task():
                    self._polling = True
                try:
                    await self._poll_once(session)
                except FatalMonitorError as e:
                    await self._fail(session, e)
                    return
                except Exception as e:
                    self._logger.critical(f"Unexpected error in poll loop: {e}", exc_info=True)
                finally:
                    if self._task is asyncio.current_task():
                        self._polling = False
                        self._cycles += 1
                    async with cycle_done:
                        cycle_done.notify_all()

                try:
                    await asyncio.wait_for(wake_event.wait(), timeout=self.config.poll_interval_seconds)
                except TimeoutError:
                    pass
                wake_event.clear()

        except asyncio.CancelledError:
            self._logger.info("Poll loop cancelled")
            raise
        finally:
            async with cycle_done:
                cycle_done.notify_all()
            self._logger.debug(f"Poll loop exited for {session.session_id}")

    async def _poll_once(self, session: MonitorSession) -> int:
        """
        Run one pass of the pipeline.

        Returns:
            Number of session events published

        Raises:
            FatalMonitorError: If monitoring cannot continue
        """
        path = session.target.path

        try:
            file_stat = await stat_file(path)
        except PermissionError as e:
            await self._permission_denied(session, e)
            return 0
        except OSError as e:
            await self._notice(session, NoticeKind.READ_ERROR, f"Could not inspect {path}: {e}")
            return 0

        if file_stat is None:
            await self._file_missing(session)
            return 0

        if not file_stat.is_regular:
            raise FatalMonitorError(f"Log file path is no longer a regular file: {path}", path=str(path))

        if session.missing_polls:
            session.missing_polls = 0
            await self._notice(session, NoticeKind.FILE_RECOVERED, f"Log file is available again: {path}")

        if session.position.identity is None:
            session.position = FilePosition(file_stat.identity, session.position.byte_offset)

        update = advance(session.position, file_stat, self.config.max_read_bytes)

        if update.status is CursorStatus.ROTATED:
            session.reset_for_rotation(update.new_identity)
            await self._notice(
                session,
                NoticeKind.ROTATION_DETECTED,
                f"Log file was rotated or truncated, reading {path} from the start",
            )
            update = advance(session.position, file_stat, self.config.max_read_bytes)

        if update.status is CursorStatus.UNCHANGED:
            await self._permission_restored(session)
            return 0

        try:
            chunk = await read_range(path, update.from_offset, update.to_offset, session.position.identity)
        except FileNotFoundError:
            await self._file_missing(session)
            return 0
        except PermissionError as e:
            await self._permission_denied(session, e)
            return 0
        except OSError as e:
            await self._notice(session, NoticeKind.READ_ERROR, f"Could not read {path}: {e}")
            return 0

        await self._permission_restored(session)

        if not chunk:
            # Replaced between stat and open, or shrank; the next poll sorts it out.
            return 0

        batch = read_lines(session.tail, chunk, update.from_offset, self.config.max_line_bytes)
        session.position = FilePosition(session.position.identity, update.from_offset + len(chunk))
        session.tail = batch.tail

        if batch.dropped_bytes:
            await self._notice(
                session,
                NoticeKind.LINE_DROPPED,
                f"Discarded an unterminated line of {batch.dropped_bytes} bytes",
            )

        published = 0
        for line in batch.lines:
            parsed = parse_line(line, self.matchers)
            event = track(session, line, parsed)
            if event is None:
                continue
            await self.bus.publish(SESSION_EVENT, event)
            published += 1

        if published:
            self._logger.debug(
                f"Published {published} events from {path} "
                f"(offset {update.from_offset} -> {session.position.byte_offset})"
            )
        return published

    # ============================================================================
    # Error Handling Methods
    # ============================================================================

    async def _file_missing(self, session: MonitorSession) -> None:
        session.missing_polls += 1
        path = session.target.path
        limit = self.config.max_missing_polls

        if limit and session.missing_polls >= limit:
            raise FatalMonitorError(
                f"Log file has been missing for {session.missing_polls} polls: {path}",
                path=str(path),
            )
        if session.missing_polls == 1:
            await self._notice(
                session, NoticeKind.FILE_UNAVAILABLE, f"Log file is missing, retrying: {path}"
            )

    async def _permission_denied(self, session: MonitorSession, error: PermissionError) -> None:
        session.permission_denied_polls += 1
        path = session.target.path

        if session.permission_denied_polls >= self.config.max_permission_denied_polls:
            raise FatalMonitorError(f"Permission denied reading {path}: {error}", path=str(path)) from error
        if session.permission_denied_polls == 1:
            await self._notice(
                session, NoticeKind.FILE_UNAVAILABLE, f"Log file is locked or not readable, retrying: {path}"
            )

    async def _permission_restored(self, session: MonitorSession) -> None:
        """Reset the denial count once a poll gets through without a PermissionError."""
        if not session.permission_denied_polls:
            return
        session.permission_denied_polls = 0
        await self._notice(
            session, NoticeKind.FILE_RECOVERED, f"Log file is readable again: {session.target.path}"
        )

    async def _notice(self, session: MonitorSession, kind: NoticeKind, message: str) -> None:
        self._logger.info(message, extra={"notice": kind.value, "session_id": session.session_id})
        await self.bus.publish(
            MONITOR_NOTICE,
            MonitorNotice(
                kind=kind,
                message=message,
                path=str(session.target.path),
                timestamp=datetime.now(UTC),
                session_id=session.session_id,
            ),
        )

    async def _fail(self, session: MonitorSession, error: FatalMonitorError) -> None:
        """Stop on a fatal error and tell subscribers."""
        self._logger.error(f"Monitoring stopped: {error}", extra={"session_id": session.session_id})

        if self._session is session:
            self._state = SchedulerState.STOPPED
            self._session = None

        await self.bus.publish(
            MONITOR_ERROR,
            MonitorFailure(
                message=str(error),
                path=error.path or str(session.target.path),
                timestamp=datetime.now(UTC),
                error_type=type(error.__cause__ or error).__name__,
                session_id=session.session_id,
            ),
        )

"""Session state and the events delivered to subscribers."""

from __future__ import annotations

from collections import Counter, deque
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path

from killmonitor.errors import InvalidTargetError
from killmonitor.monitoring.models import FileIdentity, FilePosition, PendingTail, RawLine
from killmonitor.parsing.models import CombatEvent


class Classification(Enum):
    """How an event relates to the monitored player.

    Attributes:
        SELF_KILLED: The monitored player killed someone else.
        SELF_DIED: The monitored player died (including self-inflicted).
        OTHER: The monitored player is not involved.
    """

    SELF_KILLED = "self_killed"
    SELF_DIED = "self_died"
    OTHER = "other"


@dataclass(frozen=True)
class MonitorTarget:
    """What to watch and whom to watch for.

    Attributes:
        path: Absolute path of the log file.
        player_name: Display name of the monitored player.
    """

    path: Path
    player_name: str

    @classmethod
    def create(cls, path: str | Path, player_name: str) -> MonitorTarget:
        """Build a target, expanding ``~`` and resolving the path.

        Raises:
            InvalidTargetError: If the path or the player name is empty.
        """
        if not str(path).strip():
            raise InvalidTargetError("Log file path is empty")
        if not player_name or not player_name.strip():
            raise InvalidTargetError("Player name is empty")
        return cls(path=Path(path).expanduser().resolve(), player_name=player_name.strip())

    def is_self(self, name: str) -> bool:
        """Case-insensitive exact comparison with the monitored name."""
        return name.casefold() == self.player_name.casefold()


@dataclass(frozen=True)
class SessionEvent:
    """A deduplicated, classified event as delivered to subscribers.

    Attributes:
        sequence: Strictly increasing number, starting at 1 per session.
        classification: Relation of the event to the monitored player.
        event: The parsed kill or death.
        line: Raw line the event was parsed from.
        session_id: Identifier of the session that produced the event.
    """

    sequence: int
    classification: Classification
    event: CombatEvent
    line: RawLine
    session_id: str

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dictionary."""
        return {
            "sequence": self.sequence,
            "session_id": self.session_id,
            "classification": self.classification.value,
            "kind": self.event.kind.value,
            "timestamp": self.event.timestamp.isoformat(),
            "killer": self.event.killer,
            "victim": self.event.victim,
            "weapon": self.event.weapon,
            "weapon_class": self.event.weapon_class,
            "damage_type": self.event.damage_type,
            "zone": self.event.zone,
            "line_start_offset": self.line.start_offset,
            "line_end_offset": self.line.end_offset,
        }


class DedupWindow:
    """Fixed-capacity FIFO of recently seen raw lines.

    Entries are evicted strictly in arrival order; seeing a line again does not
    refresh it.
    """

    def __init__(self, capacity: int):
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._order: deque[str] = deque()
        self._counts: Counter[str] = Counter()

    def __contains__(self, text: str) -> bool:
        return self._counts[text] > 0

    def __len__(self) -> int:
        return len(self._order)

    def add(self, text: str) -> None:
        if len(self._order) >= self.capacity:
            oldest = self._order.popleft()
            self._counts[oldest] -= 1
            if self._counts[oldest] <= 0:
                del self._counts[oldest]
        self._order.append(text)
        self._counts[text] += 1

    def clear(self) -> None:
        self._order.clear()
        self._counts.clear()


@dataclass
class MonitorSession:
    """Mutable state of one start-to-stop monitoring run.

    Only the poll scheduler's background task writes to a session.

    Attributes:
        session_id: Identifier stamped on every event of this run.
        target: File and player being monitored.
        position: Where the next read starts.
        tail: Bytes of an unterminated line awaiting its terminator.
        dedup: Recently delivered raw lines.
        next_sequence: Sequence number the next event will get.
        kill_count: Number of SELF_KILLED events delivered.
        death_count: Number of SELF_DIED events delivered.
        missing_polls: Consecutive polls that found no file at the path.
        permission_denied_polls: Consecutive polls refused by the OS.
        rotations: Number of rotations seen during this run.
        started_at: When the session was created.
    """

    session_id: str
    target: MonitorTarget
    dedup: DedupWindow
    position: FilePosition = field(default_factory=FilePosition)
    tail: PendingTail = field(default_factory=PendingTail)
    next_sequence: int = 1
    kill_count: int = 0
    death_count: int = 0
    missing_polls: int = 0
    permission_denied_polls: int = 0
    rotations: int = 0
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def reset_for_rotation(self, new_identity: FileIdentity | None) -> None:
        """Start over on a replacement file.

        Position, tail and dedup window are reset; the sequence counter and
        tallies carry on because the logical session continues.
        """
        self.position = FilePosition(identity=new_identity, byte_offset=0)
        self.tail = PendingTail()
        self.dedup.clear()
        self.rotations += 1


@dataclass(frozen=True)
class SessionSnapshot:
    """Immutable point-in-time view of the scheduler and its session."""

    state: str
    session_id: str | None = None
    target: MonitorTarget | None = None
    position: FilePosition | None = None
    next_sequence: int = 1
    kill_count: int = 0
    death_count: int = 0
    rotations: int = 0
    started_at: datetime | None = None

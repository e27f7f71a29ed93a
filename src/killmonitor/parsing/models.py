"""Typed events produced by the log parser."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import ClassVar, Union


class EventKind(Enum):
    """Kind of a parsed log entry.

    Attributes:
        KILL: An actor was killed by another actor.
        DEATH: An actor died by its own hand or the environment.
        UNRECOGNIZED: The line matched no known entry format.
    """

    KILL = "kill"
    DEATH = "death"
    UNRECOGNIZED = "unrecognized"


@dataclass(frozen=True)
class CombatEvent:
    """Fields shared by kill and death entries.

    Attributes:
        timestamp: Time written on the log line (UTC).
        killer: Name of the killing actor.
        victim: Name of the actor that died.
        weapon: Weapon or cause of death.
        zone: Zone the victim was in, if the line names one.
        weapon_class: Weapon class, if the line names one.
        damage_type: Damage type reported by the game.
        matcher: Name of the matcher that recognized the line.
    """

    timestamp: datetime
    killer: str
    victim: str
    weapon: str
    zone: str | None = None
    weapon_class: str | None = None
    damage_type: str | None = None
    matcher: str = ""

    kind: ClassVar[EventKind]


@dataclass(frozen=True)
class Kill(CombatEvent):
    """An actor killed by a different actor."""

    kind: ClassVar[EventKind] = EventKind.KILL


@dataclass(frozen=True)
class Death(CombatEvent):
    """A self-inflicted or environmental death."""

    kind: ClassVar[EventKind] = EventKind.DEATH


@dataclass(frozen=True)
class Unrecognized:
    """A line that is not a kill or death entry.

    Attributes:
        reason: Short explanation, useful when debugging format drift.
    """

    reason: str = "no matcher"

    kind: ClassVar[EventKind] = EventKind.UNRECOGNIZED


ParsedEvent = Union[Kill, Death, Unrecognized]

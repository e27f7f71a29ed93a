"""Recognized log entry formats.

Each matcher pairs a compiled pattern with the event type it produces. The
list order matters: the parser stops at the first pattern that matches, so
more specific formats come before the general actor-death entry.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from .models import Death, Kill

ACTOR_DEATH_MARKER = "<Actor Death>"

_TIMESTAMP = r"^<(?P<timestamp>[^>]+)>"
_VICTIM = r".*?<Actor Death> CActor::Kill: '(?P<victim>[^']*)'(?: \[(?P<victim_id>\d+)\])?"
_ZONE = r"(?: in zone '(?P<zone>[^']*)')?"
_WEAPON = r"(?: using '(?P<weapon>[^']*)'(?: \[Class (?P<weapon_class>[^\]]*)\])?)?"


def _actor_death(killer: str, damage_type: str = r"[^']*") -> re.Pattern[str]:
    return re.compile(
        _TIMESTAMP
        + _VICTIM
        + _ZONE
        + rf" killed by '{killer}'(?: \[(?P<killer_id>\d+)\])?"
        + _WEAPON
        + rf" with damage type '(?P<damage_type>{damage_type})'"
    )


@dataclass(frozen=True)
class EntryMatcher:
    """A declarative log entry format.

    Attributes:
        name: Identifier carried on the parsed event.
        event_type: Event class built from the captures.
        pattern: Compiled pattern with named groups ``timestamp``, ``victim``,
            ``killer``, ``damage_type`` and optionally ``zone``, ``weapon``,
            ``weapon_class``.
    """

    name: str
    event_type: type[Kill] | type[Death]
    pattern: re.Pattern[str]


# Killer and victim are the same actor, e.g. a crash or a fall.
ACTOR_DEATH_SELF = EntryMatcher(
    name="actor_death_self",
    event_type=Death,
    pattern=_actor_death(killer=r"(?P<killer>(?P=victim))"),
)

# Suicide is reported with the killer set to the victim or to an unrelated id.
ACTOR_DEATH_SUICIDE = EntryMatcher(
    name="actor_death_suicide",
    event_type=Death,
    pattern=_actor_death(killer=r"(?P<killer>[^']*)", damage_type="Suicide"),
)

ACTOR_DEATH = EntryMatcher(
    name="actor_death",
    event_type=Kill,
    pattern=_actor_death(killer=r"(?P<killer>[^']*)"),
)

DEFAULT_MATCHERS: tuple[EntryMatcher, ...] = (
    ACTOR_DEATH_SELF,
    ACTOR_DEATH_SUICIDE,
    ACTOR_DEATH,
)

"""Log entry parsing for killmonitor."""

from killmonitor.parsing.models import CombatEvent, Death, EventKind, Kill, ParsedEvent, Unrecognized
from killmonitor.parsing.parser import parse_line, parse_text, parse_timestamp
from killmonitor.parsing.patterns import DEFAULT_MATCHERS, EntryMatcher

__all__ = [
    "CombatEvent",
    "DEFAULT_MATCHERS",
    "Death",
    "EntryMatcher",
    "EventKind",
    "Kill",
    "ParsedEvent",
    "Unrecognized",
    "parse_line",
    "parse_text",
    "parse_timestamp",
]

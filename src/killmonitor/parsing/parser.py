"""Line-to-event parsing.

``parse_line`` is a pure function: it looks at one line of text and returns
exactly one event. Lines that do not match, or match with unusable captures,
come back as ``Unrecognized``; the parser never raises on log content.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from datetime import UTC, datetime

from killmonitor.monitoring.models import RawLine

from .models import ParsedEvent, Unrecognized
from .patterns import ACTOR_DEATH_MARKER, DEFAULT_MATCHERS, EntryMatcher

logger = logging.getLogger(__name__)


def parse_timestamp(value: str) -> datetime | None:
    """Parse an ISO 8601 log timestamp such as ``2025-04-25T18:02:17.301Z``.

    Returns:
        A timezone-aware datetime (naive values are taken as UTC), or None if
        the value is not a valid timestamp.
    """
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _build_event(matcher: EntryMatcher, match: re.Match[str]) -> ParsedEvent:
    groups = match.groupdict()

    timestamp = parse_timestamp(groups["timestamp"])
    if timestamp is None:
        return Unrecognized(reason=f"{matcher.name}: bad timestamp {groups['timestamp']!r}")

    killer = (groups.get("killer") or "").strip()
    victim = (groups.get("victim") or "").strip()
    if not killer or not victim:
        return Unrecognized(reason=f"{matcher.name}: missing actor name")

    damage_type = (groups.get("damage_type") or "").strip()
    weapon = (groups.get("weapon") or "").strip() or damage_type
    if not weapon:
        return Unrecognized(reason=f"{matcher.name}: missing weapon and damage type")

    return matcher.event_type(
        timestamp=timestamp,
        killer=killer,
        victim=victim,
        weapon=weapon,
        zone=(groups.get("zone") or "").strip() or None,
        weapon_class=(groups.get("weapon_class") or "").strip() or None,
        damage_type=damage_type or None,
        matcher=matcher.name,
    )


def parse_text(text: str, matchers: Sequence[EntryMatcher] = DEFAULT_MATCHERS) -> ParsedEvent:
    """Parse a single line of log text.

    Args:
        text: Line content without terminator.
        matchers: Ordered entry formats; the first match wins.

    Returns:
        Kill, Death or Unrecognized.
    """
    if ACTOR_DEATH_MARKER not in text:
        return Unrecognized()

    for matcher in matchers:
        match = matcher.pattern.search(text)
        if match is None:
            continue
        event = _build_event(matcher, match)
        if isinstance(event, Unrecognized):
            logger.debug(f"Degraded actor death line: {event.reason}")
        return event

    logger.debug(f"Actor death line matched no known format: {text[:200]}")
    return Unrecognized(reason="unknown actor death format")


def parse_line(line: RawLine, matchers: Sequence[EntryMatcher] = DEFAULT_MATCHERS) -> ParsedEvent:
    """Parse a RawLine; see ``parse_text``."""
    return parse_text(line.text, matchers)

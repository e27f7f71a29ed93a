"""Correlate parsed events with the monitored player."""

from __future__ import annotations

import logging

from killmonitor.monitoring.models import RawLine
from killmonitor.parsing.models import CombatEvent, ParsedEvent, Unrecognized

from .models import Classification, MonitorSession, MonitorTarget, SessionEvent

logger = logging.getLogger(__name__)


def classify(event: CombatEvent, target: MonitorTarget) -> Classification:
    """Classify an event relative to the monitored player.

    The victim is checked first, so an entry where the player is both killer
    and victim counts as a death.
    """
    if target.is_self(event.victim):
        return Classification.SELF_DIED
    if target.is_self(event.killer):
        return Classification.SELF_KILLED
    return Classification.OTHER


def track(session: MonitorSession, line: RawLine, parsed: ParsedEvent) -> SessionEvent | None:
    """Turn a parsed line into a session event.

    Updates ``session`` in place: the dedup window, the sequence counter and
    the kill/death tallies.

    Args:
        session: Session owned by the calling scheduler.
        line: Raw line the event came from; its text is the dedup key.
        parsed: Result of parsing ``line``.

    Returns:
        The new SessionEvent, or None for unrecognized lines and repeats.
    """
    if isinstance(parsed, Unrecognized):
        return None

    if line.text in session.dedup:
        logger.debug(
            "Suppressed duplicate entry",
            extra={"session_id": session.session_id, "offset": line.start_offset},
        )
        return None
    session.dedup.add(line.text)

    classification = classify(parsed, session.target)
    event = SessionEvent(
        sequence=session.next_sequence,
        classification=classification,
        event=parsed,
        line=line,
        session_id=session.session_id,
    )
    session.next_sequence += 1

    if classification is Classification.SELF_KILLED:
        session.kill_count += 1
    elif classification is Classification.SELF_DIED:
        session.death_count += 1

    logger.debug(
        f"Event #{event.sequence}: {parsed.killer} -> {parsed.victim} ({classification.value})"
    )
    return event

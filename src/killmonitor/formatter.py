"""Human readable rendering of session events."""

from datetime import UTC

from killmonitor.session.models import SessionEvent

_UNKNOWN = "unknown"


def format_timestamp(value) -> str:
    """Render a timestamp as ``dd.MM.yy HH:mm:ss:SSS UTC``."""
    value = value.astimezone(UTC)
    return f"{value:%d.%m.%y %H:%M:%S}:{value.microsecond // 1000:03d} UTC"


def format_event(event: SessionEvent) -> str:
    """Render an event as a block of ``Label = value`` lines.

    Example:
        Kill Date = 25.04.25 18:02:17:301 UTC
        Killed Player = Alice
        Zone = AEGS_Gladius_2984839923201
        Killer = Bob
        Used Method/Weapon = KLWE_LaserRepeater_S3
        Class = unknown
        Damage Type = Ballistic
    """
    combat = event.event
    rows = [
        ("Kill Date", format_timestamp(combat.timestamp)),
        ("Killed Player", combat.victim),
        ("Zone", combat.zone or _UNKNOWN),
        ("Killer", combat.killer),
        ("Used Method/Weapon", combat.weapon),
        ("Class", combat.weapon_class or _UNKNOWN),
        ("Damage Type", combat.damage_type or _UNKNOWN),
    ]
    return "\n".join(f"{label} = {value}" for label, value in rows)


def format_summary(event: SessionEvent) -> str:
    """One-line rendering used for console output."""
    combat = event.event
    return (
        f"#{event.sequence} [{event.classification.value}] "
        f"{combat.killer} -> {combat.victim} ({combat.weapon})"
    )

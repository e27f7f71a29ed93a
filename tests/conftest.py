"""Shared fixtures for killmonitor tests."""

from pathlib import Path

import pytest

from killmonitor.config import MonitorConfig
from killmonitor.session.models import MonitorTarget

PLAYER = "Alice"


def actor_death_line(
    victim: str,
    killer: str,
    weapon: str | None = "KLWE_LaserRepeater_S3_2984839923407",
    damage_type: str = "Ballistic",
    timestamp: str = "2025-04-25T18:02:17.301Z",
    zone: str | None = "AEGS_Gladius_2984839923201",
    weapon_class: str | None = "unknown",
) -> str:
    """Build an ``<Actor Death>`` line as the game writes it (no terminator)."""
    line = f"<{timestamp}> [Notice] <Actor Death> CActor::Kill: '{victim}' [201996731201]"
    if zone is not None:
        line += f" in zone '{zone}'"
    line += f" killed by '{killer}' [202000000001]"
    if weapon is not None:
        line += f" using '{weapon}'"
        if weapon_class is not None:
            line += f" [Class {weapon_class}]"
    line += (
        f" with damage type '{damage_type}' from direction x: 0.1, y: 0.2, z: 0.3"
        " [Team_ActorTech][Actor]"
    )
    return line


@pytest.fixture
def make_line():
    """Factory for actor death lines."""
    return actor_death_line


@pytest.fixture
def game_log(tmp_path: Path) -> Path:
    """Create an empty Game.log."""
    log_file = tmp_path / "Game.log"
    log_file.write_bytes(b"")
    return log_file


@pytest.fixture
def target(game_log: Path) -> MonitorTarget:
    """Monitor target for Alice on the temporary Game.log."""
    return MonitorTarget.create(game_log, PLAYER)


@pytest.fixture
def fast_config(tmp_path: Path) -> MonitorConfig:
    """Config with a short poll interval for scheduler tests."""
    return MonitorConfig(
        poll_interval_seconds=0.02,
        stop_timeout_seconds=2.0,
        max_missing_polls=5,
        max_permission_denied_polls=3,
        log_dir=str(tmp_path / "logs"),
        record_dir=str(tmp_path / "events"),
    )


def append(path: Path, data: str | bytes) -> None:
    """Append text or bytes to a file."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    with open(path, "ab") as f:
        f.write(data)


@pytest.fixture
def append_to():
    """Appends to a file the way the game does."""
    return append

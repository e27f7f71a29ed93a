"""Configuration for the kill monitor.

Settings come from three layers, later ones winning: dataclass defaults, an
optional YAML file, and ``KILLMONITOR_*`` environment variables.
"""

from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass, fields, replace
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

ENV_PREFIX = "KILLMONITOR_"
DEFAULT_CONFIG_PATH = Path("~/.killmonitor/config.yaml")
DEFAULT_INSTALL_ROOT = Path("C:/Program Files/Roberts Space Industries")


class ChannelType(str, Enum):
    """Game release channel; each installs its own ``Game.log``."""

    LIVE = "LIVE"
    PTU = "PTU"
    EPTU = "EPTU"
    HOTFIX = "HOTFIX"
    TECH_PREVIEW = "TECH-PREVIEW"


def default_log_path(
    channel: ChannelType | str = ChannelType.LIVE,
    install_root: str | Path = DEFAULT_INSTALL_ROOT,
) -> Path:
    """Return the usual ``Game.log`` location for a release channel.

    Args:
        channel: Release channel, as enum or its string value.
        install_root: Directory containing the ``StarCitizen`` folder.

    Raises:
        ValueError: If ``channel`` is not a known channel.
    """
    channel = ChannelType(channel)
    return Path(install_root) / "StarCitizen" / channel.value / "Game.log"


@dataclass
class MonitorConfig:
    """Configuration for the poll scheduler and its consumers.

    Attributes:
        poll_interval_seconds: Seconds between polls (default: 0.5).
        dedup_window_size: Recent lines remembered for duplicate suppression (default: 512).
        max_read_bytes: Maximum bytes read per poll (default: 1 MiB).
        max_line_bytes: Longest unterminated line buffered across polls (default: 64 KiB).
        max_missing_polls: Consecutive polls without a file before giving up; 0 never gives up (default: 120).
        max_permission_denied_polls: Consecutive permission failures before giving up (default: 10).
        read_existing: Process content already in the file at start (default: True).
        stop_timeout_seconds: How long stop() waits for the current poll (default: 5.0).
        log_dir: Directory for the application's own logs.
        log_level: Console log level (default: INFO).
        record_events: Append delivered events to a JSON lines file (default: False).
        record_dir: Directory for recorded events.
        show_all: Also show events involving NPCs or other players (default: False).
        killer_mode: Show kills made by the monitored player (default: False).
        log_file: Game log to monitor; empty means the default path for ``channel``.
        player_name: Name of the monitored player.
        channel: Release channel used to locate the default log (default: LIVE).
    """

    poll_interval_seconds: float = 0.5
    dedup_window_size: int = 512
    max_read_bytes: int = 1024 * 1024
    max_line_bytes: int = 64 * 1024
    max_missing_polls: int = 120
    max_permission_denied_polls: int = 10
    read_existing: bool = True
    stop_timeout_seconds: float = 5.0
    log_dir: str = "~/.killmonitor/logs"
    log_level: str = "INFO"
    record_events: bool = False
    record_dir: str = "~/.killmonitor/events"
    show_all: bool = False
    killer_mode: bool = False
    log_file: str = ""
    player_name: str = ""
    channel: str = ChannelType.LIVE.value

    def validate(self) -> MonitorConfig:
        """Check value ranges.

        Returns:
            self, to allow chaining.

        Raises:
            ValueError: If a value is out of range.
        """
        if self.poll_interval_seconds <= 0:
            raise ValueError("poll_interval_seconds must be positive")
        if self.stop_timeout_seconds <= 0:
            raise ValueError("stop_timeout_seconds must be positive")
        for name in ("dedup_window_size", "max_read_bytes", "max_line_bytes", "max_permission_denied_polls"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        if self.max_missing_polls < 0:
            raise ValueError("max_missing_polls must be >= 0")
        if self.log_level.upper() not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level: {self.log_level}")
        if self.channel.upper() not in {c.value for c in ChannelType}:
            raise ValueError(f"Unknown release channel: {self.channel}")
        return self

    def with_overrides(self, **overrides: Any) -> MonitorConfig:
        """Return a copy with the given non-None values replaced."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **changes).validate()

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _coerce(name: str, raw: Any, default: Any) -> Any:
    """Coerce a YAML or environment value to the type of the field default."""
    if isinstance(default, bool):
        if isinstance(raw, bool):
            return raw
        text = str(raw).strip().lower()
        if text in ("1", "true", "yes", "on"):
            return True
        if text in ("0", "false", "no", "off"):
            return False
        raise ValueError(f"Invalid boolean for {name}: {raw!r}")
    if isinstance(default, int):
        try:
            return int(raw)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid integer for {name}: {raw!r}") from e
    if isinstance(default, float):
        try:
            return float(raw)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid number for {name}: {raw!r}") from e
    return str(raw)


def _apply(
    config: MonitorConfig, values: dict[str, Any], source: str, strict: bool = True
) -> MonitorConfig:
    defaults = {f.name: getattr(config, f.name) for f in fields(config)}
    unknown = set(values) - set(defaults)
    if unknown:
        if strict:
            raise ValueError(f"Unknown configuration keys in {source}: {', '.join(sorted(unknown))}")
        logger.warning(f"Ignoring unknown settings from {source}: {', '.join(sorted(unknown))}")
        values = {key: value for key, value in values.items() if key in defaults}
    changes = {key: _coerce(key, value, defaults[key]) for key, value in values.items()}
    return replace(config, **changes)


def load_config(
    path: str | Path | None = None,
    environ: dict[str, str] | None = None,
) -> MonitorConfig:
    """Load configuration from YAML and the environment.

    Args:
        path: YAML file to read. When None, ``~/.killmonitor/config.yaml`` is
            used if it exists.
        environ: Environment mapping (defaults to ``os.environ``).

    Returns:
        Validated MonitorConfig.

    Raises:
        FileNotFoundError: If an explicitly given file does not exist.
        ValueError: If the YAML cannot be parsed or holds invalid values.
    """
    config = MonitorConfig()

    if path is None:
        candidate = DEFAULT_CONFIG_PATH.expanduser()
        config_path = candidate if candidate.exists() else None
    else:
        config_path = Path(path).expanduser()
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

    if config_path is not None:
        try:
            with open(config_path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Failed to parse configuration YAML: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"Configuration file {config_path} must contain a mapping")
        config = _apply(config, data, str(config_path))
        logger.debug(f"Loaded configuration from {config_path}")

    env = os.environ if environ is None else environ
    env_values = {
        key[len(ENV_PREFIX):].lower(): value
        for key, value in env.items()
        if key.startswith(ENV_PREFIX)
    }
    if env_values:
        config = _apply(config, env_values, "environment", strict=False)

    return config.validate()


def resolve_log_path(config: MonitorConfig, install_root: str | Path = DEFAULT_INSTALL_ROOT) -> Path:
    """Return the configured log file, or the default one for its channel."""
    if config.log_file:
        return Path(config.log_file).expanduser()
    return default_log_path(config.channel.upper(), install_root)

"""Logging setup for killmonitor.

Console output stays human readable; the log file gets one JSON object per
line with any ``extra`` fields folded in.
"""

import json
import logging
import logging.handlers
from pathlib import Path

ROOT_LOGGER = "killmonitor"

# Attributes every LogRecord carries; anything else came in through ``extra``.
_STANDARD_ATTRS = frozenset(
    [
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "message",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "thread",
        "threadName",
        "exc_info",
        "exc_text",
        "stack_info",
        "asctime",
        "taskName",
    ]
)


def collect_extras(record: logging.LogRecord) -> dict:
    """Return the JSON-serializable ``extra`` fields attached to a record."""
    extras = {}
    for key, value in record.__dict__.items():
        if key in _STANDARD_ATTRS:
            continue
        try:
            json.dumps(value)  # Ensure serializable
            extras[key] = value
        except (TypeError, ValueError):
            extras[key] = str(value)
    return extras


class JsonLineFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record):
        log_obj = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        log_obj.update(collect_extras(record))
        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_obj)


class LoggingManager:
    """Configures the ``killmonitor`` logger hierarchy."""

    def __init__(
        self,
        log_dir: str | Path | None = "~/.killmonitor/logs",
        log_level: str = "INFO",
        console: bool = True,
    ):
        """Initialize logging manager.

        Args:
            log_dir: Directory for the rotating log file; None disables file logging
            log_level: Console log level
            console: Whether to log to stderr
        """
        self.log_level = getattr(logging, log_level.upper())
        self.log_dir = Path(log_dir).expanduser() if log_dir is not None else None
        self.log_file: Path | None = None

        if self.log_dir is not None:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            self.log_file = self.log_dir / "killmonitor.log"

        self.logger = self._setup_logger(console)

        # Modules log through logging.getLogger(__name__); let their records
        # reach our handlers even if something configured them earlier.
        for name in list(logging.Logger.manager.loggerDict.keys()):
            if name.startswith(f"{ROOT_LOGGER}."):
                child_logger = logging.getLogger(name)
                if isinstance(child_logger, logging.Logger):  # Skip PlaceHolders
                    child_logger.setLevel(logging.NOTSET)
                    child_logger.propagate = True
                    child_logger.handlers.clear()

    def _setup_logger(self, console: bool) -> logging.Logger:
        logger = logging.getLogger(ROOT_LOGGER)
        logger.setLevel(logging.DEBUG)
        logger.propagate = False  # Don't propagate to root - we have our own handlers

        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()

        if console:
            console_handler = logging.StreamHandler()
            console_handler.setLevel(self.log_level)
            console_handler.setFormatter(
                logging.Formatter(
                    "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                    datefmt="%Y-%m-%d %H:%M:%S",
                )
            )
            logger.addHandler(console_handler)

        if self.log_file is not None:
            file_handler = logging.handlers.RotatingFileHandler(
                self.log_file,
                maxBytes=5 * 1024 * 1024,  # 5MB
                backupCount=3,
                encoding="utf-8",
            )
            file_handler.setLevel(logging.DEBUG)  # Capture everything to file
            file_handler.setFormatter(JsonLineFormatter())
            logger.addHandler(file_handler)

        if not logger.handlers:
            logger.addHandler(logging.NullHandler())

        return logger

    def get_logger(self, name: str | None = None) -> logging.Logger:
        """Return the root killmonitor logger or one of its children."""
        if not name:
            return self.logger
        return logging.getLogger(f"{ROOT_LOGGER}.{name}")

    def shutdown(self) -> None:
        """Flush and detach all handlers."""
        for handler in list(self.logger.handlers):
            handler.flush()
            handler.close()
            self.logger.removeHandler(handler)

"""Tests for LoggingManager."""

import json
import logging
from pathlib import Path

import pytest

from killmonitor.logging_manager import ROOT_LOGGER, JsonLineFormatter, LoggingManager, collect_extras


@pytest.fixture
def manager(tmp_path: Path):
    manager = LoggingManager(log_dir=tmp_path / "logs", log_level="WARNING", console=False)
    yield manager
    manager.shutdown()


class TestLoggingManager:
    def test_creates_log_file(self, manager: LoggingManager, tmp_path: Path) -> None:
        assert manager.log_file == tmp_path / "logs" / "killmonitor.log"

    def test_child_logger_writes_json(self, manager: LoggingManager) -> None:
        """Test that module loggers reach the JSON file with extra fields."""
        logging.getLogger(f"{ROOT_LOGGER}.scheduler").info("poll done", extra={"session_id": "s1"})
        for handler in manager.logger.handlers:
            handler.flush()

        record = json.loads(manager.log_file.read_text().splitlines()[-1])
        assert record["message"] == "poll done"
        assert record["logger"] == "killmonitor.scheduler"
        assert record["session_id"] == "s1"
        assert record["level"] == "INFO"

    def test_get_logger(self, manager: LoggingManager) -> None:
        assert manager.get_logger() is manager.logger
        assert manager.get_logger("cli").name == "killmonitor.cli"

    def test_without_file_or_console(self) -> None:
        manager = LoggingManager(log_dir=None, console=False)
        try:
            assert manager.log_file is None
            assert any(isinstance(h, logging.NullHandler) for h in manager.logger.handlers)
        finally:
            manager.shutdown()

    def test_shutdown_removes_handlers(self, tmp_path: Path) -> None:
        manager = LoggingManager(log_dir=tmp_path, console=True)
        manager.shutdown()
        assert manager.logger.handlers == []


class TestJsonLineFormatter:
    def test_unserializable_extra(self) -> None:
        record = logging.LogRecord("killmonitor", logging.INFO, __file__, 1, "msg", None, None)
        record.path = Path("/tmp/Game.log")

        assert collect_extras(record) == {"path": str(Path("/tmp/Game.log"))}
        assert json.loads(JsonLineFormatter().format(record))["path"] == str(Path("/tmp/Game.log"))

    def test_exception_included(self) -> None:
        try:
            raise ValueError("bad")
        except ValueError:
            import sys

            record = logging.LogRecord("killmonitor", logging.ERROR, __file__, 1, "failed", None, sys.exc_info())

        assert "ValueError: bad" in json.loads(JsonLineFormatter().format(record))["exception"]

"""Tests for the file cursor."""

import os
from pathlib import Path

import pytest

from killmonitor.monitoring.file_cursor import advance, read_range, stat_file, stat_from_result
from killmonitor.monitoring.models import CursorStatus, FileIdentity, FilePosition, FileStat

IDENTITY = FileIdentity(device=1, inode=100)
OTHER_IDENTITY = FileIdentity(device=1, inode=200)


class TestAdvance:
    """Tests for the pure cursor step."""

    def test_unchanged_when_size_equals_offset(self) -> None:
        """Test that nothing is read when the file did not grow."""
        update = advance(FilePosition(IDENTITY, 50), FileStat(IDENTITY, 50), 1024)
        assert update.status is CursorStatus.UNCHANGED
        assert update.length == 0

    def test_appended_range(self) -> None:
        """Test that growth yields the appended byte range."""
        update = advance(FilePosition(IDENTITY, 50), FileStat(IDENTITY, 80), 1024)
        assert update.status is CursorStatus.APPENDED
        assert (update.from_offset, update.to_offset) == (50, 80)
        assert update.length == 30

    def test_appended_range_is_capped(self) -> None:
        """Test that a single step never exceeds max_read_bytes."""
        update = advance(FilePosition(IDENTITY, 0), FileStat(IDENTITY, 10_000), 4096)
        assert update.status is CursorStatus.APPENDED
        assert update.to_offset == 4096

    def test_identity_change_is_rotation(self) -> None:
        """Test that a replaced file is reported even if it is larger."""
        update = advance(FilePosition(IDENTITY, 50), FileStat(OTHER_IDENTITY, 500), 1024)
        assert update.status is CursorStatus.ROTATED
        assert update.new_identity == OTHER_IDENTITY

    def test_truncation_is_rotation(self) -> None:
        """Test that a file shorter than our offset restarts reading."""
        update = advance(FilePosition(IDENTITY, 50), FileStat(IDENTITY, 10), 1024)
        assert update.status is CursorStatus.ROTATED
        assert update.new_identity == IDENTITY

    def test_unbound_position_reads_from_offset(self) -> None:
        """Test that a primed position without identity is honoured."""
        update = advance(FilePosition(None, 20), FileStat(IDENTITY, 30), 1024)
        assert update.status is CursorStatus.APPENDED
        assert update.from_offset == 20

    def test_invalid_max_read_bytes(self) -> None:
        """Test that a non-positive read limit is rejected."""
        with pytest.raises(ValueError):
            advance(FilePosition(), FileStat(IDENTITY, 10), 0)

    def test_negative_offset_rejected(self) -> None:
        """Test that positions cannot go below zero."""
        with pytest.raises(ValueError):
            FilePosition(IDENTITY, -1)


class TestFileAccess:
    """Tests for stat and range reads against real files."""

    @pytest.mark.asyncio
    async def test_stat_existing_file(self, tmp_path: Path) -> None:
        """Test that stat reports size and identity."""
        log_file = tmp_path / "Game.log"
        log_file.write_bytes(b"hello\n")

        file_stat = await stat_file(log_file)

        assert file_stat is not None
        assert file_stat.size == 6
        assert file_stat.is_regular
        assert file_stat.identity == FileIdentity.from_stat(os.stat(log_file))

    @pytest.mark.asyncio
    async def test_stat_missing_file(self, tmp_path: Path) -> None:
        """Test that a missing file yields None rather than an error."""
        assert await stat_file(tmp_path / "missing.log") is None

    @pytest.mark.asyncio
    async def test_stat_directory_is_not_regular(self, tmp_path: Path) -> None:
        """Test that directories are flagged as non-regular."""
        file_stat = await stat_file(tmp_path)
        assert file_stat is not None
        assert not file_stat.is_regular

    def test_stat_from_result(self, tmp_path: Path) -> None:
        """Test conversion of os.stat results."""
        log_file = tmp_path / "Game.log"
        log_file.write_bytes(b"abc")
        assert stat_from_result(os.stat(log_file)).size == 3

    @pytest.mark.asyncio
    async def test_read_range(self, tmp_path: Path) -> None:
        """Test reading a byte range."""
        log_file = tmp_path / "Game.log"
        log_file.write_bytes(b"0123456789")
        identity = FileIdentity.from_stat(os.stat(log_file))

        assert await read_range(log_file, 2, 6, identity) == b"2345"

    @pytest.mark.asyncio
    async def test_read_range_identity_mismatch(self, tmp_path: Path) -> None:
        """Test that a file swapped after stat is not read."""
        log_file = tmp_path / "Game.log"
        log_file.write_bytes(b"0123456789")

        assert await read_range(log_file, 0, 5, OTHER_IDENTITY) is None

    @pytest.mark.asyncio
    async def test_read_range_missing_file(self, tmp_path: Path) -> None:
        """Test that a vanished file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            await read_range(tmp_path / "missing.log", 0, 5, None)

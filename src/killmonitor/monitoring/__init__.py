"""Log tailing for killmonitor.

This package turns a growing, occasionally rotated log file into a stream of
complete lines. It is made of two stateless pieces that the poll scheduler
drives with state it owns:

Key Components:
    - models: File identity, read positions, cursor updates and raw lines
    - file_cursor: Rotation/truncation detection and bounded range reads
    - line_reader: Byte-level line splitting with a carried-over partial tail

Example:
    >>> from killmonitor.monitoring import FilePosition, PendingTail, advance, read_lines
    >>> update = advance(FilePosition(), file_stat, max_read_bytes=65536)
    >>> batch = read_lines(PendingTail(), chunk, update.from_offset)
"""

from __future__ import annotations

from .file_cursor import advance, read_range, stat_file, stat_from_result
from .line_reader import iter_lines, read_lines
from .models import (
    CursorStatus,
    CursorUpdate,
    FileIdentity,
    FilePosition,
    FileStat,
    LineBatch,
    PendingTail,
    RawLine,
)

__all__ = [
    "CursorStatus",
    "CursorUpdate",
    "FileIdentity",
    "FilePosition",
    "FileStat",
    "LineBatch",
    "PendingTail",
    "RawLine",
    "advance",
    "iter_lines",
    "read_lines",
    "read_range",
    "stat_file",
    "stat_from_result",
]

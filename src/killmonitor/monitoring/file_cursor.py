"""Read-position tracking with rotation detection.

The cursor compares the position stored in the session with the metadata of
the file currently at the target path. It never opens the file itself; the
caller reads the byte range it hands back.
"""

from __future__ import annotations

import logging
import os
import stat
from pathlib import Path

import aiofiles.os

from .models import CursorStatus, CursorUpdate, FileIdentity, FilePosition, FileStat

logger = logging.getLogger(__name__)


def stat_from_result(stat_result: os.stat_result) -> FileStat:
    """Convert an ``os.stat_result`` into a FileStat."""
    return FileStat(
        identity=FileIdentity.from_stat(stat_result),
        size=stat_result.st_size,
        is_regular=stat.S_ISREG(stat_result.st_mode),
    )


async def stat_file(path: str | Path) -> FileStat | None:
    """Stat the file at ``path`` without blocking the event loop.

    Args:
        path: Path of the log file.

    Returns:
        FileStat for the file, or None if nothing exists at the path.

    Raises:
        PermissionError: If the file cannot be inspected.
        OSError: For any other file-system failure.
    """
    try:
        result = await aiofiles.os.stat(path)
    except FileNotFoundError:
        return None
    return stat_from_result(result)


def advance(position: FilePosition, file_stat: FileStat, max_read_bytes: int) -> CursorUpdate:
    """Work out what to read next.

    Args:
        position: Position stored in the session.
        file_stat: Fresh metadata of the file at the target path.
        max_read_bytes: Upper bound on the byte range returned for one poll.

    Returns:
        UNCHANGED when there is nothing to read, APPENDED with the byte range
        ``[from_offset, to_offset)`` otherwise, or ROTATED when the file was
        replaced (identity changed) or truncated (size below our offset).
    """
    if max_read_bytes <= 0:
        raise ValueError(f"max_read_bytes must be positive, got {max_read_bytes}")

    if position.identity is not None and position.identity != file_stat.identity:
        logger.info(
            "Log file identity changed",
            extra={
                "old_identity": str(position.identity),
                "new_identity": str(file_stat.identity),
            },
        )
        return CursorUpdate(status=CursorStatus.ROTATED, new_identity=file_stat.identity)

    if file_stat.size < position.byte_offset:
        logger.info(
            f"Log file truncated (offset {position.byte_offset} > size {file_stat.size})"
        )
        return CursorUpdate(status=CursorStatus.ROTATED, new_identity=file_stat.identity)

    if file_stat.size == position.byte_offset:
        return CursorUpdate(status=CursorStatus.UNCHANGED)

    to_offset = min(file_stat.size, position.byte_offset + max_read_bytes)
    return CursorUpdate(
        status=CursorStatus.APPENDED,
        from_offset=position.byte_offset,
        to_offset=to_offset,
    )


async def read_range(
    path: str | Path,
    from_offset: int,
    to_offset: int,
    expected_identity: FileIdentity | None,
) -> bytes | None:
    """Read ``[from_offset, to_offset)`` from the file at ``path``.

    The handle is opened fresh for every call and checked against the identity
    the range was computed for, so a file swapped between stat and open is
    never read with a stale offset.

    Args:
        path: Path of the log file.
        from_offset: First byte to read.
        to_offset: End of the range, exclusive.
        expected_identity: Identity the range belongs to.

    Returns:
        The bytes read (possibly fewer than requested if the file shrank in the
        meantime), or None if a different file is now at the path.
    """
    async with aiofiles.open(path, "rb") as f:
        opened = FileIdentity.from_stat(os.fstat(f.fileno()))
        if expected_identity is not None and opened != expected_identity:
            logger.debug(f"File at {path} changed between stat and open, deferring read")
            return None
        await f.seek(from_offset)
        return await f.read(to_offset - from_offset)

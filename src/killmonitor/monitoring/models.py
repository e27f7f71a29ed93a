"""Data models for log tailing.

This module defines the structures that describe where we are in a log file
and what came out of the last read: file identity, read position, cursor
updates, complete lines and the buffered partial tail.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True)
class FileIdentity:
    """Stable identifier of an on-disk file.

    A path alone cannot tell two files apart when a log is rotated, because the
    replacement file lives at the same path. The (device, inode) pair can.

    Attributes:
        device: Device number the file lives on (``st_dev``).
        inode: Inode or file index number (``st_ino``).
    """

    device: int
    inode: int

    @classmethod
    def from_stat(cls, stat_result: os.stat_result) -> FileIdentity:
        """Build an identity from an ``os.stat``/``os.fstat`` result."""
        return cls(device=stat_result.st_dev, inode=stat_result.st_ino)


@dataclass(frozen=True)
class FileStat:
    """Metadata view of the target file taken once per poll.

    Attributes:
        identity: Identity of the file currently at the path.
        size: File length in bytes.
        is_regular: False when the path now points at a directory, FIFO, etc.
    """

    identity: FileIdentity
    size: int
    is_regular: bool = True


@dataclass(frozen=True)
class FilePosition:
    """Read position within one physical file.

    Attributes:
        identity: Identity of the file the offset belongs to. None when the
            position was primed externally and has not been bound to a file yet.
        byte_offset: Number of bytes already consumed from the start of the file.
    """

    identity: FileIdentity | None = None
    byte_offset: int = 0

    def __post_init__(self) -> None:
        if self.byte_offset < 0:
            raise ValueError(f"byte_offset must be >= 0, got {self.byte_offset}")


class CursorStatus(Enum):
    """Outcome of comparing a stored position with fresh file metadata.

    Attributes:
        UNCHANGED: Nothing new to read.
        APPENDED: Bytes were appended after the stored offset.
        ROTATED: The file was replaced or truncated; reading restarts at 0.
    """

    UNCHANGED = "unchanged"
    APPENDED = "appended"
    ROTATED = "rotated"


@dataclass(frozen=True)
class CursorUpdate:
    """Result of one cursor step.

    Attributes:
        status: What happened to the file since the last poll.
        from_offset: Start of the byte range to read (APPENDED only).
        to_offset: End of the byte range to read, exclusive (APPENDED only).
        new_identity: Identity of the replacement file (ROTATED only).
    """

    status: CursorStatus
    from_offset: int = 0
    to_offset: int = 0
    new_identity: FileIdentity | None = None

    @property
    def length(self) -> int:
        return self.to_offset - self.from_offset


@dataclass(frozen=True)
class RawLine:
    """A single complete line read from the log.

    Attributes:
        text: Decoded line content without its terminator.
        start_offset: Byte offset of the first byte of the line.
        end_offset: Byte offset just past the line terminator.
    """

    text: str
    start_offset: int
    end_offset: int


@dataclass(frozen=True)
class PendingTail:
    """Bytes of an unterminated line carried over to the next poll.

    Attributes:
        data: Raw bytes seen so far, possibly ending inside a multi-byte
            character.
        start_offset: File offset of ``data[0]``.
    """

    data: bytes = b""
    start_offset: int = 0

    def __bool__(self) -> bool:
        return bool(self.data)


@dataclass(frozen=True)
class LineBatch:
    """Complete lines extracted from one read plus the new partial tail."""

    lines: tuple[RawLine, ...]
    tail: PendingTail
    dropped_bytes: int = 0

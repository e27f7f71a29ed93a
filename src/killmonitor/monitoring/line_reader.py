"""Turn appended bytes into complete lines.

Lines are split on raw bytes before decoding. A newline byte can never occur
inside a multi-byte UTF-8 sequence, so a character cut in half at the end of a
read always stays in the pending tail and is decoded once the rest arrives.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator

from .models import LineBatch, PendingTail, RawLine

logger = logging.getLogger(__name__)

LINE_TERMINATOR = b"\n"


def decode_line(data: bytes) -> str:
    """Decode one complete line, dropping its terminator."""
    if data.endswith(b"\r\n"):
        data = data[:-2]
    elif data.endswith(LINE_TERMINATOR):
        data = data[:-1]
    return data.decode("utf-8", errors="replace")


def iter_lines(buffer: bytes, base_offset: int) -> Iterator[RawLine]:
    """Lazily yield the newline-terminated lines in ``buffer``.

    Any bytes after the last terminator are not yielded; callers recover them
    with ``split_tail``.

    Args:
        buffer: Bytes starting at file offset ``base_offset``.
        base_offset: File offset of ``buffer[0]``.
    """
    start = 0
    while True:
        end = buffer.find(LINE_TERMINATOR, start)
        if end == -1:
            return
        end += 1
        yield RawLine(
            text=decode_line(buffer[start:end]),
            start_offset=base_offset + start,
            end_offset=base_offset + end,
        )
        start = end


def split_tail(buffer: bytes) -> int:
    """Return the index where the unterminated tail of ``buffer`` begins."""
    return buffer.rfind(LINE_TERMINATOR) + 1


def read_lines(
    tail: PendingTail,
    chunk: bytes,
    chunk_offset: int,
    max_line_bytes: int | None = None,
) -> LineBatch:
    """Combine the previous tail with a freshly read chunk.

    Args:
        tail: Partial line left over from the previous poll.
        chunk: Bytes read from ``chunk_offset`` onwards.
        chunk_offset: File offset of ``chunk[0]``.
        max_line_bytes: Longest unterminated line kept across polls. A longer
            tail is discarded and reported via ``dropped_bytes``.

    Returns:
        LineBatch with the complete lines in file order and the new tail.
    """
    if tail and tail.start_offset + len(tail.data) != chunk_offset:
        # The tail does not join up with this chunk (the file moved under us);
        # a line built from both would be corrupt.
        logger.warning(
            f"Discarding {len(tail.data)} buffered bytes not contiguous with offset {chunk_offset}"
        )
        tail = PendingTail()

    if tail:
        buffer = tail.data + chunk
        base_offset = tail.start_offset
    else:
        buffer = chunk
        base_offset = chunk_offset

    cut = split_tail(buffer)
    lines = tuple(iter_lines(buffer[:cut], base_offset))
    rest = buffer[cut:]

    dropped = 0
    if max_line_bytes is not None and len(rest) > max_line_bytes:
        dropped = len(rest)
        logger.warning(f"Dropping unterminated line of {dropped} bytes at offset {base_offset + cut}")
        rest = b""

    new_tail = PendingTail(data=rest, start_offset=base_offset + cut) if rest else PendingTail()
    return LineBatch(lines=lines, tail=new_tail, dropped_bytes=dropped)

"""Byte-to-line framing for the scaler's line-oriented serial protocol."""

from __future__ import annotations

from typing import Iterable, Iterator

LINE_TERMINATOR = b"\n"


class LineFramer:
    """Accumulate raw link bytes and split them into complete lines.

    Lines are returned without the terminator and otherwise untouched. A partial
    line stays buffered until its terminator arrives; there is no length limit.
    """

    def __init__(self, terminator: bytes = LINE_TERMINATOR) -> None:
        if len(terminator) != 1:
            raise ValueError("Line terminator must be a single byte")
        self.terminator = terminator
        self._buffer = bytearray()

    @property
    def pending(self) -> int:
        return len(self._buffer)

    def feed(self, data: bytes) -> list[bytes]:
        if not data:
            return []
        self._buffer.extend(data)
        lines: list[bytes] = []
        start = 0
        while True:
            idx = self._buffer.find(self.terminator, start)
            if idx < 0:
                break
            lines.append(bytes(self._buffer[start:idx]))
            start = idx + 1
        if start:
            del self._buffer[:start]
        return lines

    def reset(self) -> None:
        self._buffer.clear()


def iter_lines(chunks: Iterable[bytes], framer: LineFramer | None = None) -> Iterator[bytes]:
    """Lazily yield complete lines from an iterable of byte chunks."""
    framer = framer or LineFramer()
    for chunk in chunks:
        yield from framer.feed(chunk)

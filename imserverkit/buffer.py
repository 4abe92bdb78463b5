"""Growable byte buffer with separate read and write positions."""

from __future__ import annotations

import socket


class Buffer:
    """Contiguous byte buffer laid out as prependable | readable | writable.

    Data is appended at the write position and consumed from the read
    position. When space runs out, already-consumed space at the front is
    reused before the buffer grows. Not thread-safe.
    """

    CHEAP_PREPEND = 8
    INITIAL_SIZE = 1024
    EXTRA_READ_SIZE = 65536

    def __init__(self) -> None:
        self._buf = bytearray(self.CHEAP_PREPEND + self.INITIAL_SIZE)
        self._reader = self.CHEAP_PREPEND
        self._writer = self.CHEAP_PREPEND

    def readable_bytes(self) -> int:
        """Number of bytes waiting to be read."""
        return self._writer - self._reader

    def writable_bytes(self) -> int:
        """Free space after the write position."""
        return len(self._buf) - self._writer

    def prependable_bytes(self) -> int:
        """Space in front of the read position."""
        return self._reader

    def peek(self) -> bytes:
        """Copy of the readable bytes, without consuming them."""
        return bytes(self._buf[self._reader:self._writer])

    def retrieve(self, length: int) -> None:
        """Consume ``length`` readable bytes."""
        if length < 0 or length > self.readable_bytes():
            raise ValueError(
                f"cannot retrieve {length} bytes, only {self.readable_bytes()} readable"
            )
        if length < self.readable_bytes():
            self._reader += length
        else:
            self.retrieve_all()

    def retrieve_all(self) -> None:
        """Discard all readable bytes and reset both positions."""
        self._reader = self.CHEAP_PREPEND
        self._writer = self.CHEAP_PREPEND

    def retrieve_all_as_bytes(self) -> bytes:
        """Consume and return every readable byte."""
        return self.retrieve_as_bytes(self.readable_bytes())

    def retrieve_as_bytes(self, length: int) -> bytes:
        """Consume and return ``length`` readable bytes."""
        if length < 0 or length > self.readable_bytes():
            raise ValueError(
                f"cannot retrieve {length} bytes, only {self.readable_bytes()} readable"
            )
        result = bytes(self._buf[self._reader:self._reader + length])
        self.retrieve(length)
        return result

    def append(self, data: bytes | bytearray | memoryview | str) -> None:
        """Append data, growing or compacting the buffer as needed."""
        if isinstance(data, str):
            data = data.encode("utf-8")
        length = len(data)
        self.ensure_writable_bytes(length)
        self._buf[self._writer:self._writer + length] = data
        self._writer += length

    def ensure_writable_bytes(self, length: int) -> None:
        """Make sure at least ``length`` bytes can be written."""
        if self.writable_bytes() < length:
            self._make_space(length)

    def read_socket(self, sock: socket.socket) -> int:
        """Read what is available from ``sock`` into the buffer.

        Reads up to the free space plus an extra 64 KiB in one call and
        returns the number of bytes read (0 at end of stream). Socket errors
        propagate as ``OSError``.
        """
        data = sock.recv(self.writable_bytes() + self.EXTRA_READ_SIZE)
        self.append(data)
        return len(data)

    def _make_space(self, length: int) -> None:
        if self.writable_bytes() + self.prependable_bytes() < length + self.CHEAP_PREPEND:
            self._buf.extend(bytes(self._writer + length - len(self._buf)))
        else:
            readable = self.readable_bytes()
            start = self.CHEAP_PREPEND
            self._buf[start:start + readable] = self._buf[self._reader:self._writer]
            self._reader = start
            self._writer = start + readable
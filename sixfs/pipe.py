"""A bounded in-memory pipe with separate read and write ends."""

from __future__ import annotations

import errno

PIPESIZE = 512


class PipeClosedError(BrokenPipeError):
    """Raised when a full pipe is written to after its read end has closed."""


class Pipe:
    """A ring buffer of ``size`` bytes.

    Operations never wait. Where a waiting reader or writer would sleep,
    BlockingIOError is raised instead.
    """

    def __init__(self, size=PIPESIZE):
        if size < 1:
            raise ValueError("a pipe needs room for at least one byte")
        self.size = size
        self._data = bytearray(size)
        self.nread = 0  # bytes read so far
        self.nwrite = 0  # bytes written so far
        self.read_open = True
        self.write_open = True

    def __len__(self) -> int:
        return self.nwrite - self.nread

    @property
    def closed(self) -> bool:
        """True once both ends have been closed."""
        return not (self.read_open or self.write_open)

    def write(self, data):
        """Append ``data`` and return its length.

        When the pipe fills up, PipeClosedError is raised if no reader is
        left; otherwise BlockingIOError is raised, with ``characters_written``
        giving how many bytes went in before the pipe filled.
        """
        data = bytes(data)
        for written, byte in enumerate(data):
            if self.nwrite == self.nread + self.size:
                if not self.read_open:
                    raise PipeClosedError("pipe has no reader")
                raise BlockingIOError(errno.EAGAIN, "pipe is full", written)
            self._data[self.nwrite % self.size] = byte
            self.nwrite += 1
        return len(data)

    def read(self, n):
        """Read up to ``n`` bytes.

        Returns b"" at end of file, once the pipe is empty and its write end
        closed. Raises BlockingIOError when it is empty but still open.
        """
        if self.nread == self.nwrite:
            if self.write_open:
                raise BlockingIOError(errno.EAGAIN, "pipe is empty")
            return b""
        count = max(0, min(n, len(self)))
        start = self.nread % self.size
        first = bytes(self._data[start:start + count])
        out = first + bytes(self._data[:count - len(first)])
        self.nread += count
        return out

    def close(self, writable):
        """Close the write end if ``writable`` is true, else the read end."""
        if writable:
            self.write_open = False
        else:
            self.read_open = False
"""A redo log that makes groups of block writes atomic."""

from __future__ import annotations

import struct
from contextlib import contextmanager
from typing import Iterator

from sixfs.disk import BufFlag
from sixfs.layout import BSIZE

MAXOPBLOCKS = 10

_INT = struct.Struct("<i")


class LogError(Exception):
    """Raised when a transaction breaks the log's rules."""


class Log:
    """Log of block writes; commits when the last outstanding operation ends.

    On-disk format: a header block holding a count and block numbers,
    followed by the logged copies of those blocks.
    """

    def __init__(self, cache, dev, sb, max_op_blocks=MAXOPBLOCKS):
        self.capacity = sb.nlog
        if _INT.size * (1 + self.capacity) >= BSIZE:
            raise LogError("initlog: too big logheader")
        self.cache = cache
        self.dev = dev
        self.start = sb.logstart
        self.size = sb.nlog
        self.max_op_blocks = max_op_blocks
        self.outstanding = 0
        self.committing = False
        self.blocks: list[int] = []
        self.recover()

    def _install(self) -> None:
        """Copy committed blocks from the log to their home locations."""
        for tail, home in enumerate(self.blocks):
            lbuf = self.cache.read(self.dev, self.start + tail + 1)
            dbuf = self.cache.read(self.dev, home)
            dbuf.data[:] = lbuf.data
            self.cache.write(dbuf)
            self.cache.release(lbuf)
            self.cache.release(dbuf)

    def _read_head(self) -> None:
        with self.cache.block(self.dev, self.start) as buf:
            (n,) = _INT.unpack_from(buf.data, 0)
            if not 0 <= n <= self.capacity:
                raise LogError(f"log header holds {n} blocks")
            self.blocks = [
                _INT.unpack_from(buf.data, _INT.size * (i + 1))[0] for i in range(n)
            ]

    def _write_head(self) -> None:
        """Write the in-memory header; this is the commit point."""
        with self.cache.block(self.dev, self.start) as buf:
            _INT.pack_into(buf.data, 0, len(self.blocks))
            for i, blockno in enumerate(self.blocks):
                _INT.pack_into(buf.data, _INT.size * (i + 1), blockno)
            self.cache.write(buf)

    def _write_log(self) -> None:
        """Copy modified blocks from the cache into the log."""
        for tail, home in enumerate(self.blocks):
            to = self.cache.read(self.dev, self.start + tail + 1)
            src = self.cache.read(self.dev, home)
            to.data[:] = src.data
            self.cache.write(to)
            self.cache.release(src)
            self.cache.release(to)

    def _commit(self) -> None:
        if self.blocks:
            self._write_log()
            self._write_head()
            self._install()
            self.blocks = []
            self._write_head()

    def recover(self):
        """Install any committed transaction found on disk, then clear the log."""
        self._read_head()
        self._install()
        self.blocks = []
        self._write_head()

    def begin_op(self):
        """Start a file-system operation.

        Raises LogError where the operation would have to wait: during a
        commit, or when the log might run out of space.
        """
        if self.committing:
            raise LogError("log is committing")
        needed = len(self.blocks) + (self.outstanding + 1) * self.max_op_blocks
        if needed > self.capacity:
            raise LogError("log space exhausted")
        self.outstanding += 1

    def end_op(self):
        """End an operation; the last outstanding one commits the log."""
        if self.outstanding < 1:
            raise LogError("end_op without begin_op")
        self.outstanding -= 1
        if self.committing:
            raise LogError("log.committing")
        if self.outstanding == 0:
            self.committing = True
            try:
                self._commit()
            finally:
                self.committing = False

    def log_write(self, buf):
        """Record a modified buffer in the current transaction and pin it."""
        if len(self.blocks) >= self.capacity or len(self.blocks) >= self.size - 1:
            raise LogError("too big a transaction")
        if self.outstanding < 1:
            raise LogError("log_write outside of trans")
        if buf.blockno not in self.blocks:
            self.blocks.append(buf.blockno)
        buf.flags |= BufFlag.DIRTY

    @contextmanager
    def transaction(self) -> Iterator[Log]:
        """Run a with-block as one file-system operation."""
        self.begin_op()
        try:
            yield self
        finally:
            self.end_op()
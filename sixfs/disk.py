"""An in-memory disk and the buffer cache that sits on top of it."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import IntFlag
from typing import Iterator

from sixfs.layout import BSIZE

NBUF = 30


class DiskError(Exception):
    """Raised when a disk or buffer-cache request cannot be carried out."""


class BufFlag(IntFlag):
    NONE = 0
    VALID = 1  # data has been read from disk
    DIRTY = 2  # data has been modified and must be written


@dataclass(eq=False)
class Buffer:
    """A cached copy of one disk block."""

    dev: int = 0
    blockno: int = 0
    flags: BufFlag = BufFlag.NONE
    refcnt: int = 0
    locked: bool = False
    data: bytearray = field(default_factory=lambda: bytearray(BSIZE))


class MemoryDisk:
    """A disk whose blocks live in a bytearray."""

    def __init__(self, data, dev=1):
        self.data = bytearray(data)
        self.dev = dev
        self.size = len(self.data) // BSIZE

    def _offset(self, blockno: int) -> int:
        if not 0 <= blockno < self.size:
            raise DiskError("iderw: block out of range")
        return blockno * BSIZE

    def read_block(self, blockno):
        off = self._offset(blockno)
        return bytes(self.data[off:off + BSIZE])

    def write_block(self, blockno, data):
        if len(data) != BSIZE:
            raise DiskError(f"a block holds {BSIZE} bytes, got {len(data)}")
        off = self._offset(blockno)
        self.data[off:off + BSIZE] = data

    def sync(self, buf):
        """Write a dirty buffer to disk, or fill an invalid one from disk."""
        if not buf.locked:
            raise DiskError("iderw: buf not locked")
        if buf.flags & (BufFlag.VALID | BufFlag.DIRTY) == BufFlag.VALID:
            raise DiskError("iderw: nothing to do")
        if buf.dev != self.dev:
            raise DiskError(f"iderw: request not for disk {self.dev}")
        if buf.flags & BufFlag.DIRTY:
            buf.flags &= ~BufFlag.DIRTY
            self.write_block(buf.blockno, bytes(buf.data))
        else:
            buf.data[:] = self.read_block(buf.blockno)
        buf.flags |= BufFlag.VALID


class BufferCache:
    """A fixed set of buffers kept in most-recently-used order."""

    def __init__(self, disk, nbuf=NBUF):
        if nbuf < 1:
            raise ValueError("the cache needs at least one buffer")
        self.disk = disk
        self._mru = [Buffer() for _ in range(nbuf)]

    def _get(self, dev: int, blockno: int) -> Buffer:
        for b in self._mru:
            if b.dev == dev and b.blockno == blockno and (b.refcnt or b.flags):
                if b.locked:
                    raise DiskError(f"block {blockno} is already in use")
                b.refcnt += 1
                b.locked = True
                return b
        # Dirty buffers are pinned by the log even with no references.
        for b in reversed(self._mru):
            if b.refcnt == 0 and not b.flags & BufFlag.DIRTY:
                b.dev = dev
                b.blockno = blockno
                b.flags = BufFlag.NONE
                b.refcnt = 1
                b.locked = True
                return b
        raise DiskError("bget: no buffers")

    def read(self, dev, blockno):
        """Return a locked buffer holding the contents of the block."""
        b = self._get(dev, blockno)
        if not b.flags & BufFlag.VALID:
            self.disk.sync(b)
        return b

    def write(self, buf):
        """Write a locked buffer's contents to disk."""
        if not buf.locked:
            raise DiskError("bwrite")
        buf.flags |= BufFlag.DIRTY
        self.disk.sync(buf)

    def release(self, buf):
        """Unlock a buffer; once unreferenced it becomes the most recently used."""
        if not buf.locked:
            raise DiskError("brelse")
        buf.locked = False
        buf.refcnt -= 1
        if buf.refcnt == 0:
            self._mru.remove(buf)
            self._mru.insert(0, buf)

    @contextmanager
    def block(self, dev, blockno) -> Iterator[Buffer]:
        """Hold a block's buffer for the duration of a with-block."""
        buf = self.read(dev, blockno)
        try:
            yield buf
        finally:
            self.release(buf)
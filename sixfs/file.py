"""Open files: a table of reference-counted handles onto inodes and pipes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from sixfs.fs import FsError, Inode
from sixfs.layout import BSIZE
from sixfs.pipe import Pipe

NFILE = 100


class FileKind(Enum):
    NONE = 0
    PIPE = 1
    INODE = 2


@dataclass(eq=False)
class OpenFile:
    """One slot of the file table."""

    kind: FileKind = FileKind.NONE
    ref: int = 0
    readable: bool = False
    writable: bool = False
    pipe: Optional[Pipe] = None
    ip: Optional[Inode] = None
    off: int = 0


class FileTable:
    """A fixed number of open-file slots shared by every process."""

    def __init__(self, fs, nfile=NFILE):
        if nfile < 1:
            raise ValueError("the file table needs at least one slot")
        self.fs = fs
        self.files = [OpenFile() for _ in range(nfile)]

    def alloc(self):
        """Claim a free slot with one reference."""
        for f in self.files:
            if f.ref == 0:
                f.ref = 1
                return f
        raise FsError("file table is full")

    def open_inode(self, ip, readable, writable):
        """Open a file on ``ip``, taking over the caller's reference to it."""
        f = self.alloc()
        f.kind = FileKind.INODE
        f.ip = ip
        f.pipe = None
        f.off = 0
        f.readable = bool(readable)
        f.writable = bool(writable)
        return f

    def open_pipe(self):
        """Create a pipe and return its ``(read end, write end)``."""
        rf = self.alloc()
        try:
            wf = self.alloc()
        except FsError:
            self.close(rf)
            raise
        pipe = Pipe()
        rf.kind, rf.readable, rf.writable, rf.pipe, rf.ip = (
            FileKind.PIPE, True, False, pipe, None)
        wf.kind, wf.readable, wf.writable, wf.pipe, wf.ip = (
            FileKind.PIPE, False, True, pipe, None)
        return rf, wf

    def dup(self, f):
        """Add a reference to ``f`` and return it."""
        if f.ref < 1:
            raise FsError("filedup")
        f.ref += 1
        return f

    def close(self, f):
        """Drop a reference; the last one releases the pipe end or inode."""
        if f.ref < 1:
            raise FsError("fileclose")
        f.ref -= 1
        if f.ref > 0:
            return
        kind, pipe, ip, writable = f.kind, f.pipe, f.ip, f.writable
        f.kind = FileKind.NONE
        f.pipe = None
        f.ip = None
        if kind is FileKind.PIPE:
            pipe.close(writable)
        elif kind is FileKind.INODE:
            with self.fs.transaction():
                self.fs.iput(ip)

    def stat(self, f):
        """Metadata about the inode behind ``f``."""
        if f.kind is not FileKind.INODE:
            raise FsError("only files on inodes can be examined")
        self.fs.ilock(f.ip)
        try:
            return self.fs.stati(f.ip)
        finally:
            self.fs.iunlock(f.ip)

    def read(self, f, n):
        """Read up to ``n`` bytes from the file's current offset."""
        if not f.readable:
            raise FsError("file is not open for reading")
        if f.kind is FileKind.PIPE:
            return f.pipe.read(n)
        if f.kind is FileKind.INODE:
            self.fs.ilock(f.ip)
            try:
                data = self.fs.readi(f.ip, f.off, n)
                f.off += len(data)
            finally:
                self.fs.iunlock(f.ip)
            return data
        raise FsError("fileread")

    def write(self, f, data):
        """Write all of ``data`` at the file's offset and return its length.

        Inode writes go a few blocks per transaction so that no single
        transaction overflows the log.
        """
        if not f.writable:
            raise FsError("file is not open for writing")
        if f.kind is FileKind.PIPE:
            return f.pipe.write(data)
        if f.kind is not FileKind.INODE:
            raise FsError("filewrite")
        data = bytes(data)
        chunk = ((self.fs.log.max_op_blocks - 1 - 1 - 2) // 2) * BSIZE
        if chunk < 1:
            raise FsError("log operations are too small for any write")
        done = 0
        while done < len(data):
            part = data[done:done + chunk]
            with self.fs.transaction():
                self.fs.ilock(f.ip)
                try:
                    r = self.fs.writei(f.ip, part, f.off)
                    if r > 0:
                        f.off += r
                finally:
                    self.fs.iunlock(f.ip)
            if r != len(part):
                raise FsError("short filewrite")
            done += r
        return len(data)
"""Inodes, directories and path names on top of the buffer cache and the log."""

from __future__ import annotations

import struct
from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from typing import Any, Optional

from sixfs.disk import NBUF, BufferCache
from sixfs.layout import (
    BPB,
    BSIZE,
    DINODE_SIZE,
    DIRENT_SIZE,
    DIRSIZ,
    IPB,
    MAXFILE,
    NDIRECT,
    NINDIRECT,
    ROOTINO,
    DirEntry,
    DiskInode,
    FileType,
    SuperBlock,
    bitmap_block,
    inode_block,
)
from sixfs.log import MAXOPBLOCKS, Log

NINODE = 50
ROOTDEV = 1

_ADDR = struct.Struct("<I")


class FsError(Exception):
    """Raised when a file-system operation cannot be carried out."""


@dataclass(eq=False)
class Inode:
    """In-memory copy of an inode, with its cache bookkeeping."""

    dev: int
    inum: int
    ref: int = 0
    locked: bool = False
    valid: bool = False
    type: int = FileType.FREE
    major: int = 0
    minor: int = 0
    nlink: int = 0
    size: int = 0
    addrs: list[int] = field(default_factory=lambda: [0] * (NDIRECT + 1))


@dataclass(frozen=True)
class Stat:
    """Metadata about an inode."""

    dev: int
    ino: int
    type: int
    nlink: int
    size: int


def skip_elem(path):
    """Split off the first element of ``path``.

    Return ``(name, rest)`` with leading slashes removed from ``rest``, or
    None when the path holds no element. Names are cut to DIRSIZ.
    """
    path = path.lstrip("/")
    if not path:
        return None
    elem, _, rest = path.partition("/")
    return elem[:DIRSIZ], rest.lstrip("/")


def _name_key(s) -> bytes:
    raw = s.encode("utf-8") if isinstance(s, str) else bytes(s)
    return raw.split(b"\0", 1)[0][:DIRSIZ]


def name_cmp(s, t):
    """Compare two directory names over at most DIRSIZ bytes: -1, 0 or 1."""
    a, b = _name_key(s), _name_key(t)
    return (a > b) - (a < b)


class FileSystem:
    """A mounted file system: block allocation, the inode cache, directories."""

    def __init__(self, disk, dev=ROOTDEV, ninode=NINODE, nbuf=NBUF,
                 max_op_blocks=MAXOPBLOCKS):
        if ninode < 1:
            raise ValueError("the inode cache needs at least one entry")
        self.disk = disk
        self.dev = dev
        self.cache = BufferCache(disk, nbuf)
        with self.cache.block(dev, 1) as buf:
            self.sb = SuperBlock.from_bytes(bytes(buf.data))
        self.log = Log(self.cache, dev, self.sb, max_op_blocks)
        self._inodes = [Inode(dev, 0) for _ in range(ninode)]
        # Device drivers by major number; each has read(ip, n) and write(ip, data).
        self.devices: dict[int, Any] = {}

    def transaction(self) -> AbstractContextManager:
        """Run a with-block as one logged file-system operation."""
        return self.log.transaction()

    # Blocks.

    def _bzero(self, bno: int) -> None:
        with self.cache.block(self.dev, bno) as bp:
            bp.data[:] = bytes(BSIZE)
            self.log.log_write(bp)

    def _balloc(self) -> int:
        for b in range(0, self.sb.size, BPB):
            with self.cache.block(self.dev, bitmap_block(b, self.sb)) as bp:
                found = None
                for bi in range(min(BPB, self.sb.size - b)):
                    mask = 1 << (bi % 8)
                    if not bp.data[bi // 8] & mask:
                        bp.data[bi // 8] |= mask
                        self.log.log_write(bp)
                        found = b + bi
                        break
            if found is not None:
                self._bzero(found)
                return found
        raise FsError("balloc: out of blocks")

    def _bfree(self, b: int) -> None:
        with self.cache.block(self.dev, bitmap_block(b, self.sb)) as bp:
            bi = b % BPB
            mask = 1 << (bi % 8)
            if not bp.data[bi // 8] & mask:
                raise FsError("freeing free block")
            bp.data[bi // 8] &= ~mask & 0xFF
            self.log.log_write(bp)

    # Inodes.

    def _inode_slot(self, inum: int) -> tuple[int, int]:
        return inode_block(inum, self.sb), (inum % IPB) * DINODE_SIZE

    def ialloc(self, type):
        """Allocate a free on-disk inode of ``type``; return it referenced, unlocked."""
        for inum in range(1, self.sb.ninodes):
            block, off = self._inode_slot(inum)
            with self.cache.block(self.dev, block) as bp:
                din = DiskInode.from_bytes(bytes(bp.data[off:off + DINODE_SIZE]))
                if din.type != FileType.FREE:
                    continue
                bp.data[off:off + DINODE_SIZE] = DiskInode(type=type).to_bytes()
                self.log.log_write(bp)
            return self.iget(inum)
        raise FsError("ialloc: no inodes")

    def iupdate(self, ip):
        """Copy a modified in-memory inode to disk."""
        block, off = self._inode_slot(ip.inum)
        din = DiskInode(ip.type, ip.major, ip.minor, ip.nlink, ip.size, list(ip.addrs))
        with self.cache.block(ip.dev, block) as bp:
            bp.data[off:off + DINODE_SIZE] = din.to_bytes()
            self.log.log_write(bp)

    def iget(self, inum):
        """Return the cached inode ``inum``, referenced but neither locked nor read."""
        empty = None
        for ip in self._inodes:
            if ip.ref > 0 and ip.dev == self.dev and ip.inum == inum:
                ip.ref += 1
                return ip
            if empty is None and ip.ref == 0:
                empty = ip
        if empty is None:
            raise FsError("iget: no inodes")
        empty.dev = self.dev
        empty.inum = inum
        empty.ref = 1
        empty.valid = False
        return empty

    def idup(self, ip):
        """Add a reference to ``ip`` and return it."""
        ip.ref += 1
        return ip

    def ilock(self, ip):
        """Lock ``ip``, reading it from disk if needed."""
        if ip is None or ip.ref < 1:
            raise FsError("ilock")
        if ip.locked:
            raise FsError(f"ilock: inode {ip.inum} is already locked")
        ip.locked = True
        if not ip.valid:
            block, off = self._inode_slot(ip.inum)
            with self.cache.block(ip.dev, block) as bp:
                din = DiskInode.from_bytes(bytes(bp.data[off:off + DINODE_SIZE]))
            ip.type = din.type
            ip.major = din.major
            ip.minor = din.minor
            ip.nlink = din.nlink
            ip.size = din.size
            ip.addrs = list(din.addrs)
            ip.valid = True
            if ip.type == FileType.FREE:
                ip.locked = False
                raise FsError("ilock: no type")

    def iunlock(self, ip):
        if ip is None or not ip.locked or ip.ref < 1:
            raise FsError("iunlock")
        ip.locked = False

    def iput(self, ip):
        """Drop a reference; free the inode on disk if it was the last with no links."""
        if ip.locked:
            raise FsError(f"iput: inode {ip.inum} is locked")
        ip.locked = True
        try:
            if ip.valid and ip.nlink == 0 and ip.ref == 1:
                self._itrunc(ip)
                ip.type = FileType.FREE
                self.iupdate(ip)
                ip.valid = False
        finally:
            ip.locked = False
        ip.ref -= 1

    def iunlockput(self, ip):
        self.iunlock(ip)
        self.iput(ip)

    # Inode content.

    def _bmap(self, ip: Inode, bn: int) -> int:
        """Disk block holding block ``bn`` of ``ip``, allocated if absent."""
        if bn < NDIRECT:
            if ip.addrs[bn] == 0:
                ip.addrs[bn] = self._balloc()
            return ip.addrs[bn]
        bn -= NDIRECT
        if bn < NINDIRECT:
            if ip.addrs[NDIRECT] == 0:
                ip.addrs[NDIRECT] = self._balloc()
            with self.cache.block(ip.dev, ip.addrs[NDIRECT]) as bp:
                (addr,) = _ADDR.unpack_from(bp.data, bn * _ADDR.size)
                if addr == 0:
                    addr = self._balloc()
                    _ADDR.pack_into(bp.data, bn * _ADDR.size, addr)
                    self.log.log_write(bp)
            return addr
        raise FsError("bmap: out of range")

    def _itrunc(self, ip: Inode) -> None:
        for i in range(NDIRECT):
            if ip.addrs[i]:
                self._bfree(ip.addrs[i])
                ip.addrs[i] = 0
        if ip.addrs[NDIRECT]:
            with self.cache.block(ip.dev, ip.addrs[NDIRECT]) as bp:
                for (addr,) in _ADDR.iter_unpack(bytes(bp.data)):
                    if addr:
                        self._bfree(addr)
            self._bfree(ip.addrs[NDIRECT])
            ip.addrs[NDIRECT] = 0
        ip.size = 0
        self.iupdate(ip)

    def stati(self, ip):
        return Stat(ip.dev, ip.inum, ip.type, ip.nlink, ip.size)

    def _device(self, ip: Inode):
        device = self.devices.get(ip.major)
        if device is None:
            raise FsError(f"no device with major number {ip.major}")
        return device

    def readi(self, ip, off, n):
        """Read up to ``n`` bytes at ``off``; fewer at the end of the file."""
        if ip.type == FileType.DEVICE:
            return self._device(ip).read(ip, n)
        if off < 0 or n < 0 or off > ip.size:
            raise FsError(f"readi: offset {off} outside file of {ip.size} bytes")
        n = min(n, ip.size - off)
        out = bytearray()
        while len(out) < n:
            pos = off + len(out)
            with self.cache.block(ip.dev, self._bmap(ip, pos // BSIZE)) as bp:
                start = pos % BSIZE
                m = min(n - len(out), BSIZE - start)
                out += bp.data[start:start + m]
        return bytes(out)

    def writei(self, ip, data, off):
        """Write ``data`` at ``off``, growing the file; return the bytes written."""
        if ip.type == FileType.DEVICE:
            return self._device(ip).write(ip, data)
        data = bytes(data)
        n = len(data)
        if off < 0 or off > ip.size:
            raise FsError(f"writei: offset {off} outside file of {ip.size} bytes")
        if off + n > MAXFILE * BSIZE:
            raise FsError("writei: file would exceed the maximum size")
        done = 0
        while done < n:
            pos = off + done
            with self.cache.block(ip.dev, self._bmap(ip, pos // BSIZE)) as bp:
                start = pos % BSIZE
                m = min(n - done, BSIZE - start)
                bp.data[start:start + m] = data[done:done + m]
                self.log.log_write(bp)
            done += m
        if n > 0 and off + n > ip.size:
            ip.size = off + n
            self.iupdate(ip)
        return n

    # Directories.

    def _entries(self, dp: Inode):
        for off in range(0, dp.size, DIRENT_SIZE):
            raw = self.readi(dp, off, DIRENT_SIZE)
            if len(raw) != DIRENT_SIZE:
                raise FsError("short directory entry")
            yield off, DirEntry.from_bytes(raw)

    def dirlookup(self, dp, name):
        """Find ``name`` in directory ``dp``: return ``(inode, offset)`` or None."""
        if dp.type != FileType.DIR:
            raise FsError("dirlookup not DIR")
        for off, de in self._entries(dp):
            if de.inum and name_cmp(name, de.name) == 0:
                return self.iget(de.inum), off
        return None

    def dirlink(self, dp, name, inum):
        """Add the entry ``(name, inum)`` to directory ``dp``."""
        found = self.dirlookup(dp, name)
        if found is not None:
            self.iput(found[0])
            raise FsError(f"{name!r} already exists")
        off = next((off for off, de in self._entries(dp) if de.inum == 0), dp.size)
        if self.writei(dp, DirEntry(inum, name).to_bytes(), off) != DIRENT_SIZE:
            raise FsError("dirlink")

    # Paths.

    def _namex(self, path: str, parent: bool, cwd: Optional[Inode]):
        if path.startswith("/"):
            ip = self.iget(ROOTINO)
        elif cwd is None:
            raise FsError(f"relative path {path!r} without a current directory")
        else:
            ip = self.idup(cwd)
        name = ""
        while (step := skip_elem(path)) is not None:
            name, path = step
            self.ilock(ip)
            if ip.type != FileType.DIR:
                self.iunlockput(ip)
                raise FsError(f"not a directory on the way to {name!r}")
            if parent and not path:
                self.iunlock(ip)
                return ip, name
            found = self.dirlookup(ip, name)
            self.iunlockput(ip)
            if found is None:
                raise FsError(f"{name!r} not found")
            ip = found[0]
        if parent:
            self.iput(ip)
            raise FsError("path has no final element")
        return ip, name

    def namei(self, path, cwd=None):
        """Return the referenced inode for ``path``."""
        return self._namex(path, False, cwd)[0]

    def nameiparent(self, path, cwd=None):
        """Return ``(parent directory inode, final element)`` for ``path``."""
        return self._namex(path, True, cwd)
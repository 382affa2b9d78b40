"""Build a file system image holding a root directory and a set of files."""

from __future__ import annotations

import os
import struct
import sys
from pathlib import Path

from sixfs.layout import (
    BPB,
    BSIZE,
    DINODE_SIZE,
    IPB,
    MAXFILE,
    NDIRECT,
    NINDIRECT,
    ROOTINO,
    DirEntry,
    DiskInode,
    FileType,
    SuperBlock,
    inode_block,
)

FSSIZE = 1000
NINODES = 200
LOGSIZE = 30

_INDIRECT = struct.Struct(f"<{NINDIRECT}I")


class ImageBuilder:
    """An in-memory disk image laid out as
    [boot | superblock | log | inodes | bitmap | data]."""

    def __init__(self, size=FSSIZE, ninodes=NINODES, nlog=LOGSIZE):
        self.size = size
        self.nlog = nlog
        self.nbitmap = size // BPB + 1
        self.ninodeblocks = ninodes // IPB + 1
        self.nmeta = 2 + nlog + self.ninodeblocks + self.nbitmap
        self.nblocks = size - self.nmeta
        if self.nblocks <= 0:
            raise ValueError(f"image of {size} blocks has no room for data")
        self.sb = SuperBlock(
            size=size,
            nblocks=self.nblocks,
            ninodes=ninodes,
            nlog=nlog,
            logstart=2,
            inodestart=2 + nlog,
            bmapstart=2 + nlog + self.ninodeblocks,
        )
        self.free_inode = 1
        self.free_block = self.nmeta
        self._image = bytearray(size * BSIZE)
        self.write_sector(1, self.sb.to_bytes())

        self.root = self.alloc_inode(FileType.DIR)
        if self.root != ROOTINO:
            raise RuntimeError("root directory did not get the root inode number")
        self.append(self.root, DirEntry(self.root, ".").to_bytes())
        self.append(self.root, DirEntry(self.root, "..").to_bytes())

    def _offset(self, sec: int) -> int:
        if not 0 <= sec < self.size:
            raise ValueError(f"sector {sec} lies outside the {self.size}-sector image")
        return sec * BSIZE

    def write_sector(self, sec, data):
        """Write up to one block at sector ``sec``, zero-filling the rest."""
        data = bytes(data)
        if len(data) > BSIZE:
            raise ValueError(f"a sector holds {BSIZE} bytes, got {len(data)}")
        off = self._offset(sec)
        self._image[off:off + BSIZE] = data.ljust(BSIZE, b"\0")

    def read_sector(self, sec):
        off = self._offset(sec)
        return bytes(self._image[off:off + BSIZE])

    def _inode_slot(self, inum: int) -> tuple[int, int]:
        return inode_block(inum, self.sb), (inum % IPB) * DINODE_SIZE

    def read_inode(self, inum):
        block, off = self._inode_slot(inum)
        return DiskInode.from_bytes(self.read_sector(block)[off:off + DINODE_SIZE])

    def write_inode(self, inum, inode):
        block, off = self._inode_slot(inum)
        buf = bytearray(self.read_sector(block))
        buf[off:off + DINODE_SIZE] = inode.to_bytes()
        self.write_sector(block, buf)

    def alloc_inode(self, type):
        """Allocate the next inode with one link and return its number."""
        inum = self.free_inode
        self.free_inode += 1
        self.write_inode(inum, DiskInode(type=type, nlink=1, size=0))
        return inum

    def _take_block(self) -> int:
        block = self.free_block
        self.free_block += 1
        return block

    def _data_block(self, din: DiskInode, fbn: int) -> int:
        if fbn < NDIRECT:
            if din.addrs[fbn] == 0:
                din.addrs[fbn] = self._take_block()
            return din.addrs[fbn]
        if din.addrs[NDIRECT] == 0:
            din.addrs[NDIRECT] = self._take_block()
        indirect = list(_INDIRECT.unpack(self.read_sector(din.addrs[NDIRECT])))
        slot = fbn - NDIRECT
        if indirect[slot] == 0:
            indirect[slot] = self._take_block()
            self.write_sector(din.addrs[NDIRECT], _INDIRECT.pack(*indirect))
        return indirect[slot]

    def append(self, inum, data):
        """Append ``data`` to the end of inode ``inum``."""
        din = self.read_inode(inum)
        off = din.size
        view = memoryview(bytes(data))
        while view:
            fbn = off // BSIZE
            if fbn >= MAXFILE:
                raise ValueError(f"inode {inum} would exceed {MAXFILE} blocks")
            block = self._data_block(din, fbn)
            n1 = min(len(view), (fbn + 1) * BSIZE - off)
            buf = bytearray(self.read_sector(block))
            start = off - fbn * BSIZE
            buf[start:start + n1] = view[:n1]
            self.write_sector(block, buf)
            view = view[n1:]
            off += n1
        din.size = off
        self.write_inode(inum, din)

    def add_file(self, name, data):
        """Add a regular file to the root directory; a leading '_' is dropped."""
        if "/" in name:
            raise ValueError(f"file name {name!r} must not contain '/'")
        if name.startswith("_"):
            name = name[1:]
        inum = self.alloc_inode(FileType.FILE)
        self.append(self.root, DirEntry(inum, name).to_bytes())
        self.append(inum, data)
        return inum

    def finish(self):
        """Round the root directory up, write the free bitmap, return the image."""
        din = self.read_inode(self.root)
        din.size = (din.size // BSIZE + 1) * BSIZE
        self.write_inode(self.root, din)

        used = self.free_block
        if used >= BPB:
            raise ValueError(f"{used} used blocks do not fit one bitmap block")
        self.write_sector(self.sb.bmapstart, ((1 << used) - 1).to_bytes(BSIZE, "little"))
        return bytes(self._image)


def build_image(path, files, size=FSSIZE, ninodes=NINODES, nlog=LOGSIZE):
    """Write an image to ``path`` holding the named files; return the builder."""
    builder = ImageBuilder(size, ninodes, nlog)
    for entry in files:
        name = os.fspath(entry)
        if "/" in name:
            raise ValueError(f"file name {name!r} must not contain '/'")
        builder.add_file(name, Path(name).read_bytes())
    image = builder.finish()
    Path(path).write_bytes(image)
    return builder


def main(argv=None):
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        print("Usage: mkfs fs.img files...", file=sys.stderr)
        return 1
    try:
        builder = build_image(args[0], args[1:])
    except OSError as exc:
        print(f"{exc.filename}: {exc.strerror}", file=sys.stderr)
        return 1
    except ValueError as exc:
        print(f"mkfs: {exc}", file=sys.stderr)
        return 1
    print(
        f"nmeta {builder.nmeta} (boot, super, log blocks {builder.nlog} "
        f"inode blocks {builder.ninodeblocks}, bitmap blocks {builder.nbitmap}) "
        f"blocks {builder.nblocks} total {builder.size}"
    )
    print(f"balloc: first {builder.free_block} blocks have been allocated")
    print(f"balloc: write bitmap block at sector {builder.sb.bmapstart}")
    return 0
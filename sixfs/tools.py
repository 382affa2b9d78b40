"""Small user programs: cat, echo and ls over the file system."""

from __future__ import annotations

from sixfs.fs import FsError
from sixfs.layout import DIRENT_SIZE, DIRSIZ, DirEntry, FileType

_CHUNK = 512
_PATH_MAX = 512


def cat(streams, out):
    """Copy every stream, in order, to ``out``."""
    for stream in streams:
        while chunk := stream.read(_CHUNK):
            written = out.write(chunk)
            if written is not None and written != len(chunk):
                raise OSError("cat: write error")


def echo(args):
    """Return the arguments joined by spaces and ended by a newline."""
    args = list(args)
    if not args:
        return ""
    return " ".join(args) + "\n"


def fmt_name(path):
    """Last element of ``path``, padded with blanks to DIRSIZ characters."""
    name = path.rsplit("/", 1)[-1]
    if len(name) >= DIRSIZ:
        return name
    return name.ljust(DIRSIZ)


def _absolute(path: str) -> str:
    return path if path.startswith("/") else "/" + path


def _stat_path(fs, path: str):
    ip = fs.namei(_absolute(path))
    try:
        fs.ilock(ip)
        try:
            return fs.stati(ip)
        finally:
            fs.iunlock(ip)
    finally:
        fs.iput(ip)


def _line(name: str, st) -> str:
    return f"{name} {int(st.type)} {st.ino} {st.size}"


def list_directory(fs, path):
    """Return ls lines "name type inode size" for a file or a directory's entries.

    Relative paths are taken from the root directory.
    """
    lines = []
    with fs.transaction():
        ip = fs.namei(_absolute(path))
        try:
            fs.ilock(ip)
            try:
                st = fs.stati(ip)
                raw = fs.readi(ip, 0, ip.size) if st.type == FileType.DIR else b""
            finally:
                fs.iunlock(ip)
        finally:
            fs.iput(ip)

        if st.type == FileType.FILE:
            lines.append(_line(fmt_name(path), st))
        elif st.type == FileType.DIR:
            if len(path) + 1 + DIRSIZ + 1 > _PATH_MAX:
                raise ValueError("ls: path too long")
            entries = (
                DirEntry.from_bytes(raw[off:off + DIRENT_SIZE])
                for off in range(0, len(raw) - DIRENT_SIZE + 1, DIRENT_SIZE)
            )
            for de in entries:
                if not de.inum:
                    continue
                child = f"{path}/{de.name}"
                try:
                    cst = _stat_path(fs, child)
                except FsError:
                    lines.append(f"ls: cannot stat {child}")
                    continue
                lines.append(_line(fmt_name(child), cst))
    return lines
# sixfs

`sixfs` is a small block file system in plain Python, built in the
classic layered style of a teaching kernel. Each layer can be used on
its own:

| Layer | Module | What it gives you |
|-------|--------|-------------------|
| On-disk format | `sixfs.layout` | `SuperBlock`, `DiskInode`, `DirEntry`, `FileType`, `inode_block`, `bitmap_block` |
| Image builder | `sixfs.mkfs` | `ImageBuilder`, `build_image`, the `sixfs-mkfs` command |
| Disk and cache | `sixfs.disk` | `MemoryDisk`, `Buffer`, `BufferCache`, `DiskError` |
| Crash recovery | `sixfs.log` | `Log`, `LogError`: a redo log whose commit happens when the last open operation ends |
| Inodes and names | `sixfs.fs` | `FileSystem`, `Inode`, `Stat`, `FsError`, `skip_elem`, `name_cmp` |
| Open files | `sixfs.file` | `FileTable`, `OpenFile`, `FileKind` |
| Pipes | `sixfs.pipe` | `Pipe`, `PipeClosedError` |
| Console | `sixfs.console`, `sixfs.kbd` | `Console`, `CgaScreen`, `KeyboardDecoder`, `control` |
| Formatting | `sixfs.printf` | `format_int`, `format_user`, `format_kernel` |
| Tools | `sixfs.grep`, `sixfs.tools` | `match`, `grep`, `cat`, `echo`, `fmt_name`, `list_directory` |

It needs nothing beyond the standard library.

## Installing

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Building a disk image

`sixfs-mkfs` writes a fresh image and copies files into its root
directory:

```
sixfs-mkfs fs.img README _cat _ls
```

The first argument is the image to create (an existing file is
overwritten); every further argument is a file in the current directory
to copy in. Names may not contain `/`, and a leading underscore is
dropped, so `_cat` is stored as `cat`. The root directory always holds
`.` and `..`. The image is 1000 blocks of 512 bytes, with room for 200
inodes and a 30-block log; the command prints the layout it chose.

From Python, `build_image(path, files, size, ninodes, nlog)` does the same
and returns the `ImageBuilder` it used. `ImageBuilder` can also be driven
directly: `alloc_inode`, `append`, `add_file`, then `finish`, which
returns the image bytes.

## Searching text

`sixfs-grep` is a small line filter that understands `^`, `.`, `*` and `$`:

```
sixfs-grep '^ab*c$' notes.txt
sixfs-grep 'err.r' < log.txt
```

With no files it reads standard input. Only lines that end in a newline
are reported. The matcher is available directly:

```python
from sixfs.grep import match

assert match("^ab*c$", "abbbc")
assert not match("^ab*c$", "abd")
```

`grep(pattern, stream)` yields the matching lines of a text stream.

## Working with an image in memory

A `MemoryDisk` holds an image's bytes; a `FileSystem` on top of it
brings the buffer cache, the log (recovered on start-up) and the inode
layer. Changes belong inside a transaction, which commits when the
outermost one ends:

```python
from sixfs.disk import MemoryDisk
from sixfs.fs import FileSystem

with open("fs.img", "rb") as fh:
    disk = MemoryDisk(fh.read())

fs = FileSystem(disk)
with fs.transaction():
    ip = fs.namei("/README")
    fs.ilock(ip)
    text = fs.readi(ip, 0, 64)
    fs.iunlockput(ip)
```

Failures are raised as exceptions: `FsError` from the inode layer,
`LogError` from the log, `DiskError` from the disk and cache.

`FileTable` adds reference-counted open files over inodes and pipes
(`open_inode`, `open_pipe`, `read`, `write`, `stat`, `dup`, `close`).
`sixfs.tools.list_directory(fs, path)` returns the lines `ls` would
print (`name type inode size`, names padded by `fmt_name`); `cat` copies
streams to an output and `echo` joins its arguments.

## Console and keyboard

`KeyboardDecoder` turns PC scan codes into character codes, tracking
shift, control and caps lock. `Console` does line editing (backspace,
kill-line with Ctrl-U, end of file with Ctrl-D, Ctrl-P calling an
optional `on_procdump` callback) over characters given to
`Console.interrupt`, echoing to a `serial` byte buffer and a `CgaScreen`
model of an 80×25 text screen.

`format_user` and `format_kernel` render the two small `printf`
dialects: `%d`, `%x`, `%p`, `%s` and `%%`, plus `%c` for the user
variant, with upper-case hex for the user one and lower-case for the
kernel one. Unknown conversions are printed as they stand.

## What it does not do

`sixfs` is a library over images held in memory, not a running system.
There are no processes, scheduler or system calls, and nothing mounts
an image on the host. Nothing ever waits: where an operation would have
to sleep — a full or empty `Pipe`, a `Console.read` with no finished
line, a `Log.begin_op` during a commit or with the log nearly full — it
raises (`BlockingIOError` or `LogError`) instead. Only `sixfs-mkfs` and
`sixfs-grep` are commands; `cat`, `echo` and `list_directory` are
functions.
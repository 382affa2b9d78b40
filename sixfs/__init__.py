"""A small block file system: image builder, cache, redo log, inodes, pipes, console and tools."""

__version__ = "0.1.0"
import pytest

from sixfs.pipe import PIPESIZE, Pipe, PipeClosedError


def test_write_then_read_round_trip():
    pipe = Pipe()
    assert pipe.write(b"hello") == 5
    assert pipe.read(5) == b"hello"
    assert len(pipe) == 0


def test_read_returns_at_most_available():
    pipe = Pipe()
    pipe.write(b"abc")
    assert pipe.read(100) == b"abc"


def test_partial_reads_keep_order():
    pipe = Pipe()
    pipe.write(b"abcdef")
    assert pipe.read(2) == b"ab"
    assert pipe.read(2) == b"cd"
    assert pipe.read(10) == b"ef"


def test_empty_pipe_with_writer_blocks():
    pipe = Pipe()
    with pytest.raises(BlockingIOError):
        pipe.read(1)


def test_empty_pipe_without_writer_is_eof():
    pipe = Pipe()
    pipe.write(b"xy")
    pipe.close(writable=True)
    assert pipe.read(10) == b"xy"
    assert pipe.read(10) == b""


def test_full_pipe_reports_bytes_written():
    pipe = Pipe(4)
    with pytest.raises(BlockingIOError) as info:
        pipe.write(b"abcdef")
    assert info.value.characters_written == 4
    assert pipe.read(10) == b"abcd"


def test_wraparound_preserves_data():
    pipe = Pipe(4)
    pipe.write(b"abc")
    assert pipe.read(2) == b"ab"
    pipe.write(b"def")
    assert pipe.read(10) == b"cdef"


def test_write_to_full_pipe_without_reader_fails():
    pipe = Pipe(4)
    pipe.close(writable=False)
    with pytest.raises(PipeClosedError):
        pipe.write(b"abcdef")


def test_write_with_room_succeeds_even_without_reader():
    pipe = Pipe(4)
    pipe.close(writable=False)
    assert pipe.write(b"ab") == 2


def test_closed_after_both_ends():
    pipe = Pipe()
    pipe.close(writable=True)
    assert not pipe.closed
    pipe.close(writable=False)
    assert pipe.closed


def test_default_size_and_invalid_size():
    pipe = Pipe()
    assert pipe.size == PIPESIZE
    with pytest.raises(ValueError):
        Pipe(0)
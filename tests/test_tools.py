import io

import pytest

from sixfs.disk import MemoryDisk
from sixfs.fs import FileSystem, FsError
from sixfs.layout import DIRSIZ
from sixfs.mkfs import ImageBuilder
from sixfs.tools import cat, echo, fmt_name, list_directory

README = b"hello world\n"


@pytest.fixture
def fs():
    builder = ImageBuilder()
    builder.add_file("README", README)
    builder.add_file("_cat", b"binary")
    return FileSystem(MemoryDisk(builder.finish()))


def test_echo_joins_arguments():
    assert echo(["a", "b", "c"]) == "a b c\n"


def test_echo_without_arguments_prints_nothing():
    assert echo([]) == ""


def test_fmt_name_pads_last_element():
    assert fmt_name("/usr/bin/README") == "README".ljust(DIRSIZ)
    assert len(fmt_name("x")) == DIRSIZ


def test_fmt_name_keeps_long_names():
    name = "abcdefghijklmnopq"
    assert fmt_name("/" + name) == name


def test_cat_concatenates_streams():
    out = io.BytesIO()
    big = bytes(range(256)) * 5
    cat([io.BytesIO(b"first\n"), io.BytesIO(big)], out)
    assert out.getvalue() == b"first\n" + big


def test_cat_works_on_text():
    out = io.StringIO()
    cat([io.StringIO("one"), io.StringIO("two")], out)
    assert out.getvalue() == "onetwo"


class ShortWriter:
    def write(self, data):
        return 0


def test_cat_reports_write_error():
    with pytest.raises(OSError):
        cat([io.BytesIO(b"data")], ShortWriter())


def test_list_single_file(fs):
    assert list_directory(fs, "/README") == ["README".ljust(DIRSIZ) + " 2 2 12"]


def test_list_root_names(fs):
    lines = list_directory(fs, "/")
    names = [line.split()[0] for line in lines]
    assert names == [".", "..", "README", "cat"]


def test_list_root_entries_match_file_listing(fs):
    lines = list_directory(fs, "/")
    readme_line = next(line for line in lines if line.startswith("README"))
    assert [readme_line] == list_directory(fs, "/README")
    dot, dotdot = lines[0].split(), lines[1].split()
    assert dot[1:] == dotdot[1:]


def test_relative_path_matches_absolute(fs):
    assert list_directory(fs, ".") == list_directory(fs, "/")


def test_missing_path_raises(fs):
    with pytest.raises(FsError):
        list_directory(fs, "/nothing")
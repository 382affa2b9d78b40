import pytest

from sixfs.disk import MemoryDisk
from sixfs.file import FileKind, FileTable
from sixfs.fs import FileSystem, FsError
from sixfs.layout import FileType
from sixfs.mkfs import ImageBuilder

README = b"hello world\n"


@pytest.fixture
def fs():
    builder = ImageBuilder()
    builder.add_file("README", README)
    return FileSystem(MemoryDisk(builder.finish()))


def new_inode(fs, nlink=1):
    with fs.transaction():
        ip = fs.ialloc(FileType.FILE)
        fs.ilock(ip)
        ip.nlink = nlink
        fs.iupdate(ip)
        fs.iunlock(ip)
    return ip


def open_readme(fs, table, readable=True, writable=False):
    with fs.transaction():
        ip = fs.namei("/README")
    return table.open_inode(ip, readable, writable)


def test_read_existing_file(fs):
    table = FileTable(fs)
    f = open_readme(fs, table)
    assert table.read(f, 100) == README
    assert f.off == len(README)
    assert table.read(f, 100) == b""


def test_stat_of_file(fs):
    table = FileTable(fs)
    f = open_readme(fs, table)
    st = table.stat(f)
    assert st.type == FileType.FILE
    assert st.size == len(README)
    assert st.ino == f.ip.inum


def test_write_on_read_only_file_fails(fs):
    table = FileTable(fs)
    f = open_readme(fs, table)
    with pytest.raises(FsError):
        table.write(f, b"x")


def test_read_on_write_only_file_fails(fs):
    table = FileTable(fs)
    f = open_readme(fs, table, readable=False, writable=True)
    with pytest.raises(FsError):
        table.read(f, 1)


def test_large_write_round_trip(fs):
    table = FileTable(fs)
    f = table.open_inode(new_inode(fs), True, True)
    data = bytes(range(256)) * 20
    assert table.write(f, data) == len(data)
    assert f.off == len(data)
    f.off = 0
    assert table.read(f, len(data)) == data
    assert table.stat(f).size == len(data)


def test_data_survives_reopen(fs):
    table = FileTable(fs)
    ip = new_inode(fs)
    inum = ip.inum
    f = table.open_inode(ip, True, True)
    table.write(f, b"persisted")
    table.close(f)
    with fs.transaction():
        ip2 = fs.iget(inum)
    g = table.open_inode(ip2, True, False)
    assert table.read(g, 100) == b"persisted"


def test_closing_unlinked_inode_frees_it(fs):
    table = FileTable(fs)
    ip = new_inode(fs, nlink=0)
    inum = ip.inum
    f = table.open_inode(ip, True, True)
    table.write(f, b"x" * 100)
    table.close(f)
    with fs.transaction():
        again = fs.ialloc(FileType.FILE)
    assert again.inum == inum


def test_pipe_through_table(fs):
    table = FileTable(fs)
    rf, wf = table.open_pipe()
    assert rf.kind is FileKind.PIPE and wf.kind is FileKind.PIPE
    assert table.write(wf, b"abc") == 3
    assert table.read(rf, 10) == b"abc"
    table.close(wf)
    assert table.read(rf, 10) == b""


def test_pipe_ends_have_one_direction(fs):
    table = FileTable(fs)
    rf, wf = table.open_pipe()
    with pytest.raises(FsError):
        table.read(wf, 1)
    with pytest.raises(FsError):
        table.write(rf, b"x")


def test_stat_of_pipe_fails(fs):
    table = FileTable(fs)
    rf, _ = table.open_pipe()
    with pytest.raises(FsError):
        table.stat(rf)


def test_table_full(fs):
    table = FileTable(fs, nfile=2)
    table.alloc()
    table.alloc()
    with pytest.raises(FsError):
        table.alloc()


def test_open_pipe_releases_slot_when_table_full(fs):
    table = FileTable(fs, nfile=1)
    with pytest.raises(FsError):
        table.open_pipe()
    assert table.files[0].ref == 0


def test_dup_and_close_counts_references(fs):
    table = FileTable(fs)
    rf, wf = table.open_pipe()
    table.dup(wf)
    assert wf.ref == 2
    table.close(wf)
    assert wf.pipe.write_open
    table.close(wf)
    assert not rf.pipe.write_open
    assert wf.kind is FileKind.NONE
    with pytest.raises(FsError):
        table.close(wf)
    with pytest.raises(FsError):
        table.dup(wf)


def test_closed_slot_is_reused(fs):
    table = FileTable(fs, nfile=1)
    f = table.alloc()
    table.close(f)
    assert table.alloc() is f
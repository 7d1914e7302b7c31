import threading

import pytest

from gqlc.errors import FileIOError, InvalidPathError
from gqlc.output import MemoryFileSystem, OsFileSystem, OutputContext


class CountingFileSystem(MemoryFileSystem):
    """Counts makedirs calls per path."""

    def __init__(self):
        super().__init__()
        self.makedirs_calls = {}

    def makedirs(self, path):
        self.makedirs_calls[path] = self.makedirs_calls.get(path, 0) + 1
        super().makedirs(path)


class TestOutputContext:
    def test_write_file(self):
        fs = MemoryFileSystem()
        out = OutputContext(fs, "out")

        with out.open("a.txt") as f:
            f.write("hello ")
            f.write(b"world")

        assert fs.read_bytes("out/a.txt") == b"hello world"
        assert fs.listdir() == ["out/a.txt"]

    def test_output_directory_created_once(self):
        fs = CountingFileSystem()
        out = OutputContext(fs, "out")

        for name in ("a.txt", "b.txt", "sub/c.txt"):
            with out.open(name) as f:
                f.write(name)

        assert fs.makedirs_calls["out"] == 1
        assert fs.listdir() == ["out/a.txt", "out/b.txt", "out/sub/c.txt"]

    def test_directory_not_created_before_first_open(self):
        fs = CountingFileSystem()
        OutputContext(fs, "out")
        assert fs.makedirs_calls == {}

    def test_concurrent_opens_create_directory_once(self):
        fs = CountingFileSystem()
        out = OutputContext(fs, "out")

        def write(i):
            with out.open(f"f{i}.txt") as f:
                f.write(str(i))

        threads = [threading.Thread(target=write, args=(i,)) for i in range(16)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert fs.makedirs_calls["out"] == 1
        assert len(fs.listdir()) == 16

    def test_same_name_twice_is_an_error(self):
        out = OutputContext(MemoryFileSystem(), "out")
        with out.open("a.txt") as f:
            f.write("first")

        with pytest.raises(FileIOError, match="already written"):
            out.open("a.txt")

    def test_exception_discards_file(self):
        fs = MemoryFileSystem()
        out = OutputContext(fs, "out")

        with pytest.raises(RuntimeError):
            with out.open("a.txt") as f:
                f.write("partial")
                raise RuntimeError("generator failed")

        assert not fs.exists("out/a.txt")

    def test_write_after_close(self):
        out = OutputContext(MemoryFileSystem(), "out")
        f = out.open("a.txt")
        f.close()
        f.close()
        assert f.closed
        with pytest.raises(FileIOError):
            f.write("late")

    @pytest.mark.parametrize("name", ["../evil.txt", "/etc/passwd", "a/../../b", ""])
    def test_unsafe_name_creates_nothing(self, name):
        fs = CountingFileSystem()
        out = OutputContext(fs, "out")

        with pytest.raises(InvalidPathError):
            out.open(name)

        assert fs.makedirs_calls == {}
        assert fs.listdir() == []

    def test_release_commits_open_handles(self):
        fs = MemoryFileSystem()
        out = OutputContext(fs, "out")
        done = out.open("done.txt")
        done.write("closed")
        done.close()
        left = out.open("left.txt")
        left.write("open")

        out.release([done, left], failed=False)

        assert left.closed
        assert fs.read_bytes("out/done.txt") == b"closed"
        assert fs.read_bytes("out/left.txt") == b"open"

    def test_release_after_failure_discards_open_handles(self):
        fs = MemoryFileSystem()
        out = OutputContext(fs, "out")
        done = out.open("done.txt")
        done.close()
        left = out.open("left.txt")
        left.write("partial")

        out.release([done, left], failed=True)

        assert left.closed
        assert fs.listdir() == ["out/done.txt"]

    def test_output_dir_is_a_file(self):
        fs = MemoryFileSystem({"out": "not a directory"})
        out = OutputContext(fs, "out")

        with pytest.raises(FileIOError, match="cannot create output directory"):
            out.open("a.txt")


class TestOsFileSystem:
    def test_nested_file(self, tmp_path):
        out = OutputContext(OsFileSystem(), str(tmp_path / "out"))

        with out.open("nested/dir/file.txt") as f:
            f.write("content")

        assert (tmp_path / "out" / "nested" / "dir" / "file.txt").read_text() == "content"
        assert list(tmp_path.rglob("*.tmp")) == []

    def test_discarded_file_leaves_nothing(self, tmp_path):
        out = OutputContext(OsFileSystem(), str(tmp_path / "out"))

        with pytest.raises(ValueError):
            with out.open("a.txt") as f:
                f.write("partial")
                raise ValueError("stop")

        assert list((tmp_path / "out").iterdir()) == []

    def test_file_appears_only_on_close(self, tmp_path):
        out = OutputContext(OsFileSystem(), str(tmp_path / "out"))
        target = tmp_path / "out" / "a.txt"

        f = out.open("a.txt")
        f.write("data")
        assert not target.exists()
        f.close()
        assert target.read_text() == "data"

    def test_release_after_failure_removes_temp_file(self, tmp_path):
        out = OutputContext(OsFileSystem(), str(tmp_path / "out"))
        f = out.open("a.txt")
        f.write("partial")

        out.release([f], failed=True)

        assert list((tmp_path / "out").iterdir()) == []

    def test_release_renames_temp_file_into_place(self, tmp_path):
        out = OutputContext(OsFileSystem(), str(tmp_path / "out"))
        f = out.open("a.txt")
        f.write("partial")

        out.release([f], failed=False)

        assert [p.name for p in (tmp_path / "out").iterdir()] == ["a.txt"]
        assert (tmp_path / "out" / "a.txt").read_text() == "partial"

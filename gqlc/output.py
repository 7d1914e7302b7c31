"""
Scoped file creation for generators.

An OutputContext turns a relative file name into a writable handle whose
path always stays inside one generator's output directory. The directory
itself is created lazily, once, before the first file is opened.
"""

from __future__ import annotations

import io
import logging
import posixpath
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from types import TracebackType

from .errors import FileIOError
from .protocol import validate_file_name


class FileSink(ABC):
    """Destination for the bytes of one file, committed or discarded once."""

    @abstractmethod
    def write(self, data: bytes) -> int:
        """Append data to the pending file."""

    @abstractmethod
    def commit(self) -> None:
        """Make the written data visible under the target path."""

    @abstractmethod
    def discard(self) -> None:
        """Drop the written data; the target path is left untouched."""


class FileSystem(ABC):
    """The minimal file system surface the compiler needs."""

    @abstractmethod
    def read_bytes(self, path: str) -> bytes:
        """Read a whole file. Raises OSError on failure."""

    @abstractmethod
    def exists(self, path: str) -> bool:
        """Whether a regular file exists at path."""

    @abstractmethod
    def makedirs(self, path: str) -> None:
        """Create a directory and its parents, succeeding if it exists."""

    @abstractmethod
    def open_write(self, path: str) -> FileSink:
        """Open a new file for writing. Raises OSError on failure."""


class _AtomicFileSink(FileSink):
    """Writes to a temporary file in the target directory and renames it into place.

    An interrupted generator never leaves a partially written file under the
    target name.
    """

    def __init__(self, path: Path):
        self._path = path
        temp_fd, temp_path_str = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        self._temp_path = Path(temp_path_str)
        self._file = open(temp_fd, "wb")

    def write(self, data: bytes) -> int:
        return self._file.write(data)

    def commit(self) -> None:
        try:
            self._file.close()
            # Temp file shares the target directory, so the replace is atomic
            self._temp_path.replace(self._path)
        except OSError:
            self._temp_path.unlink(missing_ok=True)
            raise

    def discard(self) -> None:
        try:
            self._file.close()
        finally:
            self._temp_path.unlink(missing_ok=True)


class OsFileSystem(FileSystem):
    """The real file system."""

    def read_bytes(self, path: str) -> bytes:
        return Path(path).read_bytes()

    def exists(self, path: str) -> bool:
        return Path(path).is_file()

    def makedirs(self, path: str) -> None:
        Path(path).mkdir(parents=True, exist_ok=True)

    def open_write(self, path: str) -> FileSink:
        return _AtomicFileSink(Path(path))


class _MemoryFileSink(FileSink):
    def __init__(self, fs: MemoryFileSystem, path: str):
        self._fs = fs
        self._path = path
        self._buffer = io.BytesIO()

    def write(self, data: bytes) -> int:
        return self._buffer.write(data)

    def commit(self) -> None:
        self._fs._store(self._path, self._buffer.getvalue())

    def discard(self) -> None:
        self._buffer = io.BytesIO()


class MemoryFileSystem(FileSystem):
    """A thread-safe in-memory file system, for tests and embedding."""

    def __init__(self, files: dict[str, bytes | str] | None = None):
        self._lock = threading.Lock()
        self._files: dict[str, bytes] = {}
        self._dirs: set[str] = {".", "/"}
        for path, content in (files or {}).items():
            self.write_file(path, content)

    @staticmethod
    def _norm(path: str) -> str:
        return posixpath.normpath(path.replace("\\", "/"))

    def _add_dirs(self, path: str) -> None:
        while path not in self._dirs:
            self._dirs.add(path)
            path = posixpath.dirname(path) or "."

    def _store(self, path: str, data: bytes) -> None:
        with self._lock:
            self._files[path] = data

    def write_file(self, path: str, content: bytes | str) -> None:
        """Create a file, and its parent directories, directly."""
        path = self._norm(path)
        data = content.encode("utf-8") if isinstance(content, str) else content
        with self._lock:
            self._add_dirs(posixpath.dirname(path) or ".")
            self._files[path] = data

    def read_bytes(self, path: str) -> bytes:
        path = self._norm(path)
        with self._lock:
            if path not in self._files:
                raise FileNotFoundError(f"no such file: {path}")
            return self._files[path]

    def exists(self, path: str) -> bool:
        with self._lock:
            return self._norm(path) in self._files

    def makedirs(self, path: str) -> None:
        path = self._norm(path)
        with self._lock:
            if path in self._files:
                raise FileExistsError(f"file exists: {path}")
            self._add_dirs(path)

    def open_write(self, path: str) -> FileSink:
        path = self._norm(path)
        with self._lock:
            parent = posixpath.dirname(path) or "."
            if parent not in self._dirs:
                raise FileNotFoundError(f"no such directory: {parent}")
            if path in self._dirs:
                raise IsADirectoryError(f"is a directory: {path}")
        return _MemoryFileSink(self, path)

    def listdir(self) -> list[str]:
        """All file paths, sorted."""
        with self._lock:
            return sorted(self._files)


class OutputFile:
    """A handle on one generated file.

    Use it as a context manager: leaving the block normally commits the
    file, leaving it through an exception discards it. Either way the
    handle is released exactly once.
    """

    def __init__(self, name: str, sink: FileSink):
        self.name = name
        self._sink = sink
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def write(self, data: str | bytes) -> int:
        if self._closed:
            raise FileIOError(f"{self.name}: write to closed file")
        if isinstance(data, str):
            data = data.encode("utf-8")
        try:
            return self._sink.write(data)
        except OSError as e:
            raise FileIOError(f"{self.name}: {e}") from e

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._sink.commit()
        except OSError as e:
            raise FileIOError(f"{self.name}: {e}") from e

    def discard(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._sink.discard()
        except OSError as e:
            raise FileIOError(f"{self.name}: {e}") from e

    def __enter__(self) -> OutputFile:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if exc_type is None:
            self.close()
        else:
            self.discard()


class OutputContext:
    """File creation scoped to one generator's output directory.

    Safe for concurrent use. Opening the same name twice through one
    context is a caller error and is reported, not silently allowed.
    """

    def __init__(self, fs: FileSystem, output_dir: str, logger: logging.Logger | None = None):
        self.fs = fs
        self.output_dir = output_dir
        self._logger = logger or logging.getLogger("gqlc.output")
        self._lock = threading.Lock()
        self._dir_ready = False
        self._opened: list[str] = []

    def _ensure_dir(self) -> None:
        if self._dir_ready:
            return
        self._logger.info("creating output directory %s", self.output_dir)
        try:
            self.fs.makedirs(self.output_dir)
        except OSError as e:
            raise FileIOError(f"cannot create output directory {self.output_dir}: {e}") from e
        self._dir_ready = True

    def open(self, name: str) -> OutputFile:
        """
        Open a new file relative to the output directory.

        Args:
            name: Relative, "/"-separated file name

        Returns:
            A writable OutputFile

        Raises:
            InvalidPathError: If the name could escape the output directory
            FileIOError: If the directory or file cannot be created, or the
                name was already opened through this context
        """
        validate_file_name(name)
        with self._lock:
            if name in self._opened:
                raise FileIOError(f"{name}: file was already written to {self.output_dir} in this run")
            self._ensure_dir()
            self._opened.append(name)

        path = posixpath.join(self.output_dir, name)
        try:
            parent = posixpath.dirname(name)
            if parent:
                self.fs.makedirs(posixpath.join(self.output_dir, parent))
            sink = self.fs.open_write(path)
        except OSError as e:
            raise FileIOError(f"cannot open {path}: {e}") from e
        return OutputFile(name, sink)

    def release(self, files: list[OutputFile], failed: bool) -> None:
        """
        Release the handles a generator left open.

        After a failed invocation every open handle is discarded, so no
        partial file or temporary file remains. After a successful one the
        open handles are committed.

        Raises:
            FileIOError: If committing a handle fails
        """
        pending = [f for f in files if not f.closed]
        if failed:
            for f in pending:
                try:
                    f.discard()
                except FileIOError as e:
                    self._logger.warning("cannot discard %s: %s", f.name, e)
            return

        first_error = None
        for f in pending:
            self._logger.warning("%s was left open in %s, committing it", f.name, self.output_dir)
            try:
                f.close()
            except FileIOError as e:
                first_error = first_error or e
        if first_error is not None:
            raise first_error

"""File and directory handles returned by the bundled sources.

Provides FileReader (a regular file backed by bytes) and DirectoryReader
(a directory listing with paginated iteration).
"""

from __future__ import annotations

import io
from typing import Callable, Iterator

from .base import FileInfo


class FileReader:
    """Read-only file-like handle over an in-memory byte string.

    Metadata stays available after ``close()``; only reads are refused.

    Attributes:
        path: The source path this handle was opened for.
    """

    def __init__(self, path: str, info: FileInfo, content: bytes):
        """Initialize a readable file handle.

        Args:
            path: Source path (for error messages).
            info: Metadata returned by ``stat()``.
            content: Full file content.
        """
        self.path = path
        self._info = info
        self._buffer = io.BytesIO(content)
        self._closed = False

    def stat(self) -> FileInfo:
        """Return metadata for this file."""
        return self._info

    def read(self, size: int = -1) -> bytes:
        """Read up to ``size`` bytes (all remaining if negative).

        Raises:
            ValueError: If the handle is closed.
        """
        if self._closed:
            raise ValueError(f"I/O operation on closed file: {self.path}")
        return self._buffer.read(size)

    def readinto(self, buffer: bytearray | memoryview) -> int:
        """Read bytes into a pre-allocated buffer, returning the count."""
        if self._closed:
            raise ValueError(f"I/O operation on closed file: {self.path}")
        return self._buffer.readinto(buffer)

    def seek(self, offset: int, whence: int = 0) -> int:
        """Seek to a position in the file."""
        if self._closed:
            raise ValueError(f"I/O operation on closed file: {self.path}")
        return self._buffer.seek(offset, whence)

    def tell(self) -> int:
        """Return current position in the file."""
        if self._closed:
            raise ValueError(f"I/O operation on closed file: {self.path}")
        return self._buffer.tell()

    def list_children(self, n: int = -1) -> list[FileInfo]:
        raise NotADirectoryError(f"Not a directory: '{self.path}'")

    def close(self) -> None:
        """Close the handle. Metadata remains readable."""
        if self._closed:
            return
        self._buffer.close()
        self._closed = True

    @property
    def closed(self) -> bool:
        """Return True if the handle is closed."""
        return self._closed

    def __enter__(self) -> "FileReader":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


class DirectoryReader:
    """Directory handle exposing a sorted entry list with a read cursor.

    ``list_children(n)`` follows the usual paginated-listing contract:

    - ``n > 0`` returns at most ``n`` entries and raises ``EOFError`` once
      the listing is exhausted.
    - ``n <= 0`` returns every remaining entry, or ``[]`` if none remain.

    Entries may be supplied up front or produced lazily by ``loader`` on the
    first call to ``list_children()``.
    """

    def __init__(
        self,
        path: str,
        info: FileInfo,
        entries: list[FileInfo] | None = None,
        loader: Callable[[], list[FileInfo]] | None = None,
    ):
        self.path = path
        self._info = info
        self._entries = entries
        self._loader = loader
        self._offset = 0

    def stat(self) -> FileInfo:
        """Return metadata for this directory."""
        return self._info

    def read(self, size: int = -1) -> bytes:
        raise IsADirectoryError(f"Is a directory: '{self.path}'")

    def _load(self) -> list[FileInfo]:
        if self._entries is None:
            self._entries = self._loader() if self._loader is not None else []
            self._loader = None
        return self._entries

    def list_children(self, n: int = -1) -> list[FileInfo]:
        """Return up to ``n`` entries starting at the cursor.

        Args:
            n: Maximum number of entries; ``n <= 0`` means all remaining.

        Raises:
            EOFError: If ``n > 0`` and no entries remain.
        """
        entries = self._load()
        if self._offset >= len(entries):
            if n <= 0:
                return []
            raise EOFError(f"End of directory: '{self.path}'")
        start = self._offset
        end = len(entries) if n <= 0 else min(start + n, len(entries))
        self._offset = end
        return entries[start:end]

    def close(self) -> None:
        """Drop the entry list and reset the cursor.

        ``stat()`` keeps working afterwards.
        """
        self._entries = []
        self._loader = None
        self._offset = 0

    def __iter__(self) -> Iterator[FileInfo]:
        return iter(self.list_children())

    def __enter__(self) -> "DirectoryReader":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

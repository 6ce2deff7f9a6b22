"""Base source interface and dataclasses.

Defines the read-only capability every source (leaf or merged) implements,
and the metadata record shared by ``stat()`` results and directory entries.
"""

from __future__ import annotations

import stat as stat_mod
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

ROOT = "."


@dataclass(frozen=True)
class FileInfo:
    """Metadata for a single file or directory.

    Used both as the result of ``FileHandle.stat()`` and as an entry in a
    directory listing, so the two always carry the same fields.

    Attributes:
        name: Final path element ("." for the root of a source).
        is_dir: True if this is a directory, False for files.
        mode: Permission bits (without the file type bits).
        mtime: Modification time in POSIX seconds.
        size: Size in bytes (0 for directories).
    """

    name: str
    is_dir: bool
    mode: int = 0o644
    mtime: float = 0.0
    size: int = 0

    # os.stat_result-compatible properties

    @property
    def st_size(self) -> int:
        return self.size

    @property
    def st_mode(self) -> int:
        kind = stat_mod.S_IFDIR if self.is_dir else stat_mod.S_IFREG
        return kind | stat_mod.S_IMODE(self.mode)

    @property
    def st_mtime(self) -> float:
        return self.mtime


@runtime_checkable
class FileHandle(Protocol):
    """An open file or directory returned by ``FileSource.open()``.

    Closing a handle releases whatever the source holds for it, but metadata
    already obtained through ``stat()`` stays valid.
    """

    def stat(self) -> FileInfo:
        """Get metadata for the opened path."""
        ...

    def close(self) -> None:
        """Release the handle."""
        ...

    def read(self, size: int = -1) -> bytes:
        """Read bytes from a regular file."""
        ...

    def list_children(self, n: int = -1) -> list[FileInfo]:
        """List up to ``n`` directory entries (all remaining if ``n <= 0``)."""
        ...


@runtime_checkable
class FileSource(Protocol):
    """Minimal read-only hierarchy.

    ``open()`` raises a NotFound-class error (see ``mergefs.errors``) when the
    path is absent or malformed, and any other exception for real failures.
    """

    def open(self, path: str) -> Any:
        """Open a path, returning a ``FileHandle``."""
        ...


def valid_path(path: str) -> bool:
    """Report whether ``path`` is a normalized relative source path.

    "." names the root. Any other valid path is a "/"-separated sequence of
    non-empty elements, none of which is "." or "..".
    """
    if path == ROOT:
        return True
    if not path:
        return False
    for element in path.split("/"):
        if element in ("", ".", ".."):
            return False
    return True


def base_name(path: str) -> str:
    """Return the final element of a valid path."""
    return path.rsplit("/", 1)[-1]


def prefixes(path: str) -> list[str]:
    """Return every ancestor-or-self prefix of ``path``, shortest first.

    >>> prefixes("a/b/c")
    ['a', 'a/b', 'a/b/c']
    """
    components = path.split("/")
    return ["/".join(components[: i + 1]) for i in range(len(components))]


def join(parent: str, name: str) -> str:
    if parent == ROOT:
        return name
    return f"{parent}/{name}"

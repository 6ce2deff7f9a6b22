"""In-memory source implementation."""

from __future__ import annotations

import errno as _errno
import posixpath
import time
from dataclasses import dataclass
from typing import Mapping

from .base import ROOT, FileInfo, base_name, valid_path
from .errors import InvalidPathError
from .handles import DirectoryReader, FileReader
from .merge import name_key


@dataclass
class _Node:
    mode: int
    mtime: float
    data: bytes | None = None

    @property
    def is_dir(self) -> bool:
        return self.data is None


def _parent(path: str) -> str:
    return posixpath.dirname(path) or ROOT


class MemorySource:
    """Simple in-memory source.

    Stores files as ``bytes`` in a plain dict. Parent directories are
    created implicitly when a file is written (mode 0o555, mtime 0) and can
    also be created explicitly with ``mkdir()`` to control their metadata.

    The mutators exist so callers can change a source between reads; the
    ``FileSource`` side (``open()``) is read-only.

    Example:
        >>> src = MemorySource({"docs/readme.md": b"hi"})
        >>> [e.name for e in src.open("docs").list_children()]
        ['readme.md']
    """

    DIR_MODE = 0o555

    def __init__(self, files: Mapping[str, bytes] | None = None, mtime: float | None = None) -> None:
        """Initialize the source.

        Args:
            files: Initial file contents keyed by path.
            mtime: Modification time for the initial files (default: now).
        """
        self._nodes: dict[str, _Node] = {ROOT: _Node(mode=self.DIR_MODE, mtime=0.0)}
        self._children: dict[str, set[str]] = {ROOT: set()}
        for path, content in (files or {}).items():
            self.write(path, content, mtime=mtime)

    def open(self, path: str) -> FileReader | DirectoryReader:
        if not valid_path(path):
            raise InvalidPathError(path)
        node = self._nodes.get(path)
        if node is None:
            raise FileNotFoundError(_errno.ENOENT, "No such file or directory", path)
        info = self._info(path, node)
        if node.is_dir:
            entries = [
                self._info(child, self._nodes[child])
                for child in sorted(self._children.get(path, ()), key=name_key)
            ]
            return DirectoryReader(path, info, entries=entries)
        return FileReader(path, info, node.data)  # type: ignore[arg-type]

    def _info(self, path: str, node: _Node) -> FileInfo:
        return FileInfo(
            name=base_name(path),
            is_dir=node.is_dir,
            mode=node.mode,
            mtime=node.mtime,
            size=0 if node.data is None else len(node.data),
        )

    # -------------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------------

    def write(
        self,
        path: str,
        content: bytes,
        mode: int = 0o644,
        mtime: float | None = None,
    ) -> None:
        """Create or replace a file, creating parent directories as needed.

        Raises:
            IsADirectoryError: If ``path`` is a directory.
            NotADirectoryError: If an ancestor of ``path`` is a file.
        """
        path = self._resolve(path)
        if not isinstance(content, bytes):
            raise TypeError(f"Expected bytes, got {type(content).__name__}")
        existing = self._nodes.get(path)
        if existing is not None and existing.is_dir:
            raise IsADirectoryError(_errno.EISDIR, "Is a directory", path)
        self._ensure_parents(path)
        self._add(path, _Node(mode=mode, mtime=time.time() if mtime is None else mtime, data=content))

    def mkdir(
        self,
        path: str,
        mode: int = 0o755,
        mtime: float | None = None,
        exist_ok: bool = False,
    ) -> None:
        """Create a directory (and any missing parents) with explicit metadata."""
        path = self._resolve(path)
        existing = self._nodes.get(path)
        if existing is not None:
            if not existing.is_dir:
                raise FileExistsError(_errno.EEXIST, "File exists", path)
            if exist_ok:
                return
            raise FileExistsError(_errno.EEXIST, "Directory exists", path)
        self._ensure_parents(path)
        node = _Node(mode=mode, mtime=time.time() if mtime is None else mtime)
        self._add(path, node)
        self._children.setdefault(path, set())

    def remove(self, path: str) -> None:
        """Remove a file."""
        path = self._resolve(path)
        node = self._nodes.get(path)
        if node is None:
            raise FileNotFoundError(_errno.ENOENT, "No such file", path)
        if node.is_dir:
            raise IsADirectoryError(_errno.EISDIR, "Is a directory", path)
        self._discard(path)

    def rmdir(self, path: str) -> None:
        """Remove an empty directory."""
        path = self._resolve(path)
        node = self._nodes.get(path)
        if node is None:
            raise FileNotFoundError(_errno.ENOENT, "No such directory", path)
        if not node.is_dir:
            raise NotADirectoryError(_errno.ENOTDIR, "Not a directory", path)
        if path == ROOT:
            raise PermissionError(_errno.EPERM, "Can't remove the root", path)
        if self._children.get(path):
            raise OSError(_errno.ENOTEMPTY, "Directory not empty", path)
        self._discard(path)
        self._children.pop(path, None)

    def _ensure_parents(self, path: str) -> None:
        parent = _parent(path)
        missing = []
        while parent not in self._nodes:
            missing.append(parent)
            parent = _parent(parent)
        if not self._nodes[parent].is_dir:
            raise NotADirectoryError(_errno.ENOTDIR, "Not a directory", parent)
        for directory in reversed(missing):
            self._add(directory, _Node(mode=self.DIR_MODE, mtime=0.0))
            self._children[directory] = set()

    def _add(self, path: str, node: _Node) -> None:
        self._nodes[path] = node
        self._children[_parent(path)].add(path)

    def _discard(self, path: str) -> None:
        del self._nodes[path]
        self._children[_parent(path)].discard(path)

    def _resolve(self, path: str) -> str:
        """Normalize a path to the relative form used as a key."""
        path = posixpath.normpath(path.lstrip("/") or ROOT)
        if not valid_path(path):
            raise InvalidPathError(path)
        return path

    def __repr__(self) -> str:
        return f"MemorySource({len(self._nodes) - 1} entries)"

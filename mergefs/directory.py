"""Real directory tree exposed as a read-only source.

Paths are resolved beneath a fixed root; anything that would escape it
(through ``..`` or a symlink) is refused.
"""

from __future__ import annotations

import io
import os
import stat as stat_mod
from pathlib import Path

from .base import ROOT, FileInfo, base_name, valid_path
from .errors import InvalidPathError
from .handles import DirectoryReader
from .merge import sort_key


def _info_from_stat(name: str, st: os.stat_result) -> FileInfo:
    is_dir = stat_mod.S_ISDIR(st.st_mode)
    return FileInfo(
        name=name,
        is_dir=is_dir,
        mode=stat_mod.S_IMODE(st.st_mode),
        mtime=st.st_mtime,
        size=0 if is_dir else st.st_size,
    )


class DiskFile:
    """Handle for a regular file on disk."""

    def __init__(self, path: str, info: FileInfo, real_path: Path):
        self.path = path
        self._info = info
        self._file = io.open(real_path, "rb")

    def stat(self) -> FileInfo:
        return self._info

    def read(self, size: int = -1) -> bytes:
        return self._file.read(size)

    def readinto(self, buffer: bytearray | memoryview) -> int:
        return self._file.readinto(buffer)

    def seek(self, offset: int, whence: int = 0) -> int:
        return self._file.seek(offset, whence)

    def tell(self) -> int:
        return self._file.tell()

    def list_children(self, n: int = -1) -> list[FileInfo]:
        raise NotADirectoryError(f"Not a directory: '{self.path}'")

    def close(self) -> None:
        self._file.close()

    @property
    def closed(self) -> bool:
        return self._file.closed

    def __enter__(self) -> "DiskFile":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


class DirectorySource:
    """Source backed by a directory on the real filesystem.

    Security features:
    - Rejects paths that resolve outside the root directory
    - Validates symlink targets after resolution
    """

    def __init__(self, root: str | os.PathLike[str]):
        """Initialize a directory source.

        Args:
            root: Path to an existing directory.

        Raises:
            ValueError: If root doesn't exist or isn't a directory.
        """
        root_path = Path(root)
        if not root_path.exists():
            raise ValueError(f"Root does not exist: {root}")
        self.root = root_path.resolve()
        if not self.root.is_dir():
            raise ValueError(f"Root must be a directory: {root}")

    def _validate_path(self, path: str) -> Path:
        """Resolve a source path to a real path inside root.

        Raises:
            InvalidPathError: If the path is malformed.
            PermissionError: If the path escapes the root directory.
        """
        if not valid_path(path):
            raise InvalidPathError(path)
        if path == ROOT:
            return self.root
        try:
            resolved = (self.root / path).resolve()
        except ValueError as exc:
            # Names the OS can not represent, such as an embedded NUL.
            raise InvalidPathError(path) from exc
        if not self._inside_root(resolved):
            raise PermissionError(
                f"Path outside root: {resolved} (root: {self.root})"
            )
        return resolved

    def _inside_root(self, resolved: Path) -> bool:
        try:
            resolved.relative_to(self.root)
        except ValueError:
            return False
        return True

    def open(self, path: str) -> DiskFile | DirectoryReader:
        real_path = self._validate_path(path)
        try:
            st = real_path.stat()
        except ValueError as exc:
            raise InvalidPathError(path) from exc
        info = _info_from_stat(base_name(path), st)
        if info.is_dir:
            return DirectoryReader(path, info, loader=lambda: self._scan(real_path))
        return DiskFile(path, info, real_path)

    def _scan(self, real_path: Path) -> list[FileInfo]:
        entries = []
        with os.scandir(real_path) as it:
            for entry in it:
                # Links leading outside the root can not be opened, so they
                # are not listed either.
                if entry.is_symlink() and not self._inside_root(
                    Path(entry.path).resolve()
                ):
                    continue
                try:
                    st = entry.stat()
                except FileNotFoundError:
                    # Dangling symlink: describe the link itself.
                    st = entry.stat(follow_symlinks=False)
                entries.append(_info_from_stat(entry.name, st))
        return sorted(entries, key=sort_key)

    def __repr__(self) -> str:
        return f"DirectorySource({str(self.root)!r})"

"""Read-only source over a zip archive."""

from __future__ import annotations

import errno
import os
import posixpath
import stat as stat_mod
import time
import zipfile
from typing import IO

from .base import ROOT, FileInfo, base_name, valid_path
from .errors import InvalidPathError
from .handles import DirectoryReader, FileReader
from .merge import name_key


class ZipSource:
    """Zip archive exposed as a source.

    Directories are implicit (inferred from member names) unless the archive
    stores explicit directory members. Members whose names are not valid
    relative paths are ignored.

    Attributes:
        archive: The underlying ``zipfile.ZipFile``.
    """

    IMPLICIT_DIR_MODE = 0o555

    def __init__(self, file: str | os.PathLike[str] | IO[bytes]):
        """Open an archive.

        Args:
            file: Path to a zip file, or a binary file object.

        Raises:
            zipfile.BadZipFile: If the file isn't a zip archive.
        """
        self.archive = zipfile.ZipFile(file)
        self._entries: dict[str, FileInfo] = {
            ROOT: FileInfo(name=ROOT, is_dir=True, mode=self.IMPLICIT_DIR_MODE)
        }
        self._members: dict[str, zipfile.ZipInfo] = {}
        self._children: dict[str, list[str]] = {ROOT: []}
        for member in self.archive.infolist():
            self._index(member)
        for names in self._children.values():
            names.sort(key=name_key)

    def _index(self, member: zipfile.ZipInfo) -> None:
        path = member.filename.rstrip("/")
        if not valid_path(path) or path == ROOT:
            return
        is_dir = member.is_dir()
        if path in self._entries:
            # Explicit directory member after an implicit one: keep its metadata.
            if is_dir and self._entries[path].is_dir:
                self._entries[path] = self._member_info(path, member)
            return
        if not self._add_parents(path):
            return
        self._entries[path] = self._member_info(path, member)
        self._children[posixpath.dirname(path) or ROOT].append(path)
        if is_dir:
            self._children.setdefault(path, [])
        else:
            self._members[path] = member

    def _add_parents(self, path: str) -> bool:
        """Create implicit parent directories; False if a parent is a file."""
        parent = posixpath.dirname(path)
        missing = []
        while parent and parent not in self._entries:
            missing.append(parent)
            parent = posixpath.dirname(parent)
        if parent and not self._entries[parent].is_dir:
            return False
        for directory in reversed(missing):
            self._entries[directory] = FileInfo(
                name=base_name(directory), is_dir=True, mode=self.IMPLICIT_DIR_MODE
            )
            self._children.setdefault(directory, [])
            self._children[posixpath.dirname(directory) or ROOT].append(directory)
        return True

    @staticmethod
    def _member_info(path: str, member: zipfile.ZipInfo) -> FileInfo:
        is_dir = member.is_dir()
        mode = stat_mod.S_IMODE(member.external_attr >> 16)
        if not mode:
            mode = 0o755 if is_dir else 0o644
        return FileInfo(
            name=base_name(path),
            is_dir=is_dir,
            mode=mode,
            mtime=time.mktime(member.date_time + (0, 0, -1)),
            size=0 if is_dir else member.file_size,
        )

    def open(self, path: str) -> FileReader | DirectoryReader:
        if not valid_path(path):
            raise InvalidPathError(path)
        info = self._entries.get(path)
        if info is None:
            raise FileNotFoundError(errno.ENOENT, "No such file or directory", path)
        if info.is_dir:
            entries = [self._entries[child] for child in self._children.get(path, [])]
            return DirectoryReader(path, info, entries=entries)
        return FileReader(path, info, self.archive.read(self._members[path]))

    def close(self) -> None:
        """Close the underlying archive."""
        self.archive.close()

    def __enter__(self) -> "ZipSource":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"ZipSource({self.archive.filename!r})"

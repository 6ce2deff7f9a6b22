"""Convenience functions over any FileSource.

These only use ``open()`` and the handle methods, so they work the same on
leaf sources and on merged views.
"""

from __future__ import annotations

import fnmatch
from typing import Iterator

from .base import ROOT, FileInfo, FileSource, join
from .errors import is_bad_path_error
from .merge import name_key, sort_key

_MAGIC = frozenset("*?[")


def read_file(source: FileSource, path: str) -> bytes:
    """Read an entire file."""
    handle = source.open(path)
    try:
        return handle.read()
    finally:
        handle.close()


def stat(source: FileSource, path: str) -> FileInfo:
    """Get metadata for a path."""
    handle = source.open(path)
    try:
        return handle.stat()
    finally:
        handle.close()


def read_dir(source: FileSource, path: str = ROOT) -> list[FileInfo]:
    """List a directory, sorted by name.

    Raises:
        NotADirectoryError: If ``path`` is a regular file.
    """
    handle = source.open(path)
    try:
        entries = list(handle.list_children(-1))
    finally:
        handle.close()
    return sorted(entries, key=sort_key)


def exists(source: FileSource, path: str) -> bool:
    """Check if a path resolves in the source."""
    try:
        stat(source, path)
    except Exception as exc:
        if is_bad_path_error(exc):
            return False
        raise
    return True


def isdir(source: FileSource, path: str) -> bool:
    """Check if a path is a directory."""
    try:
        return stat(source, path).is_dir
    except Exception as exc:
        if is_bad_path_error(exc):
            return False
        raise


def isfile(source: FileSource, path: str) -> bool:
    """Check if a path is a regular file."""
    try:
        return not stat(source, path).is_dir
    except Exception as exc:
        if is_bad_path_error(exc):
            return False
        raise


def has_magic(pattern: str) -> bool:
    return any(c in _MAGIC for c in pattern)


def glob(source: FileSource, pattern: str) -> list[str]:
    """Return the sorted paths matching a shell-style pattern.

    Wildcards never cross a "/" and match case-sensitively. Patterns that
    descend below a regular file match nothing.

    Example:
        >>> glob(merged, "b/*.txt")
        ['b/0.txt', 'b/1.txt']
    """
    if not has_magic(pattern):
        return [pattern] if exists(source, pattern) else []

    if "/" in pattern:
        dir_pattern, name_pattern = pattern.rsplit("/", 1)
    else:
        dir_pattern, name_pattern = ROOT, pattern

    if has_magic(dir_pattern):
        dirs = glob(source, dir_pattern)
    else:
        dirs = [dir_pattern]

    matches: list[str] = []
    for directory in dirs:
        matches.extend(_glob_in(source, directory, name_pattern))
    return sorted(matches, key=name_key)


def _glob_in(source: FileSource, directory: str, name_pattern: str) -> list[str]:
    try:
        handle = source.open(directory)
    except Exception as exc:
        if is_bad_path_error(exc):
            return []
        raise
    try:
        if not handle.stat().is_dir:
            return []
        entries = handle.list_children(-1)
    finally:
        handle.close()
    return [
        join(directory, entry.name)
        for entry in entries
        if fnmatch.fnmatchcase(entry.name, name_pattern)
    ]


def walk(source: FileSource, top: str = ROOT) -> Iterator[tuple[str, list[str], list[str]]]:
    """Walk a directory tree top-down, like ``os.walk``.

    Yields:
        ``(dirpath, dirnames, filenames)`` tuples with names sorted. Entries
        removed from ``dirnames`` by the caller are not descended into.
    """
    stack = [top]
    while stack:
        dirpath = stack.pop()
        entries = read_dir(source, dirpath)
        dirnames = [e.name for e in entries if e.is_dir]
        filenames = [e.name for e in entries if not e.is_dir]
        yield dirpath, dirnames, filenames
        for name in reversed(dirnames):
            stack.append(join(dirpath, name))

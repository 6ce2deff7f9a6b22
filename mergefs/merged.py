"""Union view over two (or more) read-only sources.

``MergedFS`` answers every path from its primary source when it can, falls
back to its secondary source otherwise, and merges the listings of
directories present in both. Because ``MergedFS`` is itself a source,
compositions nest to any depth::

    merged = MergedFS(overrides, MergedFS(project, defaults))
    # equivalent:
    merged = merge_multiple(overrides, project, defaults)

Conflicts always go to the higher-priority source. A regular file in the
primary hides whatever the secondary has at that path, including a whole
directory tree.
"""

from __future__ import annotations

import errno
import logging
from typing import Any

from . import ops
from .base import ROOT, FileInfo, FileSource, base_name, prefixes, valid_path
from .cache import PrefixCache
from .errors import (
    PRIMARY,
    SECONDARY,
    InconsistentSourceError,
    InvalidPathError,
    ShadowedPathError,
    SourceError,
    is_bad_path_error,
)
from .handles import DirectoryReader
from .merge import merge_dir_entries

logger = logging.getLogger(__name__)


class MergedDirectory(DirectoryReader):
    """A directory present in both sources of a ``MergedFS``.

    Carries the primary's permission bits, the later of the two modification
    times and the merged, name-sorted entry list. The object doubles as a
    metadata record: ``name``, ``mode``, ``mtime`` and ``stat()`` stay valid
    after ``close()``.
    """

    def __init__(self, path: str, mode: int, mtime: float, entries: list[FileInfo]):
        info = FileInfo(name=base_name(path), is_dir=True, mode=mode, mtime=mtime)
        super().__init__(path, info, entries=entries)

    @property
    def name(self) -> str:
        return self._info.name

    @property
    def is_dir(self) -> bool:
        return True

    @property
    def mode(self) -> int:
        return self._info.mode

    @property
    def mtime(self) -> float:
        return self._info.mtime

    @property
    def size(self) -> int:
        return 0

    def info(self) -> FileInfo:
        return self._info

    def __repr__(self) -> str:
        return f"MergedDirectory({self.path!r}, mode={oct(self.mode)}, mtime={self.mtime})"


class EmptySource:
    """A source with nothing in it but an empty root directory."""

    def open(self, path: str) -> DirectoryReader:
        if not valid_path(path):
            raise InvalidPathError(path)
        if path != ROOT:
            raise FileNotFoundError(errno.ENOENT, "No such file or directory", path)
        return DirectoryReader(
            ROOT, FileInfo(name=ROOT, is_dir=True, mode=0o555), entries=[]
        )

    def __repr__(self) -> str:
        return "EmptySource()"


class MergedFS:
    """Read-only union of a primary and a secondary source.

    Path resolution:

    - A non-directory in the primary is returned as-is.
    - A directory in the primary is merged with a directory at the same
      path in the secondary; a missing path or a non-directory in the
      secondary leaves the primary's directory unchanged.
    - A path missing from the primary is delegated to the secondary, unless
      one of its ancestors is a regular file in the primary, in which case
      the path is unreachable (``ShadowedPathError``).

    Ancestors confirmed not to be shadowed are memoized per instance; see
    ``set_path_caching()``. Safe to use from several threads at once.

    Example:
        >>> from mergefs import MemorySource
        >>> merged = MergedFS(MemorySource({"a.txt": b"A"}),
        ...                   MemorySource({"a.txt": b"B", "b.txt": b"B"}))
        >>> merged.read_file("a.txt")
        b'A'
        >>> [e.name for e in merged.open(".").list_children()]
        ['a.txt', 'b.txt']
    """

    def __init__(self, primary: FileSource, secondary: FileSource, path_caching: bool = True):
        """Initialize a union of two sources.

        Args:
            primary: Source that wins every conflict.
            secondary: Fallback source, possibly another ``MergedFS``.
            path_caching: Whether to memoize unshadowed path prefixes.
        """
        self._primary = primary
        self._secondary = secondary
        self._known_ok = PrefixCache(enabled=path_caching)

    @property
    def primary(self) -> FileSource:
        return self._primary

    @property
    def secondary(self) -> FileSource:
        return self._secondary

    # -------------------------------------------------------------------------
    # Prefix caching
    # -------------------------------------------------------------------------

    @property
    def path_caching(self) -> bool:
        return self._known_ok.enabled

    def set_path_caching(self, enabled: bool) -> None:
        """Enable or disable memoization of unshadowed path prefixes.

        Disabling drops everything cached so far, so a source that changes
        between calls is always seen as it is now. The setting is applied to
        nested ``MergedFS`` sources as well; each keeps its own cache.
        """
        stack: list[MergedFS] = [self]
        while stack:
            node = stack.pop()
            node._known_ok.set_enabled(enabled)
            for child in (node._primary, node._secondary):
                if isinstance(child, MergedFS):
                    stack.append(child)

    def cached_prefixes(self) -> frozenset[str]:
        """Return the prefixes currently memoized by this instance."""
        return self._known_ok.snapshot()

    # -------------------------------------------------------------------------
    # Resolution
    # -------------------------------------------------------------------------

    def open(self, path: str) -> Any:
        """Open a path in the union view.

        Args:
            path: Normalized relative path ("." for the root).

        Returns:
            The primary's handle, the secondary's handle, or a
            ``MergedDirectory`` when the path is a directory in both.

        Raises:
            InvalidPathError: If the path is malformed.
            ShadowedPathError: If an ancestor is a file in the primary.
            FileNotFoundError: If no source has the path.
            SourceError: If a source fails for any other reason.
        """
        if not valid_path(path):
            raise InvalidPathError(path)

        # Chains of MergedFS secondaries are walked in a loop rather than by
        # recursion so that long priority lists stay within the stack limit.
        # ``pending`` holds primary directories, outermost first, that still
        # have to be combined with whatever the rest of the chain yields.
        pending: list[tuple[MergedFS, Any, FileInfo]] = []
        node = self
        result: Any = None
        error: Exception | None = None
        try:
            while True:
                handle_a = node._open_primary(path)
                if handle_a is not None:
                    try:
                        info_a = _stat(handle_a, path, PRIMARY)
                    except Exception:
                        handle_a.close()
                        raise
                    if not info_a.is_dir:
                        result = handle_a
                        break
                    pending.append((node, handle_a, info_a))
                secondary = node._secondary
                if not isinstance(secondary, MergedFS):
                    result = secondary.open(path)
                    break
                node = secondary
        except Exception as exc:
            error = exc

        for node, handle_a, info_a in reversed(pending):
            result, error = node._combine(path, handle_a, info_a, result, error)
        if error is not None:
            raise error
        return result

    def _open_primary(self, path: str) -> Any:
        """Open ``path`` in the primary, or return None if it isn't there.

        Returning None means the secondary should answer; a shadowed path
        raises instead.
        """
        try:
            return self._primary.open(path)
        except Exception as exc:
            if not is_bad_path_error(exc):
                raise SourceError(f"Couldn't open: {exc}", path, PRIMARY) from exc
        self._validate_prefix(path)
        return None

    def _combine(
        self,
        path: str,
        handle_a: Any,
        info_a: FileInfo,
        handle_b: Any,
        error: Exception | None,
    ) -> tuple[Any, Exception | None]:
        """Resolve a primary directory against the secondary's outcome.

        ``handle_b`` and ``error`` are what opening ``path`` in the secondary
        produced. Returns the new ``(result, error)`` pair.
        """
        if error is not None:
            if is_bad_path_error(error):
                return handle_a, None
            handle_a.close()
            wrapped = SourceError(f"Couldn't open: {error}", path, SECONDARY)
            wrapped.__cause__ = error
            return None, wrapped

        try:
            info_b = _stat(handle_b, path, SECONDARY)
            if not info_b.is_dir:
                return handle_a, None
            merged = self._merge_directories(handle_a, info_a, handle_b, info_b, path)
        except Exception as exc:
            handle_a.close()
            return None, exc
        finally:
            handle_b.close()
        handle_a.close()
        return merged, None

    def _merge_directories(
        self, handle_a: Any, info_a: FileInfo, handle_b: Any, info_b: FileInfo, path: str
    ) -> MergedDirectory:
        entries = merge_dir_entries(
            _list_all(handle_a, path, PRIMARY),
            _list_all(handle_b, path, SECONDARY),
            path,
        )
        logger.debug("Merged directory '%s' (%d entries)", path, len(entries))
        return MergedDirectory(
            path, mode=info_a.mode, mtime=max(info_a.mtime, info_b.mtime), entries=entries
        )

    def _validate_prefix(self, path: str) -> None:
        """Raise ``ShadowedPathError`` if an ancestor of ``path`` is a primary file.

        Each ancestor must be a directory in the primary or absent from it.
        The first absent ancestor ends the walk, since nothing below it can
        exist in the primary either.
        """
        if path in self._known_ok:
            return
        for prefix in prefixes(path):
            if prefix in self._known_ok:
                continue
            try:
                handle = self._primary.open(prefix)
            except Exception as exc:
                if not is_bad_path_error(exc):
                    raise SourceError(f"Couldn't open: {exc}", prefix, PRIMARY) from exc
                self._known_ok.add(prefix, path)
                return
            try:
                info = _stat(handle, prefix, PRIMARY)
            finally:
                handle.close()
            if not info.is_dir:
                logger.debug("'%s' is shadowed by file '%s' in primary", path, prefix)
                raise ShadowedPathError(path, prefix)
            self._known_ok.add(prefix)

    # -------------------------------------------------------------------------
    # Convenience
    # -------------------------------------------------------------------------

    def read_file(self, path: str) -> bytes:
        """Read the entire content of a file in the union view."""
        return ops.read_file(self, path)

    def __repr__(self) -> str:
        return f"MergedFS({self._primary!r}, {self._secondary!r})"


def merge_multiple(*sources: FileSource) -> FileSource:
    """Merge sources in priority order, highest first.

    Zero sources give an ``EmptySource``; one source is returned unchanged.
    Otherwise the result behaves exactly like
    ``MergedFS(sources[0], merge_multiple(*sources[1:]))``.
    """
    if not sources:
        return EmptySource()
    merged = sources[-1]
    for source in reversed(sources[:-1]):
        merged = MergedFS(source, merged)
    return merged


def _stat(handle: Any, path: str, source: str) -> FileInfo:
    try:
        return handle.stat()
    except Exception as exc:
        raise SourceError(f"Couldn't stat: {exc}", path, source) from exc


def _list_all(handle: Any, path: str, source: str) -> list[FileInfo]:
    try:
        return list(handle.list_children(-1))
    except Exception as exc:
        if is_bad_path_error(exc):
            logger.warning(
                "%s source reported '%s' as a directory but can't list it", source, path
            )
            raise InconsistentSourceError(
                f"Reported a directory but failed to list it: {exc}", path, source
            ) from exc
        raise SourceError(f"Couldn't list directory: {exc}", path, source) from exc

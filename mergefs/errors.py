"""Error classes used when resolving paths across sources.

Two families matter to callers. NotFound-class errors (``FileNotFoundError``,
``NotADirectoryError`` and the subclasses below) mean "no source can answer
this path" and drive fallback to lower-priority sources. Everything else is
fatal and surfaces as a ``SourceError`` naming the path and the source that
failed.
"""

from __future__ import annotations

import errno

PRIMARY = "primary"
SECONDARY = "secondary"


class InvalidPathError(FileNotFoundError):
    """The path is not a normalized relative source path."""

    def __init__(self, path: str):
        super().__init__(errno.EINVAL, "Invalid path", path)


class ShadowedPathError(FileNotFoundError):
    """An ancestor of the path is a regular file in the primary source.

    Attributes:
        prefix: The ancestor that blocks the path.
    """

    def __init__(self, path: str, prefix: str):
        super().__init__(
            errno.ENOENT, f"'{prefix}' is a file in the primary source", path
        )
        self.prefix = prefix


class SourceError(OSError):
    """A source failed for a reason other than the path being absent.

    Attributes:
        path: The path being resolved.
        source: Which side failed, "primary" or "secondary".
    """

    def __init__(self, message: str, path: str, source: str):
        super().__init__(f"{message} ({source} source, path '{path}')")
        self.path = path
        self.source = source


class DuplicateEntryError(SourceError):
    """A source listed the same name twice within one directory."""


class InconsistentSourceError(SourceError):
    """A source contradicted itself between two calls."""


def is_bad_path_error(exc: BaseException) -> bool:
    """Return True if ``exc`` means the path can not be resolved in a source.

    ``NotADirectoryError`` counts: a real directory tree raises it when a
    path walks through a regular file, so the path can not exist there.
    """
    return isinstance(exc, (FileNotFoundError, NotADirectoryError))

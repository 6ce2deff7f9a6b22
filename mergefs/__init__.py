"""mergefs: Union views over read-only file sources."""

from .base import FileHandle, FileInfo, FileSource, valid_path
from .config import (
    DirectorySourceConfig,
    MemorySourceConfig,
    SourceConfig,
    UnionConfig,
    ZipSourceConfig,
    build_source,
    build_union,
    connect_source,
)
from .directory import DirectorySource
from .errors import (
    DuplicateEntryError,
    InconsistentSourceError,
    InvalidPathError,
    ShadowedPathError,
    SourceError,
    is_bad_path_error,
)
from .memory import MemorySource
from .merge import merge_dir_entries
from .merged import EmptySource, MergedDirectory, MergedFS, merge_multiple
from .ops import glob, read_dir, read_file, walk
from .zipsource import ZipSource

__all__ = [
    "build_source",
    "build_union",
    "connect_source",
    "DirectorySource",
    "DirectorySourceConfig",
    "DuplicateEntryError",
    "EmptySource",
    "FileHandle",
    "FileInfo",
    "FileSource",
    "glob",
    "InconsistentSourceError",
    "InvalidPathError",
    "is_bad_path_error",
    "MemorySource",
    "MemorySourceConfig",
    "merge_dir_entries",
    "merge_multiple",
    "MergedDirectory",
    "MergedFS",
    "read_dir",
    "read_file",
    "ShadowedPathError",
    "SourceConfig",
    "SourceError",
    "UnionConfig",
    "valid_path",
    "walk",
    "ZipSource",
    "ZipSourceConfig",
]

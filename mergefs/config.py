"""Configuration for building sources and union views.

Provides configuration dataclasses, the connect_source factory function and
builders that turn configs into live sources.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from .base import FileSource
from .directory import DirectorySource
from .memory import MemorySource
from .merged import MergedFS, merge_multiple
from .zipsource import ZipSource


@dataclass
class MemorySourceConfig:
    """Configuration for an in-memory source.

    Attributes:
        type: Always "memory".
        files: Initial file contents keyed by path.
    """

    type: Literal["memory"] = "memory"
    files: dict[str, bytes] = field(default_factory=dict)


@dataclass
class DirectorySourceConfig:
    """Configuration for a real directory tree.

    Attributes:
        type: Always "directory".
        root: Path to the directory exposed as the source root.
    """

    type: Literal["directory"] = "directory"
    root: str = ""


@dataclass
class ZipSourceConfig:
    """Configuration for a zip archive.

    Attributes:
        type: Always "zip".
        path: Path to the archive.
    """

    type: Literal["zip"] = "zip"
    path: str = ""


# Type alias for all source configs
SourceConfig = MemorySourceConfig | DirectorySourceConfig | ZipSourceConfig


@dataclass
class UnionConfig:
    """Configuration for a union view.

    Attributes:
        sources: Source configs in priority order, highest first.
        path_caching: Whether merged nodes memoize unshadowed path prefixes.
    """

    sources: list[SourceConfig] = field(default_factory=list)
    path_caching: bool = True


def connect_source(
    type: Literal["memory", "directory", "zip"] = "memory",
    **kwargs,
) -> SourceConfig:
    """Configure a source.

    Args:
        type: Source type.
            - "memory": In-memory files. Optional 'files' mapping.
            - "directory": Real directory. Requires 'root'.
            - "zip": Zip archive. Requires 'path'.
        **kwargs: Additional configuration for the source type.

    Returns:
        SourceConfig for build_source() or UnionConfig.

    Examples:
        >>> connect_source(type="directory", root="/srv/overrides")
        DirectorySourceConfig(type='directory', root='/srv/overrides')

        >>> connect_source(type="zip", path="defaults.zip")
        ZipSourceConfig(type='zip', path='defaults.zip')
    """
    if type == "memory":
        files = kwargs.pop("files", None) or {}
        if kwargs:
            raise ValueError(
                f"Unexpected arguments for memory source: {list(kwargs.keys())}"
            )
        return MemorySourceConfig(files=dict(files))

    elif type == "directory":
        root = kwargs.pop("root", "")
        if kwargs:
            raise ValueError(
                f"Unexpected arguments for directory source: {list(kwargs.keys())}"
            )
        if not root:
            raise ValueError("Directory source requires 'root' parameter")
        return DirectorySourceConfig(root=str(root))

    elif type == "zip":
        path = kwargs.pop("path", "")
        if kwargs:
            raise ValueError(
                f"Unexpected arguments for zip source: {list(kwargs.keys())}"
            )
        if not path:
            raise ValueError("Zip source requires 'path' parameter")
        return ZipSourceConfig(path=str(path))

    else:
        raise ValueError(
            f"Unsupported source type: {type}. Use 'memory', 'directory' or 'zip'."
        )


def build_source(config: SourceConfig) -> FileSource:
    """Create the source described by a config."""
    if isinstance(config, MemorySourceConfig):
        return MemorySource(config.files)
    if isinstance(config, DirectorySourceConfig):
        return DirectorySource(config.root)
    if isinstance(config, ZipSourceConfig):
        return ZipSource(config.path)
    raise TypeError(f"Unknown source config: {config!r}")


def build_union(config: UnionConfig) -> FileSource:
    """Create the union view described by a config.

    Sources are merged in the listed order with ``merge_multiple``.
    """
    merged = merge_multiple(*(build_source(c) for c in config.sources))
    if isinstance(merged, MergedFS):
        merged.set_path_caching(config.path_caching)
    return merged

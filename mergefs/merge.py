"""Merging of directory listings from two sources."""

from __future__ import annotations

from .base import FileInfo
from .errors import PRIMARY, SECONDARY, DuplicateEntryError


def merged_dir_entry(a: FileInfo, b: FileInfo) -> FileInfo:
    """Return the entry for a directory present in both sources.

    Carries A's name and permission bits and the later of the two
    modification times, which is exactly what opening the directory through
    a ``MergedFS`` reports.
    """
    return FileInfo(
        name=a.name,
        is_dir=True,
        mode=a.mode,
        mtime=max(a.mtime, b.mtime),
        size=0,
    )


def name_key(name: str) -> bytes:
    """Order names and paths by their UTF-8 bytes."""
    return name.encode("utf-8", "surrogateescape")


def sort_key(entry: FileInfo) -> bytes:
    return name_key(entry.name)


def merge_dir_entries(
    entries_a: list[FileInfo], entries_b: list[FileInfo], path: str = "."
) -> list[FileInfo]:
    """Combine the listings of one directory from two sources.

    A (primary) wins every name conflict unless both entries are
    directories, in which case the pair is reconciled via
    ``merged_dir_entry``. The result is sorted by name in byte order and
    never contains a name twice.

    Args:
        entries_a: Full listing from the primary source.
        entries_b: Full listing from the secondary source.
        path: Directory being merged (for error messages).

    Raises:
        DuplicateEntryError: If either listing repeats a name.
    """
    merged: list[FileInfo] = []
    positions: dict[str, int] = {}

    for entry in entries_a:
        if entry.name in positions:
            raise DuplicateEntryError(
                f"Duplicate name '{entry.name}' in directory listing", path, PRIMARY
            )
        positions[entry.name] = len(merged)
        merged.append(entry)

    seen_b: set[str] = set()
    for entry in entries_b:
        if entry.name in seen_b:
            raise DuplicateEntryError(
                f"Duplicate name '{entry.name}' in directory listing", path, SECONDARY
            )
        seen_b.add(entry.name)

        index = positions.get(entry.name)
        if index is None:
            positions[entry.name] = len(merged)
            merged.append(entry)
            continue

        existing = merged[index]
        if not (existing.is_dir and entry.is_dir):
            # A file on either side masks the other entry.
            continue
        merged[index] = merged_dir_entry(existing, entry)

    merged.sort(key=sort_key)
    return merged

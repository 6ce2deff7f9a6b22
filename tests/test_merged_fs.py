"""Tests for MergedFS path resolution."""

import pytest

from mergefs import (
    DuplicateEntryError,
    FileInfo,
    InconsistentSourceError,
    InvalidPathError,
    MemorySource,
    MergedDirectory,
    MergedFS,
    ShadowedPathError,
    SourceError,
)
from mergefs.handles import DirectoryReader, FileReader
from mergefs.ops import read_dir


class StubHandle:
    """Handle with scripted behaviour, recording whether it was closed."""

    def __init__(self, info, entries=None, stat_error=None, list_error=None):
        self.info = info
        self.entries = entries or []
        self.stat_error = stat_error
        self.list_error = list_error
        self.closed = False

    def stat(self):
        if self.stat_error:
            raise self.stat_error
        return self.info

    def read(self, size=-1):
        return b""

    def list_children(self, n=-1):
        if self.list_error:
            raise self.list_error
        return list(self.entries)

    def close(self):
        self.closed = True


class StubSource:
    """Source returning scripted handles or raising scripted errors."""

    def __init__(self, paths):
        self.paths = paths
        self.handles = []

    def open(self, path):
        value = self.paths.get(path)
        if value is None:
            raise FileNotFoundError(path)
        if isinstance(value, BaseException):
            raise value
        handle = value()
        self.handles.append(handle)
        return handle


def dir_info(name, mtime=0.0, mode=0o755):
    return FileInfo(name=name, is_dir=True, mode=mode, mtime=mtime)


def scenario():
    """A = {a: file, b/: {x}}, B = {a/: {y}, b/: {z}}."""
    a = MemorySource({"a": b"file a", "b/x": b"x"}, mtime=100.0)
    b = MemorySource({"a/y": b"y", "b/z": b"z"}, mtime=200.0)
    return MergedFS(a, b)


class TestScenario:
    """Test the two-source reference scenario."""

    def test_primary_file_masks_secondary_directory(self):
        """Test that a file in A hides B's directory at the same path."""
        merged = scenario()
        handle = merged.open("a")
        assert isinstance(handle, FileReader)
        assert handle.stat().is_dir is False
        assert handle.read() == b"file a"

    def test_subtree_under_primary_file_unreachable(self):
        """Test that B's subtree under A's file can't be opened."""
        merged = scenario()
        with pytest.raises(ShadowedPathError):
            merged.open("a/y")

    def test_merged_directory_listing(self):
        """Test that a directory in both sources lists the union."""
        merged = scenario()
        handle = merged.open("b")
        assert isinstance(handle, MergedDirectory)
        assert [e.name for e in handle.list_children()] == ["x", "z"]

    def test_missing_everywhere(self):
        """Test that a path in neither source is not found."""
        merged = scenario()
        with pytest.raises(FileNotFoundError):
            merged.open("c")

    def test_root_listing(self):
        """Test that the root merges and masks correctly."""
        merged = scenario()
        entries = read_dir(merged, ".")
        assert [(e.name, e.is_dir) for e in entries] == [("a", False), ("b", True)]

    def test_files_through_merged_directory(self):
        """Test that files from both sides are readable through the union."""
        merged = scenario()
        assert merged.read_file("b/x") == b"x"
        assert merged.read_file("b/z") == b"z"


class TestResolution:
    """Test each branch of MergedFS.open()."""

    def test_primary_directory_secondary_missing(self):
        """Test that the primary's own handle is returned when B lacks the dir."""
        merged = MergedFS(MemorySource({"d/x": b"x"}), MemorySource({"other": b"o"}))
        handle = merged.open("d")
        assert isinstance(handle, DirectoryReader)
        assert not isinstance(handle, MergedDirectory)
        assert [e.name for e in handle.list_children()] == ["x"]

    def test_primary_directory_secondary_file(self):
        """Test that a directory in A wins over a file in B."""
        merged = MergedFS(MemorySource({"d/x": b"x"}), MemorySource({"d": b"file"}))
        handle = merged.open("d")
        assert handle.stat().is_dir is True
        assert [e.name for e in handle.list_children()] == ["x"]

    def test_secondary_file_handle_closed(self):
        """Test that a discarded secondary handle is closed."""
        primary = StubSource({"d": lambda: StubHandle(dir_info("d"))})
        secondary = StubSource(
            {"d": lambda: StubHandle(FileInfo(name="d", is_dir=False, size=3))}
        )
        handle = MergedFS(primary, secondary).open("d")
        assert handle is primary.handles[0]
        assert handle.closed is False
        assert secondary.handles[0].closed is True

    def test_source_handles_closed_after_merge(self):
        """Test that both source handles are closed once merged."""
        primary = StubSource({"d": lambda: StubHandle(dir_info("d"))})
        secondary = StubSource({"d": lambda: StubHandle(dir_info("d"))})
        handle = MergedFS(primary, secondary).open("d")
        assert isinstance(handle, MergedDirectory)
        assert primary.handles[0].closed is True
        assert secondary.handles[0].closed is True

    def test_secondary_only_path(self):
        """Test that paths only in B are returned from B unchanged."""
        b = MemorySource({"only/in/b.txt": b"b"})
        merged = MergedFS(MemorySource({"x": b"x"}), b)
        handle = merged.open("only/in/b.txt")
        assert isinstance(handle, FileReader)
        assert handle.read() == b"b"

    def test_secondary_errors_pass_through_unwrapped(self):
        """Test that B's errors for a path A doesn't have reach the caller as-is."""
        boom = PermissionError("denied")
        merged = MergedFS(MemorySource({}), StubSource({"p": boom}))
        with pytest.raises(PermissionError) as exc_info:
            merged.open("p")
        assert exc_info.value is boom

    def test_open_root(self):
        """Test that '.' is a merged directory when both roots exist."""
        merged = MergedFS(MemorySource({"a": b"a"}), MemorySource({"b": b"b"}))
        handle = merged.open(".")
        assert isinstance(handle, MergedDirectory)
        assert handle.name == "."
        assert [e.name for e in handle.list_children()] == ["a", "b"]

    @pytest.mark.parametrize(
        "path", ["", "/", "/a", "a/", "a//b", "./a", "a/./b", "a/../b", "..", "a/.."]
    )
    def test_invalid_paths(self, path):
        """Test that malformed paths are rejected as NotFound-class errors."""
        merged = scenario()
        with pytest.raises(InvalidPathError) as exc_info:
            merged.open(path)
        assert isinstance(exc_info.value, FileNotFoundError)

    def test_deep_paths(self):
        """Test resolution of very deep paths from both sides."""
        deep_a = "/".join(f"a{i}" for i in range(300)) + "/a.txt"
        deep_b = "/".join(f"b{i}" for i in range(300)) + "/b.txt"
        merged = MergedFS(MemorySource({deep_a: b"A"}), MemorySource({deep_b: b"B"}))
        assert merged.read_file(deep_a) == b"A"
        assert merged.read_file(deep_b) == b"B"


class TestMetadata:
    """Test metadata of merged directories."""

    def test_mode_from_primary_mtime_is_max(self):
        """Test that a merged dir carries A's mode and the later mtime."""
        a = MemorySource()
        a.mkdir("d", mode=0o700, mtime=10.0)
        b = MemorySource()
        b.mkdir("d", mode=0o777, mtime=20.0)
        info = MergedFS(a, b).open("d").stat()
        assert info == FileInfo(name="d", is_dir=True, mode=0o700, mtime=20.0)

    def test_listing_matches_direct_open(self):
        """Test that a dir's entry in its parent's listing equals its own stat()."""
        a = MemorySource()
        a.mkdir("p/d", mode=0o750, mtime=50.0)
        a.write("p/d/x", b"x", mtime=1.0)
        b = MemorySource()
        b.mkdir("p/d", mode=0o700, mtime=75.0)
        b.write("p/d/y", b"y", mtime=1.0)
        merged = MergedFS(a, b)

        listed = {e.name: e for e in merged.open("p").list_children()}["d"]
        direct = merged.open("p/d").stat()
        assert listed == direct
        assert direct.mtime == 75.0
        assert direct.mode == 0o750

    def test_listing_matches_direct_open_in_chain(self):
        """Test listing/open consistency across three merged sources."""
        sources = []
        for mtime in (30.0, 10.0, 90.0):
            src = MemorySource()
            src.mkdir("d", mode=0o755, mtime=mtime)
            src.write(f"d/{int(mtime)}.txt", b"t", mtime=1.0)
            sources.append(src)
        merged = MergedFS(sources[0], MergedFS(sources[1], sources[2]))
        listed = {e.name: e for e in merged.open(".").list_children()}["d"]
        assert listed == merged.open("d").stat()
        assert listed.mtime == 90.0

    def test_metadata_survives_close(self):
        """Test that closing a merged directory keeps its metadata."""
        merged = scenario()
        handle = merged.open("b")
        handle.close()
        assert handle.stat().is_dir is True
        assert handle.name == "b"
        assert handle.mode == MemorySource.DIR_MODE


class TestFatalErrors:
    """Test that non-NotFound failures are wrapped and never fall back."""

    def test_primary_open_error(self):
        """Test that A failing for an existing reason doesn't consult B."""
        secondary = MemorySource({"p": b"b"})
        merged = MergedFS(StubSource({"p": PermissionError("denied")}), secondary)
        with pytest.raises(SourceError) as exc_info:
            merged.open("p")
        assert exc_info.value.source == "primary"
        assert exc_info.value.path == "p"
        assert isinstance(exc_info.value.__cause__, PermissionError)

    def test_primary_stat_error(self):
        """Test that a failing stat() on A's handle is fatal."""
        primary = StubSource(
            {"p": lambda: StubHandle(dir_info("p"), stat_error=OSError("io"))}
        )
        with pytest.raises(SourceError) as exc_info:
            MergedFS(primary, MemorySource()).open("p")
        assert exc_info.value.source == "primary"
        assert primary.handles[0].closed is True

    def test_primary_stat_not_found_is_still_fatal(self):
        """Test that stat() raising FileNotFoundError is not treated as absent."""
        primary = StubSource(
            {"p": lambda: StubHandle(dir_info("p"), stat_error=FileNotFoundError("p"))}
        )
        with pytest.raises(SourceError):
            MergedFS(primary, MemorySource({"p": b"b"})).open("p")

    def test_secondary_open_error_when_primary_is_dir(self):
        """Test that B failing while A has a directory is fatal."""
        primary = MemorySource({"d/x": b"x"})
        merged = MergedFS(primary, StubSource({"d": OSError("io")}))
        with pytest.raises(SourceError) as exc_info:
            merged.open("d")
        assert exc_info.value.source == "secondary"
        assert exc_info.value.path == "d"

    def test_secondary_stat_error(self):
        """Test that a failing stat() on B's handle is fatal."""
        secondary = StubSource(
            {"d": lambda: StubHandle(dir_info("d"), stat_error=OSError("io"))}
        )
        with pytest.raises(SourceError) as exc_info:
            MergedFS(MemorySource({"d/x": b"x"}), secondary).open("d")
        assert exc_info.value.source == "secondary"
        assert secondary.handles[0].closed is True

    def test_duplicate_names_in_listing(self):
        """Test that a source listing a name twice is fatal."""
        entry = FileInfo(name="x", is_dir=False)
        primary = StubSource(
            {"d": lambda: StubHandle(dir_info("d"), entries=[entry, entry])}
        )
        secondary = StubSource({"d": lambda: StubHandle(dir_info("d"))})
        with pytest.raises(DuplicateEntryError):
            MergedFS(primary, secondary).open("d")
        assert primary.handles[0].closed is True
        assert secondary.handles[0].closed is True

    def test_directory_that_cannot_be_listed(self):
        """Test that a dir whose listing reports NotADirectory is inconsistent."""
        primary = StubSource(
            {"d": lambda: StubHandle(dir_info("d"), list_error=NotADirectoryError("d"))}
        )
        secondary = StubSource({"d": lambda: StubHandle(dir_info("d"))})
        with pytest.raises(InconsistentSourceError) as exc_info:
            MergedFS(primary, secondary).open("d")
        assert exc_info.value.source == "primary"

    def test_listing_io_error(self):
        """Test that an I/O error while listing is fatal."""
        primary = StubSource({"d": lambda: StubHandle(dir_info("d"))})
        secondary = StubSource(
            {"d": lambda: StubHandle(dir_info("d"), list_error=OSError("io"))}
        )
        with pytest.raises(SourceError) as exc_info:
            MergedFS(primary, secondary).open("d")
        assert exc_info.value.source == "secondary"
        assert not isinstance(exc_info.value, InconsistentSourceError)


class TestChangingSources:
    """Test behaviour when a source changes between calls."""

    def test_new_primary_file_blocks_subtree_without_caching(self):
        """Test that a file added to A hides B's directory once caching is off."""
        primary = MemorySource({"top.txt": b"t"})
        merged = MergedFS(primary, MemorySource({"b/0.txt": b"0", "b/1.txt": b"1"}))
        assert merged.read_file("b/0.txt") == b"0"
        assert len(merged.cached_prefixes()) > 0

        merged.set_path_caching(False)
        assert merged.cached_prefixes() == frozenset()
        assert merged.read_file("b/0.txt") == b"0"
        assert merged.cached_prefixes() == frozenset()

        primary.write("b", b"")
        with pytest.raises(ShadowedPathError):
            merged.open("b/0.txt")
        assert merged.open("b").stat().is_dir is False

    def test_reenabled_caching_sees_current_state(self):
        """Test that re-enabling caching doesn't revive stale prefixes."""
        primary = MemorySource({"top.txt": b"t"})
        merged = MergedFS(primary, MemorySource({"b/0.txt": b"0"}))
        merged.read_file("b/0.txt")
        merged.set_path_caching(False)
        primary.write("b", b"")
        merged.set_path_caching(True)
        with pytest.raises(ShadowedPathError):
            merged.open("b/0.txt")
        assert "b/0.txt" not in merged.cached_prefixes()

    def test_removed_primary_file_unblocks_subtree(self):
        """Test that removing A's blocking file exposes B's directory again."""
        primary = MemorySource({"b": b"blocker"})
        merged = MergedFS(primary, MemorySource({"b/0.txt": b"0"}))
        with pytest.raises(ShadowedPathError):
            merged.open("b/0.txt")
        primary.remove("b")
        assert merged.read_file("b/0.txt") == b"0"

    def test_toggle_does_not_change_results(self):
        """Test that caching on or off gives identical answers."""
        paths = [".", "a", "a/y", "b", "b/x", "b/z", "c", "b/x/deeper"]

        def outcome(merged, path):
            try:
                handle = merged.open(path)
            except FileNotFoundError as exc:
                return type(exc)
            info = handle.stat()
            names = [e.name for e in handle.list_children()] if info.is_dir else None
            return info, names

        merged = scenario()
        cached = [outcome(merged, p) for p in paths + paths]
        merged.set_path_caching(False)
        uncached = [outcome(merged, p) for p in paths + paths]
        assert cached == uncached

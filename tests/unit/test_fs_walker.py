"""
Unit tests for the filesystem walker module.

Tests directory traversal, the per-kind matching table, the depth limit,
tolerance of listing failures and the statistics of the FSWalker class.
"""

import os
import tempfile
import shutil
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import patch, MagicMock
import pytest

from treefind.errors import RootNotFoundError
from treefind.models.diagnostics import Diagnostic, DiagnosticKind
from treefind.models.predicates import EntryKind, PredicateSet
from treefind.tools.fs_walker import FSWalker, find


real_scandir = os.scandir


class FakeScandir:
    """Stand-in for a scandir iterator that fails on selected entries."""

    def __init__(self, items):
        self._items = iter(items)
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.closed = True
        return False

    def __iter__(self):
        return self

    def __next__(self):
        item = next(self._items)
        if isinstance(item, Exception):
            raise item
        return item


class TestFSWalker:
    """Test cases for the FSWalker class."""

    def setup_method(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.mkdtemp()
        self.root = self.temp_dir
        self._create_test_structure()

    def teardown_method(self):
        """Clean up test fixtures."""
        if os.path.exists(self.temp_dir):
            shutil.rmtree(self.temp_dir)

    def _create_test_structure(self):
        """
        Create the test tree::

            a.rs              10 bytes
            b.txt             2048 bytes
            link.rs -> a.rs
            sub/c.rs
            sub/deeper/d.rs
            sub/deeper/deepest/e.rs
        """
        root = Path(self.root)
        (root / "sub" / "deeper" / "deepest").mkdir(parents=True)
        (root / "a.rs").write_bytes(b"x" * 10)
        (root / "b.txt").write_bytes(b"x" * 2048)
        (root / "sub" / "c.rs").write_text("c")
        (root / "sub" / "deeper" / "d.rs").write_text("d")
        (root / "sub" / "deeper" / "deepest" / "e.rs").write_text("e")
        os.symlink(root / "a.rs", root / "link.rs")

    def _path(self, *parts):
        return os.path.join(self.root, *parts)

    def _walk(self, **options):
        walker = FSWalker(self.root, PredicateSet.from_options(**options))
        return walker, list(walker.walk())

    def _level(self, path):
        """Nesting level of ``path`` below the root; the root is level 0."""
        relative = os.path.relpath(path, self.root)
        return 0 if relative == "." else len(Path(relative).parts)

    def test_walk_regular_files(self):
        """Test that the default kind reports every regular file and nothing else."""
        walker, matches = self._walk()

        assert set(matches) == {
            self._path("a.rs"),
            self._path("b.txt"),
            self._path("sub", "c.rs"),
            self._path("sub", "deeper", "d.rs"),
            self._path("sub", "deeper", "deepest", "e.rs"),
        }
        assert walker.diagnostics == []

    def test_name_glob(self):
        """Test glob name filtering; the .rs symlink is not a regular file."""
        _, matches = self._walk(name="*.rs")

        assert set(matches) == {
            self._path("a.rs"),
            self._path("sub", "c.rs"),
            self._path("sub", "deeper", "d.rs"),
            self._path("sub", "deeper", "deepest", "e.rs"),
        }

    def test_name_regex(self):
        """Test regex name filtering against the final component."""
        _, matches = self._walk(regex=r"^[ab]\.")
        assert set(matches) == {self._path("a.rs"), self._path("b.txt")}

    def test_size_filter(self):
        """Test size filtering of regular files."""
        _, matches = self._walk(size="+1K")
        assert matches == [self._path("b.txt")]

        _, matches = self._walk(size="10")
        assert matches == [self._path("a.rs")]

    def test_symlinks(self):
        """Test that symlinks are reported by kind and name, ignoring size."""
        _, matches = self._walk(kind="s")
        assert matches == [self._path("link.rs")]

        _, matches = self._walk(kind="s", name="*.rs", size="+1G")
        assert matches == [self._path("link.rs")]

        _, matches = self._walk(kind="s", name="*.txt")
        assert matches == []

    def test_symlinked_directory_not_followed(self):
        """Test that a symlink to a directory is never descended into."""
        os.symlink(self._path("sub"), self._path("sub.link"))

        _, matches = self._walk(name="c.rs")

        assert matches == [self._path("sub", "c.rs")]

    def test_directories(self):
        """Test that directories, including the root, are reported by kind alone."""
        _, matches = self._walk(kind="d", name="nothing-matches", size="+1G")

        assert set(matches) == {
            self.root,
            self._path("sub"),
            self._path("sub", "deeper"),
            self._path("sub", "deeper", "deepest"),
        }

    def test_pre_order(self):
        """Test that a directory is reported before its descendants."""
        _, matches = self._walk(kind="d")

        assert matches[0] == self.root
        assert matches.index(self._path("sub")) < matches.index(self._path("sub", "deeper"))
        assert matches.index(self._path("sub", "deeper")) < matches.index(self._path("sub", "deeper", "deepest"))

    def test_depth_limit(self):
        """Test that nothing below the configured depth is visited or reported."""
        for depth in range(1, 5):
            visited = []
            with patch("treefind.tools.fs_walker.EntryKind.of", side_effect=self._recording_classifier(visited)):
                _, matches = self._walk(kind="f", depth=depth)

            assert all(self._level(path) <= depth for path in visited)
            assert all(self._level(path) <= depth for path in matches)
            assert max(self._level(path) for path in visited) == min(depth, 4)

    def _recording_classifier(self, visited):
        real_of = EntryKind.of

        def classify(path):
            visited.append(path)
            return real_of(path)
        return classify

    def test_depth_limit_reports_boundary_directory(self):
        """Test that a directory at the limit is reported but not listed."""
        _, matches = self._walk(kind="d", depth=1)
        assert set(matches) == {self.root, self._path("sub")}

        _, matches = self._walk(kind="f", depth=1)
        assert set(matches) == {self._path("a.rs"), self._path("b.txt")}

    def test_paths_are_not_canonicalized(self):
        """Test that matches keep the root exactly as given."""
        root = os.path.join(self.root, ".")
        matches = find(root, PredicateSet.from_options(name="c.rs"))

        assert matches == [os.path.join(root, "sub", "c.rs")]

    def test_root_is_regular_file(self):
        """Test that a file root is reported when it matches."""
        matches = find(self._path("a.rs"), PredicateSet.from_options(name="*.rs"))
        assert matches == [self._path("a.rs")]

        matches = find(self._path("a.rs"), PredicateSet.from_options(kind="d"))
        assert matches == []

    def test_root_accepts_path_objects(self):
        """Test that a pathlib root works like a str root."""
        matches = find(Path(self.root), PredicateSet.from_options(name="a.rs"))
        assert matches == [self._path("a.rs")]

    def test_missing_root(self):
        """Test that a missing root raises before any listing."""
        walker = FSWalker(self._path("missing"), PredicateSet())

        with patch("treefind.tools.fs_walker.os.scandir") as mock_scandir:
            with pytest.raises(RootNotFoundError, match="no such file or directory"):
                list(walker.walk())
            mock_scandir.assert_not_called()

        assert walker.get_stats()["entries_visited"] == 0

    def test_check_root(self):
        """Test root classification."""
        assert FSWalker(self.root, PredicateSet()).check_root() is EntryKind.DIRECTORY
        with pytest.raises(RootNotFoundError):
            FSWalker(self._path("missing"), PredicateSet()).check_root()

    def test_dangling_symlink_root(self):
        """Test that a symlink root pointing nowhere counts as missing."""
        dangling = self._path("dangling")
        os.symlink(self._path("missing"), dangling)
        walker = FSWalker(dangling, PredicateSet.from_options(kind="s"))

        with pytest.raises(RootNotFoundError, match="no such file or directory"):
            list(walker.walk())

        assert walker.get_stats()["entries_visited"] == 0
        assert FSWalker(self._path("link.rs"), PredicateSet()).check_root() is EntryKind.SYMBOLIC_LINK

    def test_unreadable_child_directory(self):
        """Test that one unreadable directory yields one diagnostic and the walk goes on."""
        locked = self._path("sub")
        sink = MagicMock()

        def scandir(path):
            if path == locked:
                raise PermissionError(13, "Permission denied", path)
            return real_scandir(path)

        walker = FSWalker(self.root, PredicateSet(), diagnostic_sink=sink)
        with patch("treefind.tools.fs_walker.os.scandir", side_effect=scandir):
            matches = list(walker.walk())

        assert set(matches) == {self._path("a.rs"), self._path("b.txt")}
        assert len(walker.diagnostics) == 1

        diagnostic = walker.diagnostics[0]
        assert diagnostic.path == locked
        assert diagnostic.kind is DiagnosticKind.LIST_DIRECTORY
        assert diagnostic.message == "Permission denied"
        assert diagnostic.errno == 13
        sink.assert_called_once_with(diagnostic)
        assert walker.depth == 0

    def test_unreadable_entry_is_skipped(self):
        """Test that a failing entry read is reported and the listing continues."""
        fake = FakeScandir([
            OSError(5, "Input/output error"),
            SimpleNamespace(name="a.rs"),
            SimpleNamespace(name="b.txt"),
        ])

        def scandir(path):
            if path == self.root:
                return fake
            return real_scandir(path)

        walker = FSWalker(self.root, PredicateSet())
        with patch("treefind.tools.fs_walker.os.scandir", side_effect=scandir):
            matches = list(walker.walk())

        assert matches == [self._path("a.rs"), self._path("b.txt")]
        assert [d.kind for d in walker.diagnostics] == [DiagnosticKind.READ_ENTRY]
        assert walker.diagnostics[0].path == self.root
        assert fake.closed

    def test_repeated_entry_failures_end_listing(self):
        """Test that two failures in a row stop that listing only."""
        fake = FakeScandir([
            OSError(5, "Input/output error"),
            OSError(5, "Input/output error"),
            SimpleNamespace(name="a.rs"),
        ])

        walker = FSWalker(self.root, PredicateSet(), diagnostic_sink=MagicMock())
        with patch("treefind.tools.fs_walker.os.scandir", return_value=fake):
            matches = list(walker.walk())

        assert matches == []
        assert len(walker.diagnostics) == 2
        assert walker.diagnostic_sink.call_count == 2

    @pytest.mark.skipif(not hasattr(os, "mkfifo"), reason="requires mkfifo")
    def test_special_files_are_silently_excluded(self):
        """Test that UNKNOWN entries are neither reported nor diagnosed."""
        os.mkfifo(self._path("pipe"))

        for kind in ["f", "d", "s"]:
            walker, matches = self._walk(kind=kind)
            assert self._path("pipe") not in matches
            assert walker.diagnostics == []

    def test_depth_restored_after_early_close(self):
        """Test that closing the generator mid-walk unwinds the depth counter."""
        walker = FSWalker(self.root, PredicateSet.from_options(name="e.rs"))
        walk = walker.walk()

        assert next(walk) == self._path("sub", "deeper", "deepest", "e.rs")
        assert walker.depth == 4

        walk.close()
        assert walker.depth == 0

    def test_idempotent(self):
        """Test that walking an unmodified tree twice gives the same matches."""
        predicates = PredicateSet.from_options(name="*.rs")

        first = find(self.root, predicates)
        second = find(self.root, predicates)

        assert first == second

    def test_stats_tracking(self):
        """Test that statistics are properly tracked."""
        walker, matches = self._walk(name="*.rs")
        stats = walker.get_stats()

        # root + 4 top-level entries + 2 in sub + 2 in deeper + 1 in deepest
        assert stats["entries_visited"] == 10
        assert stats["directories_traversed"] == 4
        assert stats["matches"] == len(matches) == 4
        assert stats["errors"] == 0

        walker.reset_stats()
        assert walker.get_stats() == {
            "entries_visited": 0,
            "directories_traversed": 0,
            "matches": 0,
            "errors": 0
        }

    def test_stats_count_errors(self):
        """Test that diagnostics are counted as errors."""
        walker = FSWalker(self.root, PredicateSet())
        with patch("treefind.tools.fs_walker.os.scandir", side_effect=FileNotFoundError(2, "No such file or directory")):
            assert list(walker.walk()) == []

        assert walker.get_stats()["errors"] == 1
        assert isinstance(walker.diagnostics[0], Diagnostic)

        walker.reset_stats()
        assert walker.diagnostics == []

"""
Filesystem walker for Treefind.

This module walks a directory tree depth-first, classifies every entry without
following symbolic links, applies a PredicateSet to it and yields the paths
that match. Failures to list a directory or read one of its entries are
reported as diagnostics and the walk carries on with the rest of the tree.
"""

import os
import logging
from typing import Dict, Iterator, List, Optional, Union

from ..errors import RootNotFoundError
from ..models.diagnostics import Diagnostic, DiagnosticKind, DiagnosticSink
from ..models.predicates import EntryKind, PredicateSet


logger = logging.getLogger(__name__)


class FSWalker:
    """
    Filesystem walker that traverses a directory tree and yields matches.

    The walker owns the only mutable traversal state: the current depth,
    which goes up by one when a directory listing is entered and back down
    when it is left, whatever happened inside it.

    Matches are the paths as walked: the root exactly as given, joined with
    entry names, never resolved. Diagnostics are collected in
    ``self.diagnostics`` and passed to ``diagnostic_sink`` when one is given.
    """

    def __init__(self,
                 root: Union[str, os.PathLike],
                 predicates: PredicateSet,
                 diagnostic_sink: Optional[DiagnosticSink] = None):
        """
        Initialize the filesystem walker.

        Args:
            root: Path the traversal starts from
            predicates: Matching criteria applied to every entry
            diagnostic_sink: Optional callable receiving each diagnostic
        """
        self.root = os.fsdecode(root)
        self.predicates = predicates
        self.diagnostic_sink = diagnostic_sink
        self.diagnostics: List[Diagnostic] = []
        self._depth = 0
        self._stats = self._empty_stats()

    @property
    def depth(self) -> int:
        """Number of directory levels currently descended below the root."""
        return self._depth

    def check_root(self) -> EntryKind:
        """
        Classify the root path.

        Returns:
            The root's EntryKind

        Raises:
            RootNotFoundError: If the root is missing, is a dangling symlink or
                its type cannot be determined
        """
        kind = EntryKind.of(self.root)
        if kind is EntryKind.UNKNOWN:
            raise RootNotFoundError(self.root)
        if kind is EntryKind.SYMBOLIC_LINK and not os.path.exists(self.root):
            raise RootNotFoundError(self.root)
        return kind

    def walk(self) -> Iterator[str]:
        """
        Walk the tree below the root and yield every matching path.

        The root is checked before anything is listed, so a missing root
        raises on the first ``next()`` without touching the filesystem further.

        Yields:
            Matching paths, depth-first and pre-order

        Raises:
            RootNotFoundError: If the root is missing or its type cannot be determined
        """
        root_kind = self.check_root()
        logger.info(f"Walking directory tree: {self.root}")
        yield from self._visit(self.root, root_kind)

    def _visit(self, path: str, kind: EntryKind) -> Iterator[str]:
        """Report ``path`` if it matches, then descend into it if it is a directory."""
        self._stats['entries_visited'] += 1

        if self.predicates.matches(path, kind):
            self._stats['matches'] += 1
            yield path

        if kind is EntryKind.DIRECTORY:
            yield from self._descend(path)

    def _descend(self, path: str) -> Iterator[str]:
        """Enter a directory one level deeper, unless the depth limit is reached."""
        if not self.predicates.allows_descent(self._depth):
            logger.debug(f"Depth limit {self.predicates.max_depth} reached, not listing {path}")
            return

        self._depth += 1
        try:
            yield from self._walk_directory(path)
        finally:
            self._depth -= 1

    def _walk_directory(self, path: str) -> Iterator[str]:
        """
        List one directory and visit each of its entries.

        Args:
            path: Directory to list

        Yields:
            Matching paths found below ``path``
        """
        try:
            entries = os.scandir(path)
        except OSError as e:
            self._report(Diagnostic.from_os_error(path, DiagnosticKind.LIST_DIRECTORY, e))
            return

        self._stats['directories_traversed'] += 1

        with entries:
            previous_failed = False
            while True:
                try:
                    entry = next(entries)
                except StopIteration:
                    break
                except OSError as e:
                    self._report(Diagnostic.from_os_error(path, DiagnosticKind.READ_ENTRY, e))
                    # CPython's scandir stops after a readdir error; other
                    # iterators may keep raising, so a second failure in a row ends the listing.
                    if previous_failed:
                        break
                    previous_failed = True
                    continue

                previous_failed = False
                child = os.path.join(path, entry.name)
                yield from self._visit(child, EntryKind.of(child))

    def _report(self, diagnostic: Diagnostic) -> None:
        """Record a diagnostic and forward it to the sink."""
        self._stats['errors'] += 1
        self.diagnostics.append(diagnostic)
        logger.debug(f"Traversal error ({diagnostic.kind.value}): {diagnostic}")
        if self.diagnostic_sink is not None:
            self.diagnostic_sink(diagnostic)

    @staticmethod
    def _empty_stats() -> Dict[str, int]:
        return {
            'entries_visited': 0,
            'directories_traversed': 0,
            'matches': 0,
            'errors': 0
        }

    def get_stats(self) -> Dict[str, int]:
        """
        Get statistics about the filesystem walking operation.

        Returns:
            Dictionary containing operation statistics
        """
        return self._stats.copy()

    def reset_stats(self) -> None:
        """Reset the statistics counters and collected diagnostics."""
        self._stats = self._empty_stats()
        self.diagnostics = []


def find(root: Union[str, os.PathLike],
         predicates: PredicateSet,
         diagnostic_sink: Optional[DiagnosticSink] = None) -> List[str]:
    """
    Convenience function to collect every match below ``root``.

    Args:
        root: Path the traversal starts from
        predicates: Matching criteria
        diagnostic_sink: Optional callable receiving each diagnostic

    Returns:
        List of matching paths in traversal order

    Raises:
        RootNotFoundError: If the root is missing or its type cannot be determined
    """
    walker = FSWalker(root, predicates, diagnostic_sink=diagnostic_sink)
    return list(walker.walk())

"""
Predicate data models for Treefind.

This module defines the matching criteria applied to every visited filesystem
entry: the entry kind, the name matcher, the size constraint and the depth
bound. All models are immutable once built and their evaluation methods never
raise; an entry that cannot be inspected simply does not match.
"""

import os
import re
import stat
import logging
from enum import Enum
from typing import Dict, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator

from ..errors import (
    AmbiguousNameMatcherError,
    InvalidDepthError,
    InvalidNamePatternError,
    UnknownEntryKindError,
    UnknownSizeError,
)


logger = logging.getLogger(__name__)

PathLike = Union[str, bytes, "os.PathLike[str]"]


class EntryKind(Enum):
    """Classification of a filesystem entry, read without following symlinks."""
    REGULAR_FILE = "file"
    DIRECTORY = "directory"
    SYMBOLIC_LINK = "symlink"
    UNKNOWN = "unknown"

    @classmethod
    def from_token(cls, token: str) -> 'EntryKind':
        """Resolve a user-supplied type selector such as ``f``, ``d`` or ``s``."""
        kind = _KIND_TOKENS.get(token.strip().lower()) if isinstance(token, str) else None
        if kind is None:
            raise UnknownEntryKindError(str(token))
        return kind

    @classmethod
    def from_mode(cls, mode: int) -> 'EntryKind':
        """Classify an ``st_mode`` value. Fifos, sockets and devices are UNKNOWN."""
        if stat.S_ISDIR(mode):
            return cls.DIRECTORY
        if stat.S_ISLNK(mode):
            return cls.SYMBOLIC_LINK
        if stat.S_ISREG(mode):
            return cls.REGULAR_FILE
        return cls.UNKNOWN

    @classmethod
    def of(cls, path: PathLike) -> 'EntryKind':
        """Classify ``path`` from its lstat metadata; unreadable metadata is UNKNOWN."""
        try:
            return cls.from_mode(os.lstat(path).st_mode)
        except (OSError, ValueError):
            return cls.UNKNOWN


_KIND_TOKENS: Dict[str, EntryKind] = {
    'f': EntryKind.REGULAR_FILE,
    'file': EntryKind.REGULAR_FILE,
    'd': EntryKind.DIRECTORY,
    'dir': EntryKind.DIRECTORY,
    'directory': EntryKind.DIRECTORY,
    's': EntryKind.SYMBOLIC_LINK,
    'l': EntryKind.SYMBOLIC_LINK,
    'symlink': EntryKind.SYMBOLIC_LINK,
}


class SizeComparison(Enum):
    """How an entry's byte length is compared with a size constraint."""
    EXACTLY = "eq"
    AT_LEAST = "gte"
    AT_MOST = "lte"


_SIZE_TOKEN = re.compile(r'([+-]?)([0-9]+)([KMG]?)')

_SIZE_UNITS = {
    '': 1,
    'K': 1024,
    'M': 1024 * 1024,
    'G': 1024 * 1024 * 1024,
}

_SIZE_SIGNS = {
    '': SizeComparison.EXACTLY,
    '+': SizeComparison.AT_LEAST,
    '-': SizeComparison.AT_MOST,
}


class SizeConstraint(BaseModel):
    """
    A constraint on a regular file's byte length.

    Attributes:
        comparison: Whether the length must equal, reach or not exceed the bound
        size_bytes: The bound in raw bytes, units already multiplied in
    """

    model_config = ConfigDict(frozen=True)

    comparison: SizeComparison = Field(..., description="Comparison applied to the entry size")
    size_bytes: int = Field(..., ge=0, description="Bound in bytes")

    @classmethod
    def parse(cls, token: str) -> 'SizeConstraint':
        """
        Parse a size token such as ``+5K``, ``-10M`` or ``100``.

        Args:
            token: Size token in the form ``[+-]?<digits>[KMG]?``

        Returns:
            SizeConstraint with the value converted to bytes

        Raises:
            UnknownSizeError: If the token does not match the grammar
        """
        if not isinstance(token, str):
            raise UnknownSizeError(repr(token))

        match = _SIZE_TOKEN.fullmatch(token)
        if not match:
            raise UnknownSizeError(token)

        sign, digits, unit = match.groups()
        return cls(
            comparison=_SIZE_SIGNS[sign],
            size_bytes=int(digits) * _SIZE_UNITS[unit],
        )

    def admits(self, size: int) -> bool:
        """Check whether a byte length satisfies this constraint."""
        if self.comparison is SizeComparison.EXACTLY:
            return size == self.size_bytes
        if self.comparison is SizeComparison.AT_LEAST:
            return size >= self.size_bytes
        if self.comparison is SizeComparison.AT_MOST:
            return size <= self.size_bytes
        raise ValueError(f"Unhandled size comparison: {self.comparison!r}")

    def __str__(self) -> str:
        operator = {
            SizeComparison.EXACTLY: "==",
            SizeComparison.AT_LEAST: ">=",
            SizeComparison.AT_MOST: "<=",
        }[self.comparison]
        return f"size {operator} {self.size_bytes} bytes"


class NameSource(Enum):
    """Where a name matcher's pattern came from."""
    REGEX = "regex"
    GLOB = "name"
    IGLOB = "iname"


class NameMatcher(BaseModel):
    """
    Compiled pattern applied to an entry's final path component.

    A regular expression is searched anywhere in the name. Glob patterns
    expand each ``*`` to any sequence, treat every other character literally
    and must match the whole name; ``IGLOB`` ignores case.

    Attributes:
        source: Which kind of pattern was supplied
        pattern: The pattern text as supplied by the user
    """

    model_config = ConfigDict(frozen=True)

    source: NameSource = Field(..., description="Kind of pattern")
    pattern: str = Field(..., description="Pattern text as supplied")

    _regex: re.Pattern = PrivateAttr()

    def model_post_init(self, __context) -> None:
        """Compile the pattern once."""
        if self.source is NameSource.REGEX:
            expression, flags = self.pattern, 0
        else:
            expression = glob_to_regex(self.pattern)
            flags = re.IGNORECASE if self.source is NameSource.IGLOB else 0

        try:
            self._regex = re.compile(expression, flags)
        except re.error as e:
            raise InvalidNamePatternError(f"name matcher can't be decoded: {self.pattern!r}: {e}") from e

    @classmethod
    def from_sources(cls,
                     regex: Optional[str] = None,
                     glob: Optional[str] = None,
                     iglob: Optional[str] = None) -> 'NameMatcher':
        """
        Build a matcher from exactly one of the three pattern sources.

        Raises:
            AmbiguousNameMatcherError: If zero or more than one source is given
            InvalidNamePatternError: If the pattern does not compile
        """
        supplied = [
            (source, pattern)
            for source, pattern in (
                (NameSource.REGEX, regex),
                (NameSource.GLOB, glob),
                (NameSource.IGLOB, iglob),
            )
            if pattern is not None
        ]

        if not supplied:
            raise AmbiguousNameMatcherError("name matcher needs one of regex, name or iname")
        if len(supplied) > 1:
            names = ", ".join(source.value for source, _ in supplied)
            raise AmbiguousNameMatcherError(f"more than one name matcher supplied: {names}")

        source, pattern = supplied[0]
        return cls(source=source, pattern=pattern)

    def matches(self, name: str) -> bool:
        """Test a single path component against the pattern."""
        if self.source is NameSource.REGEX:
            return self._regex.search(name) is not None
        return self._regex.fullmatch(name) is not None

    def __str__(self) -> str:
        return f"{self.source.value} {self.pattern!r}"


def glob_to_regex(pattern: str) -> str:
    """Translate a ``*`` glob into a regular expression, escaping everything else."""
    return '.*'.join(re.escape(part) for part in pattern.split('*'))


def entry_name(path: PathLike) -> Optional[str]:
    """
    Get the final path component of ``path`` as text.

    Returns None for paths without a usable final component (``/``, ``.``,
    ``..``) and for names that are not valid UTF-8.
    """
    raw = os.fspath(path)
    if isinstance(raw, bytes):
        try:
            raw = raw.decode('utf-8')
        except UnicodeDecodeError:
            return None

    name = os.path.basename(os.path.normpath(raw))
    if name in ('', '.', '..'):
        return None

    try:
        # Undecodable bytes survive in str paths as lone surrogates.
        name.encode('utf-8')
    except UnicodeEncodeError:
        return None
    return name


class PredicateSet(BaseModel):
    """
    Immutable bundle of matching criteria for one search.

    Predicates combine with AND. Name and size only apply where they make
    sense: directories are matched on kind alone, symlinks on kind and name,
    regular files on kind, name and size.

    Attributes:
        kind: Entry kind to report
        name: Optional matcher for the final path component
        size: Optional constraint on regular file length
        max_depth: Optional maximum number of directory levels to descend
    """

    model_config = ConfigDict(frozen=True)

    kind: EntryKind = Field(EntryKind.REGULAR_FILE, description="Entry kind to report")
    name: Optional[NameMatcher] = Field(None, description="Name matcher")
    size: Optional[SizeConstraint] = Field(None, description="Size constraint")
    max_depth: Optional[int] = Field(None, description="Maximum traversal depth")

    @field_validator('kind', mode='before')
    @classmethod
    def validate_kind(cls, v) -> EntryKind:
        """Accept selector tokens and reject UNKNOWN as a target."""
        if isinstance(v, str):
            v = EntryKind.from_token(v)
        if v is EntryKind.UNKNOWN:
            raise UnknownEntryKindError(v.value)
        return v

    @field_validator('max_depth', mode='before')
    @classmethod
    def validate_max_depth(cls, v) -> Optional[int]:
        """Depth must be a positive integer when given."""
        if v is None:
            return v
        if isinstance(v, bool) or not isinstance(v, int) or v <= 0:
            raise InvalidDepthError(v)
        return v

    @classmethod
    def from_options(cls,
                     kind: str = 'f',
                     size: Optional[str] = None,
                     name: Optional[str] = None,
                     iname: Optional[str] = None,
                     regex: Optional[str] = None,
                     depth: Optional[int] = None) -> 'PredicateSet':
        """
        Build a PredicateSet from raw option tokens.

        Args:
            kind: Entry kind selector (``f``, ``d`` or ``s``)
            size: Optional size token
            name: Optional glob pattern
            iname: Optional case-insensitive glob pattern
            regex: Optional regular expression
            depth: Optional positive maximum depth

        Returns:
            Validated PredicateSet

        Raises:
            ConfigurationError: One of its subclasses for each invalid option
        """
        matcher = None
        if regex is not None or name is not None or iname is not None:
            matcher = NameMatcher.from_sources(regex=regex, glob=name, iglob=iname)

        constraint = SizeConstraint.parse(size) if size is not None else None

        return cls(kind=kind, name=matcher, size=constraint, max_depth=depth)

    def is_target_kind(self, kind: EntryKind) -> bool:
        """Check whether ``kind`` is the kind being searched for."""
        return kind is self.kind

    def matches_name(self, path: PathLike) -> bool:
        """Match the final component of ``path``; always True without a matcher."""
        if self.name is None:
            return True

        name = entry_name(path)
        if name is None:
            return False
        return self.name.matches(name)

    def matches_size(self, path: PathLike) -> bool:
        """Compare the byte length of ``path``; always True without a constraint."""
        if self.size is None:
            return True

        try:
            size = os.stat(path).st_size
        except (OSError, ValueError) as e:
            logger.debug(f"Cannot read size of {path!r}: {e}")
            return False
        return self.size.admits(size)

    def matches(self, path: PathLike, kind: EntryKind) -> bool:
        """
        Decide whether an already classified entry should be reported.

        Args:
            path: Path of the entry as walked
            kind: Entry kind from ``EntryKind.of``

        Returns:
            True if the entry satisfies every applicable predicate
        """
        if kind is EntryKind.REGULAR_FILE:
            return self.is_target_kind(kind) and self.matches_name(path) and self.matches_size(path)
        if kind is EntryKind.SYMBOLIC_LINK:
            return self.is_target_kind(kind) and self.matches_name(path)
        if kind is EntryKind.DIRECTORY:
            return self.is_target_kind(kind)
        if kind is EntryKind.UNKNOWN:
            return False
        raise ValueError(f"Unhandled entry kind: {kind!r}")

    def allows_descent(self, depth: int) -> bool:
        """Check whether a directory at ``depth`` may be listed."""
        return self.max_depth is None or depth < self.max_depth

    def __str__(self) -> str:
        parts = [f"Type: {self.kind.value}"]
        if self.name is not None:
            parts.append(f"Name: {self.name}")
        if self.size is not None:
            parts.append(f"Size: {self.size}")
        if self.max_depth is not None:
            parts.append(f"Max depth: {self.max_depth}")
        return " | ".join(parts)

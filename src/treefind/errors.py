"""
Exception hierarchy for Treefind.

Configuration errors are raised while the search options are being built and
before any directory is listed. Traversal problems are never raised; they are
reported as diagnostics by the walker.
"""


class TreefindError(Exception):
    """Base class for all Treefind errors."""
    pass


class ConfigurationError(TreefindError):
    """Raised when search options or the configuration file are invalid."""
    pass


class UnknownSizeError(ConfigurationError):
    """Raised when a size token does not match ``[+-]?<digits>[KMG]?``."""

    def __init__(self, token: str):
        self.token = token
        super().__init__(f"unknown size type: {token}")


class AmbiguousNameMatcherError(ConfigurationError):
    """Raised when not exactly one of regex, name or iname is supplied."""
    pass


class InvalidNamePatternError(ConfigurationError):
    """Raised when a name pattern cannot be compiled."""
    pass


class InvalidDepthError(ConfigurationError):
    """Raised when the maximum depth is not a positive integer."""

    def __init__(self, depth):
        self.depth = depth
        super().__init__(f"depth should be >0, got {depth!r}")


class UnknownEntryKindError(ConfigurationError):
    """Raised when the entry-kind selector is not one of file, dir or symlink."""

    def __init__(self, token: str):
        self.token = token
        super().__init__(f"unknown type: {token}")


class RootNotFoundError(TreefindError):
    """Raised when the traversal root is missing or its type cannot be determined."""

    def __init__(self, root: str):
        self.root = root
        super().__init__(f"{root}: no such file or directory")

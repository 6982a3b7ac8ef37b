"""
Diagnostic data models for Treefind.

A diagnostic describes a traversal-time failure that did not stop the search:
a directory that could not be listed or a directory entry that could not be
read. Diagnostics travel on their own channel, separate from the matches.
"""

from typing import Any, Callable, Dict, Optional
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field


class DiagnosticKind(Enum):
    """Which filesystem operation failed."""
    LIST_DIRECTORY = "list_directory"
    READ_ENTRY = "read_entry"


class Diagnostic(BaseModel):
    """
    A non-fatal traversal failure.

    Attributes:
        path: Path of the directory or entry as walked
        kind: Which operation failed
        message: Human-readable description of the failure
        errno: OS error number, when one was reported
    """

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., description="Path as walked")
    kind: DiagnosticKind = Field(..., description="Failed operation")
    message: str = Field(..., description="Description of the failure")
    errno: Optional[int] = Field(None, description="OS error number")

    @classmethod
    def from_os_error(cls, path: str, kind: DiagnosticKind, error: OSError) -> 'Diagnostic':
        """Build a diagnostic from an ``OSError`` raised while walking ``path``."""
        message = error.strerror or str(error)
        return cls(path=path, kind=kind, message=message, errno=error.errno)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        data = self.model_dump()
        data['kind'] = self.kind.value
        return data

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


DiagnosticSink = Callable[[Diagnostic], None]

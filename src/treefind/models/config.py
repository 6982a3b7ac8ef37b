"""
Configuration data models for Treefind.

This module defines the raw search options as they arrive from a YAML
configuration file or the command line, and turns them into a validated
PredicateSet.
"""

from typing import Any, Dict, List, Optional
from pathlib import Path
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator, model_validator

from .predicates import EntryKind, PredicateSet


NAME_KEYS = ('name', 'iname', 'regex')

CONFIG_KEYS = ('root', 'type', 'size', 'name', 'iname', 'regex', 'depth')


class FindConfig(BaseModel):
    """
    Search options for a single run.

    The options are kept as the user wrote them; ``to_predicate_set`` gives
    the parsed form. Invalid options fail at construction with the matching
    ConfigurationError subclass.

    Attributes:
        root: Directory the search starts from
        type: Entry kind selector (``f``, ``d`` or ``s``)
        size: Optional size token such as ``+5K``
        name: Optional glob pattern
        iname: Optional case-insensitive glob pattern
        regex: Optional regular expression
        depth: Optional maximum traversal depth
    """

    model_config = ConfigDict(extra='forbid')

    root: str = Field(".", min_length=1, description="Directory the search starts from")
    type: str = Field("f", description="Entry kind selector")
    size: Optional[str] = Field(None, description="Size token")
    name: Optional[str] = Field(None, description="Glob pattern")
    iname: Optional[str] = Field(None, description="Case-insensitive glob pattern")
    regex: Optional[str] = Field(None, description="Regular expression")
    depth: Optional[int] = Field(None, description="Maximum traversal depth")

    _predicates: PredicateSet = PrivateAttr()

    @field_validator('root')
    @classmethod
    def validate_root(cls, v: str) -> str:
        """Expand a leading ``~`` but otherwise keep the root as written."""
        if v.startswith('~'):
            return str(Path(v).expanduser())
        return v

    @field_validator('size', mode='before')
    @classmethod
    def validate_size(cls, v):
        """YAML turns ``size: 100`` into an int; keep it as a token."""
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @model_validator(mode='after')
    def validate_predicates(self):
        """Build the PredicateSet once so invalid options fail here."""
        self._predicates = PredicateSet.from_options(
            kind=self.type,
            size=self.size,
            name=self.name,
            iname=self.iname,
            regex=self.regex,
            depth=self.depth,
        )
        return self

    def to_predicate_set(self) -> PredicateSet:
        """Get the validated predicates for these options."""
        return self._predicates

    def validate_configuration(self) -> List[str]:
        """
        Check for options that are accepted but have no effect.

        Returns:
            List of warning messages
        """
        warnings = []
        predicates = self._predicates

        if predicates.size is not None and predicates.kind is not EntryKind.REGULAR_FILE:
            warnings.append(f"size filter is ignored for {predicates.kind.value} entries")

        if predicates.name is not None and predicates.kind is EntryKind.DIRECTORY:
            warnings.append("name filter is ignored for directory entries")

        return warnings

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation, leaving out unset options."""
        return self.model_dump(exclude_none=True)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FindConfig':
        """Create a FindConfig from a dictionary."""
        return cls.model_validate(data)

    def __str__(self) -> str:
        return f"Root: {self.root} | {self._predicates}"


def validate_config_dict(config_data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Check the shape of a configuration mapping before it is turned into a model.

    Args:
        config_data: Raw configuration data

    Returns:
        A copy of the data

    Raises:
        ValueError: If the data is not a mapping or has unknown keys
    """
    if not isinstance(config_data, dict):
        raise ValueError(f"Configuration must be a mapping, got {type(config_data).__name__}")

    unknown = [str(key) for key in config_data if key not in CONFIG_KEYS]
    if unknown:
        raise ValueError(f"Unknown configuration key: {', '.join(unknown)}")

    return dict(config_data)


def merge_options(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """
    Apply ``overrides`` on top of ``base`` option mappings.

    None values in ``overrides`` are ignored. Supplying any name source
    replaces every name source of ``base``, so a file's ``name`` never clashes
    with a command-line ``regex``.

    Returns:
        New merged mapping
    """
    given = {key: value for key, value in overrides.items() if value is not None}
    merged = dict(base)

    if any(key in given for key in NAME_KEYS):
        for key in NAME_KEYS:
            merged.pop(key, None)

    merged.update(given)
    return merged

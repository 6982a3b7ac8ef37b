"""
Configuration management package for Treefind.

This package provides YAML configuration parsing and validation for the
search options.
"""

from ..errors import ConfigurationError
from .parser import (
    ConfigParser,
    ConfigParseResult,
    load_config,
    validate_config_file,
    create_config_template
)

__all__ = [
    'ConfigParser',
    'ConfigParseResult',
    'ConfigurationError',
    'load_config',
    'validate_config_file',
    'create_config_template'
]

"""
Data models for Treefind.

This module contains the predicate, diagnostic and configuration data
structures used throughout the system.
"""

from .predicates import EntryKind, NameMatcher, NameSource, PredicateSet, SizeComparison, SizeConstraint
from .diagnostics import Diagnostic, DiagnosticKind
from .config import FindConfig

__all__ = [
    'EntryKind',
    'NameMatcher',
    'NameSource',
    'PredicateSet',
    'SizeComparison',
    'SizeConstraint',
    'Diagnostic',
    'DiagnosticKind',
    'FindConfig'
]

"""
Treefind - Core Package

A filesystem search tool that walks a directory tree and reports the entries
matching a fixed set of predicates: entry type, name pattern, size and depth.
"""

__version__ = "0.1.0"
__author__ = "Treefind Team"

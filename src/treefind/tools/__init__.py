"""
Search tools for Treefind.

This module contains the filesystem walker that drives a search.
"""

from .fs_walker import FSWalker, find

__all__ = ['FSWalker', 'find']

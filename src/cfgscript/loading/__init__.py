"""
Module loading: resolution, fetching and memoized execution.

This module provides:
- LocalFileReader, the filesystem Resolver/ContentStore
- LoadCache, the per-session tri-state memo table
- ModuleLoader, the recursive loader driving the script engine
"""

from cfgscript.loading.cache import CacheEntry, EntryState, LoadCache
from cfgscript.loading.loader import ModuleLoader
from cfgscript.loading.reader import LocalFileReader

__all__ = [
    "CacheEntry",
    "EntryState",
    "LoadCache",
    "ModuleLoader",
    "LocalFileReader",
]

"""Record store adapters shipped with keytree."""

from .memory import MemoryRecordStore
from .sqlite import SQLiteRecordStore
from .caching import CachingRecordStore

__all__ = [
    'MemoryRecordStore',
    'SQLiteRecordStore',
    'CachingRecordStore',
]

"""
Repository Implementations - Infrastructure Layer

This package contains the record store implementations the catalog is
persisted through.
"""

from .record_store import FileBasedRecordStore, InMemoryRecordStore

__all__ = [
    "FileBasedRecordStore",
    "InMemoryRecordStore",
]

"""
Persistence for learned parking state

- adapters: opaque key/value blob stores (in-memory, JSON files)
- snapshot: (de)serialization of patterns, clusters and metrics
- writer: asynchronous best-effort snapshot writes
"""

from .adapters import InMemoryStorage, JsonFileStorage, StorageAdapter
from .snapshot import SnapshotCodec
from .writer import SnapshotWriter

__all__ = [
    "InMemoryStorage",
    "JsonFileStorage",
    "StorageAdapter",
    "SnapshotCodec",
    "SnapshotWriter",
]

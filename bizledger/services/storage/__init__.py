"""
Storage Services Package

Provides the abstract backend interface, concrete backends and the
PersistentStore that repositories read from and write through.
"""

from bizledger.services.storage.interface import (
    KeyValueBackend,
    StorageError,
    StorageReadError,
    StorageWriteError,
)
from bizledger.services.storage.backends import InMemoryBackend, JsonFileBackend
from bizledger.services.storage.store import PersistentStore

__all__ = [
    # Interfaces
    "KeyValueBackend",
    # Exceptions
    "StorageError",
    "StorageReadError",
    "StorageWriteError",
    # Backends
    "InMemoryBackend",
    "JsonFileBackend",
    # Store
    "PersistentStore",
]

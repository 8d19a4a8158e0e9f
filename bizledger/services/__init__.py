"""
Services package.

Only storage is re-exported here. The device services depend on the
repositories, which depend on storage, so they are imported from
bizledger.services.devices directly.
"""

from bizledger.services.storage import (
    InMemoryBackend,
    JsonFileBackend,
    KeyValueBackend,
    PersistentStore,
    StorageError,
    StorageReadError,
    StorageWriteError,
)

__all__ = [
    "InMemoryBackend",
    "JsonFileBackend",
    "KeyValueBackend",
    "PersistentStore",
    "StorageError",
    "StorageReadError",
    "StorageWriteError",
]

"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for durable storage.
This allows us to:
1. Keep the ledger in JSON files today and swap the backend later
2. Use in-memory storage for testing
3. Keep business logic decoupled from storage implementation

The interface is intentionally tiny: a named key maps to one serialized
payload. Typing, the in-memory mirror and retries live in PersistentStore.
"""

from abc import ABC, abstractmethod
from typing import Optional


class KeyValueBackend(ABC):
    """
    Durable key-value storage for serialized collections.

    Any backend (JSON files, SQLite, browser storage bridge, etc.)
    must implement these methods.
    """

    @abstractmethod
    def read(self, key: str) -> Optional[str]:
        """
        Read the payload stored under a key.

        Returns:
            The serialized payload, or None if the key was never written

        Raises:
            StorageReadError: If the backend cannot be read
        """
        pass

    @abstractmethod
    def write(self, key: str, payload: str) -> None:
        """
        Replace the payload stored under a key.

        Raises:
            StorageWriteError: If the write fails
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """
        Remove a key.

        Returns:
            True if the key existed
        """
        pass

    @abstractmethod
    def keys(self) -> list[str]:
        """List every stored key."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class StorageReadError(StorageError):
    """Stored data could not be read or did not match its schema."""
    pass


class StorageWriteError(StorageError):
    """Data could not be written to durable storage."""
    pass

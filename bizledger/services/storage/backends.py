"""
Durable Storage Backends

JsonFileBackend keeps one <key>.json file per collection in a data
directory. Writes go to a temporary file first and are moved into place
with os.replace, so a crash mid-write leaves the previous version intact.

InMemoryBackend holds payloads in a dict. It backs tests and throwaway
sessions, and a fresh PersistentStore over the same instance behaves
exactly like a process restart.
"""

import os
import re
import tempfile
from pathlib import Path
from typing import Optional

from bizledger.services.storage.interface import (
    KeyValueBackend,
    StorageReadError,
    StorageWriteError,
)


_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


def _check_key(key: str) -> str:
    if not _KEY_PATTERN.match(key):
        raise ValueError(f"Invalid storage key: {key!r}")
    return key


class JsonFileBackend(KeyValueBackend):
    """File-per-key JSON storage."""

    def __init__(self, data_dir: Path):
        self._data_dir = Path(data_dir)

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def _path(self, key: str) -> Path:
        return self._data_dir / f"{_check_key(key)}.json"

    def read(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageReadError(f"Failed to read {path}: {e}")

    def write(self, key: str, payload: str) -> None:
        path = self._path(key)
        try:
            self._data_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self._data_dir, prefix=f".{key}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(payload)
                    fh.flush()
                    os.fsync(fh.fileno())
                os.replace(tmp_name, path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            raise StorageWriteError(f"Failed to write {path}: {e}")

    def delete(self, key: str) -> bool:
        try:
            self._path(key).unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageWriteError(f"Failed to delete {key}: {e}")

    def keys(self) -> list[str]:
        if not self._data_dir.exists():
            return []
        return sorted(p.stem for p in self._data_dir.glob("*.json"))


class InMemoryBackend(KeyValueBackend):
    """Dict-backed storage."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})

    def read(self, key: str) -> Optional[str]:
        return self._data.get(_check_key(key))

    def write(self, key: str, payload: str) -> None:
        self._data[_check_key(key)] = payload

    def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    def keys(self) -> list[str]:
        return sorted(self._data)

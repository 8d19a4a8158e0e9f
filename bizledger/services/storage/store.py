"""
Persistent Store

A typed key-value layer over a durable backend with an in-memory mirror.

- Reads are served from the mirror.
- Every set() writes through to the backend synchronously.
- Registered keys are validated on load, so ISO-8601 strings come back as
  datetime and decimal strings come back as Decimal. Without this step a
  reloaded ledger silently turns timestamps into plain strings.

DESIGN DECISION: A failed durable write never crashes the caller.
The mirror keeps the new value, the key is marked unsynced and an error is
logged. Callers see the divergence through set()'s return value and
through unsynced_keys, and flush() retries.

No transaction spans several keys here. set_many() only guarantees that the
mirror changes in one step; the coordinator builds on that.
"""

from typing import Any, Callable, Iterable

import structlog
from pydantic import TypeAdapter, ValidationError
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from bizledger.services.storage.interface import (
    KeyValueBackend,
    StorageReadError,
    StorageWriteError,
)


_ANY_ADAPTER = TypeAdapter(Any)


class PersistentStore:
    """
    Mirror of durable storage, initialized once per process.

    Inject one instance into every repository instead of reaching for a
    global, so tests can run against an InMemoryBackend.
    """

    def __init__(
        self,
        backend: KeyValueBackend,
        retry_attempts: int = 3,
        retry_wait_seconds: float = 0.2,
    ):
        self._backend = backend
        self._mirror: dict[str, Any] = {}
        self._adapters: dict[str, TypeAdapter] = {}
        self._unsynced: set[str] = set()
        self._retry_attempts = retry_attempts
        self._retry_wait_seconds = retry_wait_seconds
        self._logger = structlog.get_logger(__name__)

    @property
    def backend(self) -> KeyValueBackend:
        return self._backend

    def register(
        self,
        key: str,
        type_: Any,
        default_factory: Callable[[], Any],
    ) -> Any:
        """
        Load a key into the mirror, validating it against type_.

        When the backend has nothing under the key, the default is
        created and written back so the durable copy exists from then on.
        Registering an already-loaded key returns the mirrored value.

        Raises:
            StorageReadError: If the stored payload does not match type_
        """
        if key in self._adapters:
            return self._mirror[key]

        adapter = TypeAdapter(type_)
        self._adapters[key] = adapter

        raw = self._backend.read(key)
        if raw is None:
            value = default_factory()
            self._mirror[key] = value
            self._write(key, value)
            return value

        try:
            value = adapter.validate_json(raw)
        except ValidationError as e:
            del self._adapters[key]
            self._logger.error("store_load_failed", key=key, error=str(e))
            raise StorageReadError(f"Stored data for '{key}' is invalid: {e}")

        self._mirror[key] = value
        return value

    def get(self, key: str, default: Any = None) -> Any:
        return self._mirror.get(key, default)

    def set(self, key: str, value: Any) -> bool:
        """
        Update one key and write it through.

        Returns:
            True if the durable write succeeded
        """
        return self.set_many({key: value})

    def set_many(self, values: dict[str, Any]) -> bool:
        """
        Update several keys as a single in-memory transition.

        The mirror takes every new value before the first durable write
        starts, so no reader can observe half of the change.

        Returns:
            True if every durable write succeeded
        """
        self._mirror.update(values)
        ok = True
        for key, value in values.items():
            ok = self._write(key, value) and ok
        return ok

    def flush(self) -> bool:
        """Retry every write that previously failed."""
        return self._write_keys(sorted(self._unsynced))

    @property
    def unsynced_keys(self) -> frozenset[str]:
        return frozenset(self._unsynced)

    @property
    def is_synced(self) -> bool:
        return not self._unsynced

    def _write_keys(self, keys: Iterable[str]) -> bool:
        ok = True
        for key in keys:
            ok = self._write(key, self._mirror[key]) and ok
        return ok

    def _write(self, key: str, value: Any) -> bool:
        adapter = self._adapters.get(key, _ANY_ADAPTER)
        payload = adapter.dump_json(value, indent=2).decode("utf-8")

        retrying = Retrying(
            stop=stop_after_attempt(self._retry_attempts),
            wait=wait_exponential(multiplier=self._retry_wait_seconds, max=10),
            retry=retry_if_exception_type(StorageWriteError),
            reraise=True,
        )
        try:
            for attempt in retrying:
                with attempt:
                    self._backend.write(key, payload)
        except StorageWriteError as e:
            self._unsynced.add(key)
            self._logger.error("store_write_failed", key=key, error=str(e))
            return False

        self._unsynced.discard(key)
        return True

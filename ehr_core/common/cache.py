# ehr_core/common/cache.py
from __future__ import annotations

import threading
import time
from typing import Any, Callable

from django.core.cache import caches


class KeyValueCache:
    """
    Process-wide key/value store with TTL semantics.

    Components receive an instance instead of touching a module-level singleton,
    so tests can hand them an InMemoryKeyValueCache.
    """

    def get(self, key: str, default: Any = None) -> Any:
        raise NotImplementedError

    def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        raise NotImplementedError

    def exists(self, key: str) -> bool:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError


class DjangoKeyValueCache(KeyValueCache):
    """Adapter over a Django cache alias (locmem, redis, memcached...)."""

    _MISSING = object()

    def __init__(self, alias: str = "default", *, prefix: str = "ehr"):
        self.alias = alias
        self.prefix = prefix

    @property
    def _backend(self):
        return caches[self.alias]

    def _key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    def get(self, key: str, default: Any = None) -> Any:
        return self._backend.get(self._key(key), default)

    def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        # Django: timeout=None means "never expire"
        self._backend.set(self._key(key), value, timeout=ttl)

    def exists(self, key: str) -> bool:
        return self._backend.get(self._key(key), self._MISSING) is not self._MISSING

    def delete(self, key: str) -> None:
        self._backend.delete(self._key(key))


class InMemoryKeyValueCache(KeyValueCache):
    """
    Thread-safe dict-backed cache. `clock` is injectable so TTL expiry is testable
    without sleeping.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._lock = threading.Lock()
        self._data: dict[str, tuple[Any, float | None]] = {}

    def _alive(self, key: str) -> tuple[bool, Any]:
        item = self._data.get(key)
        if item is None:
            return False, None
        value, expires_at = item
        if expires_at is not None and self._clock() >= expires_at:
            del self._data[key]
            return False, None
        return True, value

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            ok, value = self._alive(key)
            return value if ok else default

    def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        with self._lock:
            expires_at = None if ttl is None else self._clock() + ttl
            self._data[key] = (value, expires_at)

    def exists(self, key: str) -> bool:
        with self._lock:
            ok, _ = self._alive(key)
            return ok

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

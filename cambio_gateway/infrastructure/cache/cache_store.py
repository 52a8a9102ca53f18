"""Two-tier cache: in-memory map backed by optional durable storage"""

import functools
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar
from sqlalchemy.exc import SQLAlchemyError
from cambio_gateway.config import settings
from cambio_gateway.domain.exceptions import StorageCorruptionError
from cambio_gateway.domain.models import CacheEntry
from cambio_gateway.infrastructure.observability.metrics import cache_lookup_counter
from cambio_gateway.infrastructure.storage import DurableStorage

R = TypeVar("R")


@dataclass(frozen=True)
class CacheDomain:
    """Default TTL for one family of cached data"""

    name: str
    ttl_ms: int
    persistent: bool = False


RATES_DOMAIN = CacheDomain("rates", settings.cache_rates_ttl_ms)
CURRENCIES_DOMAIN = CacheDomain("currencies", settings.cache_currencies_ttl_ms, persistent=True)


class CacheStore:
    """
    Key/value cache with per-entry expiration.

    Lookup order:
    1. In-memory map
    2. Durable storage (persistent entries only); a hit is promoted to memory

    Expiration is lazy: expired entries read as missing and are overwritten
    by the next set(). purge_expired() evicts them from memory explicitly.
    """

    def __init__(
        self,
        clock: Callable[[], float],
        storage: Optional[DurableStorage] = None,
        default_ttl_ms: int | None = None,
        key_prefix: str | None = None,
    ):
        self._clock = clock
        self._storage = storage
        self._default_ttl_ms = settings.cache_rates_ttl_ms if default_ttl_ms is None else default_ttl_ms
        self._prefix = key_prefix if key_prefix is not None else settings.cache_key_prefix
        self._memory: Dict[str, CacheEntry[Any]] = {}

    def _durable_key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def _read_durable(self, key: str) -> Optional[CacheEntry[Any]]:
        if self._storage is None:
            return None
        try:
            payload = self._storage.read_json(self._durable_key(key))
        except (StorageCorruptionError, SQLAlchemyError) as e:
            logging.warning(f"Durable cache read failed for {key!r}: {e}")
            return None
        if not isinstance(payload, dict):
            return None
        try:
            return CacheEntry(
                data=payload["data"],
                created_at=float(payload["created_at"]),
                expires_at=float(payload["expires_at"]),
            )
        except (KeyError, TypeError, ValueError):
            return None

    def _delete_durable(self, durable_key: str) -> bool:
        try:
            return bool(self._storage.delete(durable_key))
        except SQLAlchemyError as e:
            logging.warning(f"Durable cache delete failed for {durable_key!r}: {e}")
            return False

    def _durable_keys(self) -> List[str]:
        if self._storage is None:
            return []
        try:
            return self._storage.keys(self._prefix)
        except SQLAlchemyError as e:
            logging.warning(f"Durable cache listing failed: {e}")
            return []

    def get(self, key: str) -> Any:
        """Return the cached value, or None when missing or expired"""
        now = self._clock()

        entry = self._memory.get(key)
        if entry is not None and entry.is_valid(now):
            cache_lookup_counter.labels(result="hit_memory").inc()
            return entry.data

        durable_entry = self._read_durable(key)
        if durable_entry is not None and durable_entry.is_valid(now):
            self._memory[key] = durable_entry
            cache_lookup_counter.labels(result="hit_durable").inc()
            return durable_entry.data

        cache_lookup_counter.labels(result="miss").inc()
        return None

    def set(self, key: str, value: Any, ttl_ms: int | None = None, persistent: bool = False) -> None:
        """
        Store a value for ttl_ms (the store default when None; 0 stores an
        already-expired entry). A persistent value that cannot be written,
        whether from a storage failure or because it is not JSON, is kept in
        memory only.
        """
        now = self._clock()
        ttl = self._default_ttl_ms if ttl_ms is None else ttl_ms
        entry = CacheEntry(data=value, created_at=now, expires_at=now + ttl)
        self._memory[key] = entry

        if persistent and self._storage is not None:
            try:
                self._storage.write_json(
                    self._durable_key(key),
                    {"data": value, "created_at": entry.created_at, "expires_at": entry.expires_at},
                )
            except (SQLAlchemyError, TypeError, ValueError) as e:
                logging.warning(f"Durable cache write failed for {key!r}: {e}")

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def remove(self, key: str) -> None:
        self._memory.pop(key, None)
        if self._storage is not None:
            self._delete_durable(self._durable_key(key))

    def clear(self) -> None:
        """Drop every entry; only cache-namespaced durable keys are touched"""
        self._memory.clear()
        for durable_key in self._durable_keys():
            self._delete_durable(durable_key)

    def invalidate_pattern(self, pattern: str) -> int:
        """Remove entries whose key contains pattern, in both tiers"""
        removed = 0
        for key in [k for k in self._memory if pattern in k]:
            del self._memory[key]
            removed += 1

        for durable_key in self._durable_keys():
            if pattern in durable_key[len(self._prefix):] and self._delete_durable(durable_key):
                removed += 1
        return removed

    def purge_expired(self) -> int:
        """Evict expired in-memory entries"""
        now = self._clock()
        expired = [key for key, entry in self._memory.items() if not entry.is_valid(now)]
        for key in expired:
            del self._memory[key]
        return len(expired)

    def with_cache(
        self,
        fn: Callable[..., Awaitable[R]],
        key_generator: Callable[..., str],
        ttl_ms: int | None = None,
        persistent: bool = False,
    ) -> Callable[..., Awaitable[R]]:
        """
        Memoize an async function under a key derived from its arguments.

        Concurrent misses on the same key both fetch; the last write wins.
        """

        @functools.wraps(fn)
        async def wrapper(*args: Any, **kwargs: Any) -> R:
            key = key_generator(*args, **kwargs)
            cached = self.get(key)
            if cached is not None:
                return cached

            result = await fn(*args, **kwargs)
            self.set(key, result, ttl_ms=ttl_ms, persistent=persistent)
            return result

        return wrapper

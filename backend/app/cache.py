from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable

import structlog
from cachetools import TLRUCache

logger = structlog.get_logger()


@dataclass(frozen=True)
class CacheEntry:
    payload: Any
    ttl_seconds: float


def _expires_at(key: str, entry: CacheEntry, now: float) -> float:
    return now + entry.ttl_seconds


class _LoggingTLRUCache(TLRUCache):
    def popitem(self):
        key, entry = super().popitem()
        logger.debug("cache_evicted", key=key)
        return key, entry


class ResultCache:
    """In-process TTL cache with a hard entry limit, backed by cachetools.

    Expiry is lazy: stale entries are purged when the cache is read or
    written. Once full, expired entries go first and then the least recently
    used live entry is evicted. Every method is synchronous, so callers on a
    single event loop never observe a half-applied update.
    """

    def __init__(
        self,
        ttl_seconds: float = 60.0,
        max_entries: int = 500,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._ttl_seconds = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock
        self._entries = self._new_store()

    def _new_store(self) -> _LoggingTLRUCache:
        return _LoggingTLRUCache(maxsize=self._max_entries, ttu=_expires_at, timer=self._clock)

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def __len__(self) -> int:
        self._entries.expire()
        return len(self._entries)

    def get(self, key: str) -> Any | None:
        self._entries.expire()
        entry = self._entries.get(key)
        return entry.payload if entry is not None else None

    def put(self, key: str, payload: Any, ttl_seconds: float | None = None) -> None:
        ttl = self._ttl_seconds if ttl_seconds is None else ttl_seconds
        self._entries[key] = CacheEntry(payload=payload, ttl_seconds=ttl)

    def clear(self) -> None:
        self._entries = self._new_store()

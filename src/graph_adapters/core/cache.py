"""
In-memory TTL cache for adapter results, including negative results.

Entries hold either the list of items returned by an upstream call or the single
error it produced. Only errors whose outcome will not change on retry
(``NOTFOUND`` and ``NOSCOPE``) are ever stored; everything else must hit the
upstream again on the next call.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, NamedTuple, Optional, Sequence

from .context import QueryContext
from .errors import QueryError
from .logging import get_logger, log_query
from .models import Item, QueryMethod

DEFAULT_CACHE_DURATION = 3600.0

LOGGER = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class CacheKey:
    """Composite key identifying one cached query outcome."""

    adapter_name: str
    method: QueryMethod
    scope: str
    item_type: str
    query: str = ""

    @classmethod
    def from_parts(cls, adapter_name: str, method: QueryMethod | str, scope: str, item_type: str, query: Optional[str] = None) -> "CacheKey":
        return cls(adapter_name=adapter_name, method=QueryMethod(method), scope=scope, item_type=item_type, query=query or "")

    def __str__(self) -> str:
        return f"{self.adapter_name}|{self.method.value}|{self.scope}|{self.item_type}|{self.query}"


@dataclass(frozen=True, slots=True)
class CacheEntry:
    items: Optional[Sequence[Item]]
    error: Optional[QueryError]
    expires_at: float


class CacheLookup(NamedTuple):
    """Result of :meth:`ResultCache.lookup`."""

    hit: bool
    key: CacheKey
    items: Optional[List[Item]] = None
    error: Optional[QueryError] = None


class ResultCache:
    """
    Thread-safe TTL cache keyed by :class:`CacheKey`.

    Parameters
    ----------
    clock:
        Monotonic time source; injectable for tests.
    """

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._store: Dict[CacheKey, CacheEntry] = {}
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return f"ResultCache(size={len(self)}, hits={self._hits}, misses={self._misses}, evictions={self._evictions})"

    def lookup(
        self,
        adapter_name: str,
        method: QueryMethod | str,
        scope: str,
        item_type: str,
        query: Optional[str] = None,
        *,
        ignore_cache: bool = False,
    ) -> CacheLookup:
        """
        Look up a cached outcome.

        When ``ignore_cache`` is set the lookup always misses, but the returned
        key is still valid so a subsequent store refreshes the entry.
        """

        key = CacheKey.from_parts(adapter_name, method, scope, item_type, query)
        if ignore_cache:
            log_query(LOGGER, "Cache bypassed", method=key.method.value, scope=scope, query=query, cache="ignored", extra={"adapter": adapter_name})
            return CacheLookup(hit=False, key=key)

        with self._lock:
            entry = self._store.get(key)
            if entry is not None and entry.expires_at <= self._clock():
                self._evict_locked(key)
                entry = None
            if entry is None:
                self._misses += 1
                return CacheLookup(hit=False, key=key)
            self._hits += 1

        log_query(LOGGER, "Cache hit", method=key.method.value, scope=scope, query=query, cache="hit", extra={"adapter": adapter_name})
        if entry.error is not None:
            return CacheLookup(hit=True, key=key, error=entry.error)
        return CacheLookup(hit=True, key=key, items=list(entry.items or ()))

    def store_items(self, items: Sequence[Item], ttl: float, key: CacheKey) -> None:
        """Store ``items`` (possibly empty) under ``key``, resetting its TTL."""

        entry = CacheEntry(items=tuple(items), error=None, expires_at=self._clock() + ttl)
        with self._lock:
            self._store[key] = entry

    def store_error(self, error: QueryError, ttl: float, key: CacheKey) -> bool:
        """
        Store ``error`` under ``key`` if the negative-cache policy allows it.

        Returns ``True`` when the error was stored.
        """

        if not error.cacheable:
            return False
        entry = CacheEntry(items=None, error=error, expires_at=self._clock() + ttl)
        with self._lock:
            self._store[key] = entry
        return True

    def purge(self) -> int:
        """Remove expired entries and return how many were dropped."""

        now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._store.items() if entry.expires_at <= now]
            for key in expired:
                self._evict_locked(key)
        return len(expired)

    def start_purger(self, context: QueryContext, interval: float = 60.0) -> threading.Thread:
        """Purge expired entries every ``interval`` seconds until ``context`` is cancelled."""

        def _run() -> None:
            while not context.wait(interval):
                dropped = self.purge()
                if dropped:
                    log_query(LOGGER, "Purged expired cache entries", cache="purge", extra={"items": dropped})

        thread = threading.Thread(target=_run, name="result-cache-purger", daemon=True)
        thread.start()
        return thread

    def clear(self) -> None:
        """Remove all entries and reset counters."""

        with self._lock:
            self._store.clear()
            self._hits = 0
            self._misses = 0
            self._evictions = 0

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                "entries": len(self._store),
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
            }

    def _evict_locked(self, key: CacheKey) -> None:
        if self._store.pop(key, None) is not None:
            self._evictions += 1

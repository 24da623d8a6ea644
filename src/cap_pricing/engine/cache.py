"""
Pricing Cache - memoizes resolved unit prices per (category, option, tier).

The cache only accelerates: every caller gets the same result with the cache
disabled. Expired entries are misses and are recomputed synchronously.
The backing CacheStore is injected, so a concurrent map, a shared cache or
the no-op NullCacheStore can be swapped in.
"""
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional

from ..errors import PricingError

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300.0


@dataclass(frozen=True)
class CacheEntry:
    value: Any
    expires_at: float


@dataclass(frozen=True)
class CacheStats:
    hits: int
    misses: int
    hit_rate: float  # 0.0 - 1.0
    size: int

    def to_dict(self) -> dict:
        return {"hits": self.hits, "misses": self.misses, "hit_rate": self.hit_rate, "size": self.size}


class CacheStore:
    """Storage backend for PricingCache. Implementations must be thread-safe."""

    def get(self, key: tuple) -> Optional[CacheEntry]:
        raise NotImplementedError

    def set(self, key: tuple, entry: CacheEntry) -> None:
        raise NotImplementedError

    def delete(self, key: tuple) -> None:
        raise NotImplementedError

    def keys(self) -> list[tuple]:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError

    def __len__(self) -> int:
        return len(self.keys())


class InMemoryCacheStore(CacheStore):
    """Dict-backed store guarded by a lock. Entries are replaced whole."""

    def __init__(self):
        self._data: dict[tuple, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key):
        with self._lock:
            return self._data.get(key)

    def set(self, key, entry):
        with self._lock:
            self._data[key] = entry

    def delete(self, key):
        with self._lock:
            self._data.pop(key, None)

    def keys(self):
        with self._lock:
            return list(self._data)

    def clear(self):
        with self._lock:
            self._data.clear()

    def __len__(self):
        with self._lock:
            return len(self._data)


class NullCacheStore(CacheStore):
    """Stores nothing; every read is a miss."""

    def get(self, key):
        return None

    def set(self, key, entry):
        pass

    def delete(self, key):
        pass

    def keys(self):
        return []

    def clear(self):
        pass


class PricingCache:
    """
    TTL cache with category invalidation and hit/miss statistics.

    Keys are tuples whose first element is the cost category, e.g.
    ``("logo", "rubber|patch|medium", 576)``.
    """

    def __init__(
        self,
        store: Optional[CacheStore] = None,
        default_ttl: float = DEFAULT_TTL_SECONDS,
        enabled: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store if store is not None else InMemoryCacheStore()
        self.default_ttl = default_ttl
        self.enabled = enabled
        self.clock = clock
        self._hits = 0
        self._misses = 0
        self._stats_lock = threading.Lock()

    def get(self, key: tuple) -> tuple[Any, bool]:
        """Return (value, found). Expired entries are evicted and count as misses."""
        entry = self.store.get(key) if self.enabled else None
        if entry is not None and self.clock() >= entry.expires_at:
            self.store.delete(key)
            entry = None

        with self._stats_lock:
            if entry is None:
                self._misses += 1
            else:
                self._hits += 1

        if entry is None:
            return None, False
        return entry.value, True

    def set(self, key: tuple, value: Any, ttl: Optional[float] = None) -> None:
        if not self.enabled:
            return
        ttl = self.default_ttl if ttl is None else ttl
        self.store.set(key, CacheEntry(value=value, expires_at=self.clock() + ttl))

    def get_or_compute(
        self,
        key: tuple,
        compute: Callable[[], Any],
        ttl: Optional[float] = None,
        cacheable: Optional[Callable[[Any], bool]] = None,
    ) -> Any:
        """
        Serve ``key`` from the cache or compute and store it.

        A computed value for which ``cacheable`` returns False is returned
        without being stored.

        Two threads missing the same key both compute; the last write wins
        and both values are equally valid.
        """
        value, found = self.get(key)
        if found:
            return value
        value = compute()
        if cacheable is None or cacheable(value):
            self.set(key, value, ttl)
        return value

    def invalidate_by_category(self, category: str) -> int:
        """Evict every entry of one category. Returns the number evicted."""
        evicted = 0
        for key in self.store.keys():
            if key and key[0] == category:
                self.store.delete(key)
                evicted += 1
        logger.info("Invalidated %d cache entries for category %s", evicted, category)
        return evicted

    def clear(self) -> None:
        self.store.clear()
        with self._stats_lock:
            self._hits = 0
            self._misses = 0
        logger.info("Pricing cache cleared")

    def stats(self) -> CacheStats:
        with self._stats_lock:
            hits, misses = self._hits, self._misses
        total = hits + misses
        return CacheStats(
            hits=hits,
            misses=misses,
            hit_rate=hits / total if total else 0.0,
            size=len(self.store),
        )

    def prewarm(self, jobs: Iterable[Callable[[], Any]], background: bool = True) -> Optional[threading.Thread]:
        """
        Run population jobs, by default on a detached daemon thread.

        Each job is expected to go through ``get_or_compute``. Pricing errors
        (an option not offered at some bracket, an unreachable table) skip the
        job; no lock is held between jobs.
        """
        def run():
            started = time.monotonic()
            count = 0
            failed = 0
            for job in jobs:
                count += 1
                try:
                    job()
                except PricingError as e:
                    failed += 1
                    logger.debug("Prewarm job skipped: %s", e)
            logger.info(
                "Cache prewarm finished: %d jobs, %d skipped, %.1f ms",
                count, failed, (time.monotonic() - started) * 1000,
            )

        if not background:
            run()
            return None

        thread = threading.Thread(target=run, name="pricing-cache-prewarm", daemon=True)
        thread.start()
        return thread

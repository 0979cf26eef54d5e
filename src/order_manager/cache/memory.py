"""In-process read-through cache for the order manager.

Provides the cache-aside pattern over remote tool calls:
- Fresh entries are served without calling the remote side
- Misses call the supplied fetch function and store its result with a TTL
- Expired entries are evicted lazily when read
- Prefix invalidation drops a whole namespace after a mutation

The store is memory-only and lives for the lifetime of the process.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from order_manager.cache.keys import TTL

logger = logging.getLogger(__name__)

T = TypeVar("T")

Clock = Callable[[], float]

_MISSING = object()


@dataclass
class CacheEntry:
    """A cached value with its expiry."""

    value: Any
    expires_at: float
    stored_at: float

    def is_fresh(self, now: float) -> bool:
        # An entry is stale from its expiry instant on, so ttl <= 0 never serves.
        return now < self.expires_at


@dataclass
class CacheStats:
    """Point-in-time cache statistics."""

    hits: int = 0
    misses: int = 0
    sets: int = 0
    invalidations: int = 0
    bypasses: int = 0
    size: int = 0

    @property
    def hit_ratio(self) -> float:
        lookups = self.hits + self.misses
        return self.hits / lookups if lookups else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "sets": self.sets,
            "invalidations": self.invalidations,
            "bypasses": self.bypasses,
            "size": self.size,
            "hit_ratio": round(self.hit_ratio, 4),
        }


@dataclass
class _Counters:
    hits: int = 0
    misses: int = 0
    sets: int = 0
    invalidations: int = 0
    bypasses: int = 0


class MemoryCache:
    """Namespaced TTL cache with read-through semantics.

    One instance is created per logical namespace and injected into the
    code that needs it. Concurrent misses on the same key are not
    coalesced: each caller runs its own fetch and the last write wins.

    Stats contract:
    - hit: fresh entry returned, fetch not called
    - miss: no fresh entry, fetch called; a set follows only if fetch succeeds
    - bypass: fetch called with the store untouched (disabled or
      bypass_cache=True); hits, misses and sets are unchanged
    """

    def __init__(
        self,
        namespace: str = "order-manager",
        default_ttl: float = TTL.FIVE_MINUTES,
        clock: Clock = time.monotonic,
        enabled: bool = True,
    ):
        self.namespace = namespace
        self.default_ttl = default_ttl
        self._clock = clock
        self._enabled = enabled
        self._entries: dict[str, CacheEntry] = {}
        self._counters = _Counters()

    @property
    def enabled(self) -> bool:
        return self._enabled

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    # -------------------------------------------------------------------------
    # Read-through
    # -------------------------------------------------------------------------

    async def get_or_fetch(
        self,
        key: str,
        fetch: Callable[[], Awaitable[T]],
        *,
        ttl: float | None = None,
        bypass_cache: bool = False,
    ) -> T:
        """Return the cached value for key, or fetch and cache it.

        Args:
            key: Cache key, usually from create_cache_key()
            fetch: Zero-argument coroutine function producing the value
            ttl: Time to live in seconds (defaults to the cache default)
            bypass_cache: Skip the store entirely for this call

        Raises:
            Whatever fetch raises. Failed fetches are never cached.
        """
        if bypass_cache or not self._enabled:
            self._counters.bypasses += 1
            logger.debug(f"Cache bypass: {key}")
            return await fetch()

        cached = self.get(key, _MISSING)
        if cached is not _MISSING:
            self._counters.hits += 1
            logger.debug(f"Cache hit: {key}")
            return cached  # type: ignore[no-any-return]

        self._counters.misses += 1
        logger.debug(f"Cache miss: {key}")
        value = await fetch()
        self.set(key, value, ttl=ttl)
        return value

    def get(self, key: str, default: Any = None) -> Any:
        """Return a fresh cached value without touching hit/miss counters.

        Expired entries are evicted on the way.
        """
        entry = self._entries.get(key)
        if entry is None:
            return default
        if not entry.is_fresh(self._clock()):
            del self._entries[key]
            logger.debug(f"Cache entry expired: {key}")
            return default
        return entry.value

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Store a value under key. No-op while the cache is disabled."""
        if not self._enabled:
            return
        now = self._clock()
        effective_ttl = self.default_ttl if ttl is None else ttl
        self._entries[key] = CacheEntry(value=value, expires_at=now + effective_ttl, stored_at=now)
        self._counters.sets += 1

    # -------------------------------------------------------------------------
    # Invalidation
    # -------------------------------------------------------------------------

    def invalidate(self, key: str) -> bool:
        """Remove a single entry. Returns whether it existed."""
        if self._entries.pop(key, None) is None:
            return False
        self._counters.invalidations += 1
        logger.info(f"Invalidated cache key: {key}")
        return True

    def invalidate_pattern(self, prefix: str) -> int:
        """Remove every entry whose key starts with prefix.

        Matching is textual, so "order" also removes "order_fulfillment:..."
        keys. Returns the number of entries removed.
        """
        matched = [key for key in self._entries if key.startswith(prefix)]
        for key in matched:
            del self._entries[key]

        self._counters.invalidations += len(matched)
        if matched:
            logger.info(f"Invalidated {len(matched)} cache entries matching '{prefix}'")
        return len(matched)

    def clear(self) -> int:
        """Remove all entries. Counters are left as they are."""
        count = len(self._entries)
        self._entries.clear()
        logger.info(f"Cleared {count} cache entries from '{self.namespace}'")
        return count

    def purge_expired(self) -> int:
        """Drop all stale entries now instead of waiting for a read."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if not entry.is_fresh(now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    # -------------------------------------------------------------------------
    # Control
    # -------------------------------------------------------------------------

    def enable(self) -> None:
        """Resume read-through with whatever entries are still fresh."""
        self._enabled = True

    def disable(self) -> None:
        """Bypass the store for reads and writes. Entries are kept."""
        self._enabled = False

    def get_stats(self) -> CacheStats:
        c = self._counters
        return CacheStats(
            hits=c.hits,
            misses=c.misses,
            sets=c.sets,
            invalidations=c.invalidations,
            bypasses=c.bypasses,
            size=len(self._entries),
        )

    def reset_stats(self) -> None:
        self._counters = _Counters()

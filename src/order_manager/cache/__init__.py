"""Cache layer for the order manager.

Provides an in-process read-through cache for remote tool calls:
- Deterministic, namespaced cache keys
- TTL-based expiry with lazy eviction
- Prefix invalidation after successful mutations
- Hit/miss statistics
"""

from order_manager.cache.invalidation import (
    InvalidationScope,
    invalidate_after,
    invalidates,
)
from order_manager.cache.keys import TTL, CacheNamespace, create_cache_key
from order_manager.cache.memory import CacheEntry, CacheStats, MemoryCache

__all__ = [
    # Core cache
    "MemoryCache",
    "CacheEntry",
    "CacheStats",
    # Keys
    "TTL",
    "CacheNamespace",
    "create_cache_key",
    # Invalidation
    "InvalidationScope",
    "invalidate_after",
    "invalidates",
]

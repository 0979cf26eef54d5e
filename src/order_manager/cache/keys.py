"""Cache key schema for the order manager.

Key format: {namespace}:{digest}

Where:
- namespace: resource namespace ("orders", "order", "customers", ...)
- digest: truncated SHA-256 of the canonical JSON form of the parameters

The namespace is always a textual prefix of the key, so a whole namespace
can be invalidated with a prefix match and no parsing.
"""

from __future__ import annotations

import hashlib
import math
from collections.abc import Mapping
from enum import Enum
from typing import Any

import orjson

from order_manager.errors import CacheKeyError

DIGEST_LENGTH = 16


class TTL:
    """TTL presets in seconds."""

    FIVE_MINUTES = 300
    FIFTEEN_MINUTES = 900
    HOUR = 3600
    DAY = 86400


class CacheNamespace(str, Enum):
    """Namespaces used by the store client."""

    PRODUCTS = "products"
    PRODUCT = "product"
    CUSTOMERS = "customers"
    CUSTOMER_ORDERS = "customer_orders"
    ORDERS = "orders"
    ORDER = "order"


def _check_finite(value: Any) -> None:
    # orjson writes NaN and Infinity as null, which would collide with None.
    if isinstance(value, float) and not math.isfinite(value):
        raise CacheKeyError(f"Cannot build cache key from non-finite number {value!r}")
    if isinstance(value, Mapping):
        for item in value.values():
            _check_finite(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            _check_finite(item)


def canonical_params(params: Mapping[str, Any] | None) -> bytes:
    """Serialize parameters into a stable, order-independent byte string.

    Parameters whose value is None are dropped.

    Raises:
        CacheKeyError: If a value cannot be serialized to JSON, or is a
            NaN or infinite float.
    """
    present = {str(k): v for k, v in (params or {}).items() if v is not None}
    _check_finite(present)
    try:
        return orjson.dumps(present, option=orjson.OPT_SORT_KEYS)
    except TypeError as e:
        raise CacheKeyError(f"Cannot build cache key from parameters: {e}") from e


def create_cache_key(
    namespace: str | CacheNamespace,
    params: Mapping[str, Any] | None = None,
) -> str:
    """Build a deterministic cache key for a namespace and parameter set.

    Identical namespace and parameters always produce the same key,
    regardless of parameter insertion order.
    """
    ns = namespace.value if isinstance(namespace, CacheNamespace) else namespace
    if not ns:
        raise CacheKeyError("Cache namespace must not be empty")

    digest = hashlib.sha256(canonical_params(params)).hexdigest()[:DIGEST_LENGTH]
    return f"{ns}:{digest}"


def namespace_of(key: str) -> str:
    """Return the namespace segment of a key."""
    return key.split(":", 1)[0]

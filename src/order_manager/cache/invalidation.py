"""Cache invalidation for mutations.

A mutation invalidates the namespaces it affects only after the remote
write has succeeded. A failed mutation leaves every cached read in place.

Example:
    class StoreClient:
        @invalidates(InvalidationScope.ORDER)
        async def update_order(self, order_id: str, **updates):
            return await self.call_tool("update-order", {"id": order_id, **updates})
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import TYPE_CHECKING, Any, TypeVar

if TYPE_CHECKING:
    from order_manager.cache.memory import MemoryCache

logger = logging.getLogger(__name__)

R = TypeVar("R")


class InvalidationScope(str, Enum):
    """Key prefixes dropped by mutations."""

    PRODUCTS = "products"
    CUSTOMER = "customer"  # customers:* and customer_orders:*
    ORDER = "order"  # orders:* and order:*
    ALL = ""


async def invalidate_after(
    cache: MemoryCache,
    mutation: Callable[[], Awaitable[R]],
    *scopes: InvalidationScope | str,
) -> R:
    """Run a mutation, then invalidate each scope if it succeeded.

    Exceptions from the mutation propagate and skip invalidation.
    """
    result = await mutation()
    for scope in scopes:
        prefix = scope.value if isinstance(scope, InvalidationScope) else scope
        removed = cache.invalidate_pattern(prefix)
        logger.debug(f"Mutation invalidated {removed} entries under '{prefix or '*'}'")
    return result


def invalidates(
    *scopes: InvalidationScope | str,
) -> Callable[[Callable[..., Awaitable[R]]], Callable[..., Awaitable[R]]]:
    """Decorate an async method so its success invalidates the given scopes.

    The instance must expose the cache as ``self.cache``.
    """

    def decorator(method: Callable[..., Awaitable[R]]) -> Callable[..., Awaitable[R]]:
        @functools.wraps(method)
        async def wrapper(self: Any, *args: Any, **kwargs: Any) -> R:
            return await invalidate_after(
                self.cache,
                lambda: method(self, *args, **kwargs),
                *scopes,
            )

        return wrapper

    return decorator

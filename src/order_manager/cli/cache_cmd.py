"""CLI commands for cache control.

The cache lives in process memory, so these act on the cache of the
current invocation only.

Usage:
    order-manager cache-stats
    order-manager cache-clear
    order-manager cache-invalidate "orders:1f2e3d4c5b6a7980"
"""

from __future__ import annotations

import typer

from order_manager.cli.common import run_command
from order_manager.client import StoreClient


async def _stats(client: StoreClient) -> dict[str, object]:
    return client.get_cache_stats().to_dict()


async def _clear(client: StoreClient) -> dict[str, object]:
    return {"cleared": client.clear_cache()}


def cache_stats(ctx: typer.Context) -> None:
    """Show cache hit/miss statistics."""
    run_command(ctx, _stats)


def cache_clear(ctx: typer.Context) -> None:
    """Clear all cached data."""
    run_command(ctx, _clear)


def cache_invalidate(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Cache key to invalidate"),
) -> None:
    """Invalidate a single cache key."""

    async def _invalidate(client: StoreClient) -> dict[str, object]:
        return {"key": key, "invalidated": client.invalidate_cache_key(key)}

    run_command(ctx, _invalidate)

"""CLI commands for orders and fulfillments.

Usage:
    order-manager get-orders --status open --limit 50
    order-manager get-all-orders --query "created_at:>2025-06-01" --max-pages 5
    order-manager get-order gid://shopify/Order/1001
    order-manager update-order gid://shopify/Order/1001 --note "Gift wrap"
    order-manager update-fulfillment-tracking gid://shopify/Fulfillment/9 1Z999 --company UPS
"""

from __future__ import annotations

import typer

from order_manager.cli.common import run_command, validate_email


def get_orders(
    ctx: typer.Context,
    status: str | None = typer.Option(None, "--status", help="Order status filter"),
    limit: int = typer.Option(50, "--limit", "-l", min=1, max=250, help="Maximum orders"),
    sort_key: str | None = typer.Option(None, "--sort-key", help="Sort key (e.g., CREATED_AT)"),
    reverse: bool | None = typer.Option(
        None, "--reverse/--no-reverse", help="Reverse sort order"
    ),
    after: str | None = typer.Option(None, "--after", help="Pagination cursor"),
    query: str | None = typer.Option(
        None, "--query", "-q", help="Query filter (e.g., created_at:>2025-06-01)"
    ),
) -> None:
    """List orders with filters."""
    run_command(
        ctx,
        lambda client: client.get_orders(
            status=status,
            limit=limit,
            sort_key=sort_key,
            reverse=reverse,
            after=after,
            query=query,
        ),
    )


def get_all_orders(
    ctx: typer.Context,
    status: str | None = typer.Option(None, "--status", help="Order status filter"),
    sort_key: str = typer.Option("CREATED_AT", "--sort-key", help="Sort key"),
    reverse: bool = typer.Option(True, "--reverse/--no-reverse", help="Newest first"),
    query: str | None = typer.Option(
        None, "--query", "-q", help="Query filter (e.g., created_at:>2025-06-01)"
    ),
    max_pages: int | None = typer.Option(
        None, "--max-pages", min=1, max=50, help="Max pages to fetch (default from settings)"
    ),
) -> None:
    """Get all orders with automatic pagination."""
    run_command(
        ctx,
        lambda client: client.get_all_orders(
            status=status,
            sort_key=sort_key,
            reverse=reverse,
            query=query,
            max_pages=max_pages,
        ),
    )


def get_order(
    ctx: typer.Context,
    order_id: str = typer.Argument(..., help="Order ID (GraphQL GID format)"),
) -> None:
    """Get an order by ID."""
    run_command(ctx, lambda client: client.get_order_by_id(order_id))


def update_order(
    ctx: typer.Context,
    order_id: str = typer.Argument(..., help="Order ID (GraphQL GID format)"),
    tags: str | None = typer.Option(None, "--tags", help="Tags (comma-separated)"),
    email: str | None = typer.Option(
        None, "--email", callback=validate_email, help="Customer email"
    ),
    note: str | None = typer.Option(None, "--note", help="Order note"),
) -> None:
    """Update an order."""
    run_command(
        ctx, lambda client: client.update_order(order_id, tags=tags, email=email, note=note)
    )


def update_fulfillment_tracking(
    ctx: typer.Context,
    fulfillment_id: str = typer.Argument(
        ..., help="Fulfillment GID (gid://shopify/Fulfillment/...)"
    ),
    tracking_number: str = typer.Argument(..., help="New tracking number"),
    company: str | None = typer.Option(
        None, "--company", help="Carrier name (e.g., UPS, Royal Mail)"
    ),
    url: str | None = typer.Option(None, "--url", help="Tracking URL"),
    notify_customer: bool | None = typer.Option(
        None, "--notify/--no-notify", help="Send email to customer"
    ),
) -> None:
    """Update tracking number on a fulfillment."""
    run_command(
        ctx,
        lambda client: client.update_fulfillment_tracking(
            fulfillment_id,
            tracking_number,
            tracking_company=company,
            tracking_url=url,
            notify_customer=notify_customer,
        ),
    )

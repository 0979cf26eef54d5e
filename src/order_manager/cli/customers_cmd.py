"""CLI commands for customers.

Usage:
    order-manager get-customers --search john@example.com
    order-manager update-customer gid://shopify/Customer/42 --note "VIP" --tags vip,wholesale
    order-manager get-customer-orders gid://shopify/Customer/42 --limit 10
"""

from __future__ import annotations

import typer

from order_manager.cli.common import (
    numeric_customer_id,
    run_command,
    split_tags,
    validate_email,
)


def get_customers(
    ctx: typer.Context,
    search: str | None = typer.Option(None, "--search", "-s", help="Search by name/email"),
    limit: int = typer.Option(50, "--limit", "-l", min=1, max=250, help="Maximum customers"),
) -> None:
    """List customers with optional search."""
    run_command(ctx, lambda client: client.get_customers(search_query=search, limit=limit))


def update_customer(
    ctx: typer.Context,
    customer_id: str = typer.Argument(..., help="Customer ID (GraphQL GID format)"),
    first_name: str | None = typer.Option(None, "--first-name", help="First name"),
    last_name: str | None = typer.Option(None, "--last-name", help="Last name"),
    email: str | None = typer.Option(
        None, "--email", callback=validate_email, help="Email address"
    ),
    phone: str | None = typer.Option(None, "--phone", help="Phone number"),
    note: str | None = typer.Option(None, "--note", help="Customer note"),
    tags: str | None = typer.Option(None, "--tags", help="Tags (comma-separated)"),
) -> None:
    """Update a customer."""
    run_command(
        ctx,
        lambda client: client.update_customer(
            customer_id,
            first_name=first_name,
            last_name=last_name,
            email=email,
            phone=phone,
            note=note,
            tags=split_tags(tags),
        ),
    )


def get_customer_orders(
    ctx: typer.Context,
    customer_id: str = typer.Argument(..., help="Customer ID (GraphQL GID or numeric)"),
    limit: int = typer.Option(50, "--limit", "-l", min=1, max=250, help="Maximum orders"),
) -> None:
    """Get orders for a customer."""
    run_command(
        ctx,
        lambda client: client.get_customer_orders(numeric_customer_id(customer_id), limit=limit),
    )

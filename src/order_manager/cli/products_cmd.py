"""CLI commands for products.

Usage:
    order-manager get-products --search "Mug" --limit 20
    order-manager get-product gid://shopify/Product/123
    order-manager create-product "Mug" --vendor Acme --status DRAFT
"""

from __future__ import annotations

from enum import Enum

import typer

from order_manager.cli.common import run_command


class ProductStatus(str, Enum):
    ACTIVE = "ACTIVE"
    DRAFT = "DRAFT"
    ARCHIVED = "ARCHIVED"


def get_products(
    ctx: typer.Context,
    search: str | None = typer.Option(None, "--search", "-s", help="Search products by title"),
    limit: int = typer.Option(50, "--limit", "-l", min=1, max=250, help="Maximum products"),
) -> None:
    """List products with optional search."""
    run_command(ctx, lambda client: client.get_products(search_title=search, limit=limit))


def get_product(
    ctx: typer.Context,
    product_id: str = typer.Argument(..., help="Product ID (GraphQL GID format)"),
) -> None:
    """Get a product by ID."""
    run_command(ctx, lambda client: client.get_product_by_id(product_id))


def create_product(
    ctx: typer.Context,
    title: str = typer.Argument(..., help="Product title"),
    description: str | None = typer.Option(None, "--description", help="Description HTML"),
    vendor: str | None = typer.Option(None, "--vendor", help="Product vendor"),
    product_type: str | None = typer.Option(None, "--type", help="Product type"),
    tags: str | None = typer.Option(None, "--tags", help="Tags (comma-separated)"),
    status: ProductStatus | None = typer.Option(None, "--status", help="Product status"),
) -> None:
    """Create a new product."""
    if not title.strip():
        raise typer.BadParameter("Title must not be empty", param_hint="TITLE")

    run_command(
        ctx,
        lambda client: client.create_product(
            title=title,
            description_html=description,
            vendor=vendor,
            product_type=product_type,
            tags=tags,
            status=status.value if status else None,
        ),
    )

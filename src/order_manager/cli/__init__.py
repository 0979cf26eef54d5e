"""CLI for the order manager.

Provides command-line interface using Typer:
- order-manager get-orders / get-all-orders / get-order / update-order
- order-manager get-customers / update-customer / get-customer-orders
- order-manager get-products / get-product / create-product
- order-manager cache-stats / cache-clear / cache-invalidate

Usage:
    order-manager --help
    order-manager get-orders --status open --limit 50
    order-manager --no-cache get-order gid://shopify/Order/1001
"""

from __future__ import annotations

from pathlib import Path

import typer

from order_manager.cli import cache_cmd, customers_cmd, orders_cmd, products_cmd
from order_manager.cli.common import CliOptions, run_command
from order_manager.config import Settings
from order_manager.observability.logging import configure_logging

app = typer.Typer(
    name="order-manager",
    help="Shopify store management via MCP",
    no_args_is_help=True,
)


@app.callback()
def callback(
    ctx: typer.Context,
    no_cache: bool = typer.Option(False, "--no-cache", help="Bypass the cache for this run"),
    config: Path | None = typer.Option(
        None, "--config", "-c", help="Path to config.json (bridge server and store domain)"
    ),
    log_level: str | None = typer.Option(
        None, "--log-level", help="Log level: debug, info, warning, error"
    ),
    json_logs: bool | None = typer.Option(
        None, "--json-logs/--text-logs", help="Emit logs as JSON lines on stderr"
    ),
) -> None:
    """Shopify store management via MCP."""
    settings = Settings()
    configure_logging(
        json_format=settings.log_json if json_logs is None else json_logs,
        level=log_level or settings.log_level,
    )
    ctx.obj = CliOptions(settings=settings, config_file=config, no_cache=no_cache)


def list_tools(ctx: typer.Context) -> None:
    """List all available MCP tools."""
    run_command(ctx, lambda client: client.list_tools())


app.command("list-tools")(list_tools)

# Products
app.command("get-products")(products_cmd.get_products)
app.command("get-product")(products_cmd.get_product)
app.command("create-product")(products_cmd.create_product)

# Customers
app.command("get-customers")(customers_cmd.get_customers)
app.command("update-customer")(customers_cmd.update_customer)
app.command("get-customer-orders")(customers_cmd.get_customer_orders)

# Orders
app.command("get-orders")(orders_cmd.get_orders)
app.command("get-all-orders")(orders_cmd.get_all_orders)
app.command("get-order")(orders_cmd.get_order)
app.command("update-order")(orders_cmd.update_order)
app.command("update-fulfillment-tracking")(orders_cmd.update_fulfillment_tracking)

# Cache
app.command("cache-stats")(cache_cmd.cache_stats)
app.command("cache-clear")(cache_cmd.cache_clear)
app.command("cache-invalidate")(cache_cmd.cache_invalidate)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()

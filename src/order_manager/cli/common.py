"""Shared plumbing for CLI commands.

Every command builds a StoreClient, runs one async operation against it,
prints the result as JSON on stdout and always disconnects. Failures are
reported as {"error": "..."} on stderr with exit code 1.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, NoReturn

import orjson
import typer

from order_manager.cache import MemoryCache
from order_manager.client import StoreClient
from order_manager.config import Settings, load_server_config
from order_manager.observability.logging import LogContext

logger = logging.getLogger(__name__)

Operation = Callable[[StoreClient], Awaitable[Any]]

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_CUSTOMER_GID_RE = re.compile(r"gid://shopify/Customer/(\d+)")


@dataclass
class CliOptions:
    """Global options collected by the root callback."""

    settings: Settings = field(default_factory=Settings)
    config_file: Path | None = None
    no_cache: bool = False


def create_client(options: CliOptions) -> StoreClient:
    """Build a StoreClient from CLI options and settings."""
    settings = options.settings
    server_config = load_server_config(options.config_file or settings.config_file)
    cache = MemoryCache(
        namespace=settings.cache_namespace,
        default_ttl=settings.cache_default_ttl,
        enabled=settings.cache_enabled,
    )
    client = StoreClient(
        server_config,
        cache=cache,
        page_size=settings.page_size,
        max_pages=settings.max_pages,
    )
    if options.no_cache:
        client.disable_cache()
    return client


def emit(result: Any) -> None:
    """Print a command result as indented JSON."""
    typer.echo(orjson.dumps(result, option=orjson.OPT_INDENT_2, default=str).decode())


def fail(message: str) -> NoReturn:
    typer.echo(orjson.dumps({"error": message}).decode(), err=True)
    raise typer.Exit(code=1)


async def _run(options: CliOptions, command: str, operation: Operation) -> Any:
    with LogContext(command=command):
        client = create_client(options)
        try:
            return await operation(client)
        finally:
            await client.disconnect()


def run_command(ctx: typer.Context, operation: Operation) -> None:
    """Run an operation for the current command and print its result."""
    options: CliOptions = ctx.obj or CliOptions()
    command = ctx.info_name or "order-manager"

    try:
        result = asyncio.run(_run(options, command, operation))
    except Exception as e:
        logger.debug(f"Command {command} failed", exc_info=True)
        fail(str(e))

    emit(result)


def validate_email(value: str | None) -> str | None:
    if value is not None and not _EMAIL_RE.match(value):
        raise typer.BadParameter(f"'{value}' is not a valid email address")
    return value


def split_tags(value: str | None) -> list[str] | None:
    """Split a comma-separated tag list, dropping blanks."""
    if value is None:
        return None
    return [tag.strip() for tag in value.split(",") if tag.strip()]


def numeric_customer_id(customer_id: str) -> str:
    """Reduce gid://shopify/Customer/<n> to <n>; other ids pass through."""
    match = _CUSTOMER_GID_RE.search(customer_id)
    return match.group(1) if match else customer_id

"""Global pytest configuration and fixtures.

Provides a controllable clock for TTL tests and an in-memory stand-in for
the bridge tool session.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import orjson
import pytest
from mcp.types import CallToolResult, ListToolsResult, TextContent, Tool

from order_manager.cache import MemoryCache
from order_manager.client import StoreClient
from order_manager.config import McpServerConfig, ServerConfig


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def text_result(payload: Any, is_error: bool = False) -> CallToolResult:
    """Build a tool result carrying payload as JSON text."""
    text = payload if isinstance(payload, str) else orjson.dumps(payload).decode()
    return CallToolResult(content=[TextContent(type="text", text=text)], isError=is_error)


class FakeToolSession:
    """Records tool calls and answers them from a handler table.

    A handler is either a static payload or a callable taking the call
    arguments. Handlers that raise simulate transport failures.
    """

    def __init__(self, handlers: dict[str, Any] | None = None) -> None:
        self.handlers: dict[str, Any] = handlers or {}
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def calls_to(self, name: str) -> list[dict[str, Any]]:
        return [args for tool, args in self.calls if tool == name]

    async def list_tools(self) -> ListToolsResult:
        return ListToolsResult(
            tools=[
                Tool(name=name, description=f"{name} tool", inputSchema={"type": "object"})
                for name in self.handlers
            ]
        )

    async def call_tool(
        self, name: str, arguments: dict[str, Any] | None = None
    ) -> CallToolResult:
        args = dict(arguments or {})
        self.calls.append((name, args))
        handler = self.handlers.get(name)
        if handler is None:
            return text_result(f"Unknown tool: {name}", is_error=True)
        payload = handler(args) if callable(handler) else handler
        if isinstance(payload, CallToolResult):
            return payload
        return text_result(payload)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> MemoryCache:
    return MemoryCache(namespace="test", default_ttl=300, clock=clock)


@pytest.fixture
def server_config() -> ServerConfig:
    return ServerConfig(
        mcp_server=McpServerConfig(command="npx", args=["shopify-mcp"]),
        store_domain="test-store.myshopify.com",
    )


@pytest.fixture
def session() -> FakeToolSession:
    return FakeToolSession()


@pytest.fixture
def make_client(
    server_config: ServerConfig, cache: MemoryCache, session: FakeToolSession
) -> Callable[..., StoreClient]:
    def factory(**kwargs: Any) -> StoreClient:
        kwargs.setdefault("cache", cache)
        kwargs.setdefault("session", session)
        return StoreClient(server_config, **kwargs)

    return factory

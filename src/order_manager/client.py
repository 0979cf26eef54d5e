"""Store client for the Shopify Admin API bridge.

Forwards order, customer and product operations to the bridge server's
tools over a Model Context Protocol stdio session. Reads go through the
read-through cache; mutations invalidate the affected namespaces once the
remote write has succeeded.

Example:
    server_config = load_server_config("config.json")
    async with StoreClient(server_config) as client:
        orders = await client.get_orders(status="open", limit=50)
"""

from __future__ import annotations

import logging
import os
from collections.abc import Awaitable, Callable
from contextlib import AsyncExitStack
from typing import Any, Protocol, TypeVar

import orjson
from mcp import ClientSession, StdioServerParameters
from mcp.client.stdio import stdio_client
from mcp.types import CallToolResult, Implementation, ListToolsResult

from order_manager.cache import (
    TTL,
    CacheNamespace,
    CacheStats,
    InvalidationScope,
    MemoryCache,
    create_cache_key,
    invalidates,
)
from order_manager.config import ServerConfig
from order_manager.errors import NotConnectedError, ToolCallError
from order_manager.observability.logging import LogContext
from order_manager.pagination import (
    DEFAULT_MAX_PAGES,
    DEFAULT_PAGE_SIZE,
    FetchAllResult,
    fetch_all,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

CLIENT_NAME = "shopify-cli"
CLIENT_VERSION = "1.0.0"


class ToolSession(Protocol):
    """The subset of an MCP client session the store client uses."""

    async def list_tools(self) -> ListToolsResult: ...

    async def call_tool(
        self, name: str, arguments: dict[str, Any] | None = None
    ) -> CallToolResult: ...


def _drop_none(args: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in args.items() if v is not None}


def parse_tool_result(name: str, result: CallToolResult) -> Any:
    """Extract the payload of a tool result.

    Text content is decoded as JSON when possible and returned as plain
    text otherwise. Results without text come back as a list of content
    dicts.

    Raises:
        ToolCallError: If the tool flagged the result as an error.
    """
    text = next((block.text for block in result.content if block.type == "text"), None)

    if result.isError:
        raise ToolCallError(name, text or "Tool call failed")

    if text:
        try:
            return orjson.loads(text)
        except orjson.JSONDecodeError:
            return text

    return [block.model_dump(mode="json") for block in result.content]


class StoreClient:
    """Cached client for store operations exposed by the bridge server."""

    def __init__(
        self,
        server_config: ServerConfig,
        cache: MemoryCache | None = None,
        session: ToolSession | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        max_pages: int = DEFAULT_MAX_PAGES,
    ):
        self.server_config = server_config
        self.cache = cache if cache is not None else MemoryCache(namespace="shopify-order-manager")
        self.page_size = page_size
        self.max_pages = max_pages
        self._session = session
        self._exit_stack: AsyncExitStack | None = None

    # -------------------------------------------------------------------------
    # Connection management
    # -------------------------------------------------------------------------

    @property
    def connected(self) -> bool:
        return self._session is not None

    async def connect(self) -> None:
        """Start the bridge server process and open a session.

        Does nothing if a session is already open.
        """
        if self._session is not None:
            return

        server = self.server_config.mcp_server
        params = StdioServerParameters(
            command=server.command,
            args=server.args,
            env={**os.environ, **server.env},
        )

        stack = AsyncExitStack()
        try:
            read, write = await stack.enter_async_context(stdio_client(params))
            session = await stack.enter_async_context(
                ClientSession(
                    read,
                    write,
                    client_info=Implementation(name=CLIENT_NAME, version=CLIENT_VERSION),
                )
            )
            await session.initialize()
        except BaseException:
            await stack.aclose()
            raise

        self._exit_stack = stack
        self._session = session
        logger.info(f"Connected to bridge server: {server.command}")

    async def disconnect(self) -> None:
        """Close the session and stop the bridge server process."""
        if self._exit_stack is not None:
            await self._exit_stack.aclose()
            self._exit_stack = None
            logger.info("Disconnected from bridge server")
        self._session = None

    async def __aenter__(self) -> StoreClient:
        await self.connect()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.disconnect()

    async def _get_session(self) -> ToolSession:
        await self.connect()
        if self._session is None:
            raise NotConnectedError("Bridge session is not available")
        return self._session

    # -------------------------------------------------------------------------
    # Cache control
    # -------------------------------------------------------------------------

    def disable_cache(self) -> None:
        self.cache.disable()

    def enable_cache(self) -> None:
        self.cache.enable()

    def get_cache_stats(self) -> CacheStats:
        return self.cache.get_stats()

    def clear_cache(self) -> int:
        """Clear all cached data. Returns the number of entries removed."""
        return self.cache.clear()

    def invalidate_cache_key(self, key: str) -> bool:
        return self.cache.invalidate(key)

    async def _cached(
        self,
        namespace: CacheNamespace,
        params: dict[str, Any],
        ttl: int,
        fetch: Callable[[], Awaitable[T]],
    ) -> T:
        key = create_cache_key(namespace, params)
        return await self.cache.get_or_fetch(key, fetch, ttl=ttl)

    # -------------------------------------------------------------------------
    # Tools
    # -------------------------------------------------------------------------

    async def list_tools(self) -> list[dict[str, Any]]:
        """List the tools offered by the bridge server."""
        session = await self._get_session()
        result = await session.list_tools()
        return [{"name": tool.name, "description": tool.description} for tool in result.tools]

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> Any:
        """Call a bridge tool and return its parsed payload.

        Raises:
            ToolCallError: If the tool reports an error.
        """
        session = await self._get_session()
        with LogContext(tool=name):
            logger.debug(f"Calling tool {name}")
            result = await session.call_tool(name, arguments=arguments)
            return parse_tool_result(name, result)

    # -------------------------------------------------------------------------
    # Products
    # -------------------------------------------------------------------------

    async def get_products(self, search_title: str | None = None, limit: int | None = None) -> Any:
        """List products, optionally filtered by title. Cached for an hour."""
        # Blank filters are the same as no filter, for both the key and the call.
        search_title, limit = search_title or None, limit or None
        return await self._cached(
            CacheNamespace.PRODUCTS,
            {"search": search_title, "limit": limit},
            TTL.HOUR,
            lambda: self.call_tool(
                "get-products", _drop_none({"searchTitle": search_title, "limit": limit})
            ),
        )

    async def get_product_by_id(self, product_id: str) -> Any:
        return await self._cached(
            CacheNamespace.PRODUCT,
            {"id": product_id},
            TTL.HOUR,
            lambda: self.call_tool("get-product-by-id", {"productId": product_id}),
        )

    @invalidates(InvalidationScope.PRODUCTS)
    async def create_product(
        self,
        title: str,
        description_html: str | None = None,
        vendor: str | None = None,
        product_type: str | None = None,
        tags: str | None = None,
        status: str | None = None,
    ) -> Any:
        """Create a product. Invalidates cached product listings."""
        return await self.call_tool(
            "createProduct",
            _drop_none(
                {
                    "title": title,
                    "descriptionHtml": description_html,
                    "vendor": vendor,
                    "productType": product_type,
                    "tags": tags,
                    "status": status,
                }
            ),
        )

    # -------------------------------------------------------------------------
    # Customers
    # -------------------------------------------------------------------------

    async def get_customers(self, search_query: str | None = None, limit: int | None = None) -> Any:
        """List customers matching a name/email query. Cached for 15 minutes."""
        search_query, limit = search_query or None, limit or None
        return await self._cached(
            CacheNamespace.CUSTOMERS,
            {"search": search_query, "limit": limit},
            TTL.FIFTEEN_MINUTES,
            lambda: self.call_tool(
                "get-customers", _drop_none({"searchQuery": search_query, "limit": limit})
            ),
        )

    @invalidates(InvalidationScope.CUSTOMER)
    async def update_customer(
        self,
        customer_id: str,
        first_name: str | None = None,
        last_name: str | None = None,
        email: str | None = None,
        phone: str | None = None,
        note: str | None = None,
        tags: list[str] | None = None,
        tax_exempt: bool | None = None,
    ) -> Any:
        """Update a customer. Invalidates customers:* and customer_orders:*."""
        return await self.call_tool(
            "update-customer",
            _drop_none(
                {
                    "id": customer_id,
                    "firstName": first_name,
                    "lastName": last_name,
                    "email": email,
                    "phone": phone,
                    "note": note,
                    "tags": tags,
                    "taxExempt": tax_exempt,
                }
            ),
        )

    async def get_customer_orders(self, customer_id: str, limit: int | None = None) -> Any:
        limit = limit or None
        return await self._cached(
            CacheNamespace.CUSTOMER_ORDERS,
            {"id": customer_id, "limit": limit},
            TTL.FIVE_MINUTES,
            lambda: self.call_tool(
                "get-customer-orders", _drop_none({"customerId": customer_id, "limit": limit})
            ),
        )

    # -------------------------------------------------------------------------
    # Orders
    # -------------------------------------------------------------------------

    async def get_orders(
        self,
        status: str | None = None,
        limit: int | None = None,
        sort_key: str | None = None,
        reverse: bool | None = None,
        after: str | None = None,
        query: str | None = None,
    ) -> Any:
        """List one page of orders.

        Args:
            status: Order status filter
            limit: Page size (the remote side calls it "first", max 250)
            sort_key: Sort field, e.g. "CREATED_AT"
            reverse: Reverse sort order
            after: Pagination cursor from a previous page
            query: Search filter, e.g. "created_at:>2025-01-01"

        Returns:
            The remote payload, normally {"orders": [...], "pageInfo": {...}}.
        """
        status, limit, query = status or None, limit or None, query or None
        return await self._cached(
            CacheNamespace.ORDERS,
            {
                "status": status,
                "limit": limit,
                "sortKey": sort_key,
                "reverse": reverse,
                "after": after,
                "query": query,
            },
            TTL.FIVE_MINUTES,
            lambda: self.call_tool(
                "get-orders",
                _drop_none(
                    {
                        "status": status,
                        "first": limit,
                        "sortKey": sort_key,
                        "reverse": reverse,
                        "after": after,
                        "query": query,
                    }
                ),
            ),
        )

    async def get_all_orders(
        self,
        status: str | None = None,
        sort_key: str = "CREATED_AT",
        reverse: bool = True,
        query: str | None = None,
        max_pages: int | None = None,
    ) -> dict[str, Any]:
        """Fetch orders across pages, newest first by default.

        Each page is a get_orders() call and is cached on its own.
        max_pages falls back to the bound the client was built with.

        Returns:
            {"orders": [...], "totalFetched": n, "hasMore": bool}
        """

        async def fetch_page(cursor: str | None) -> Any:
            return await self.get_orders(
                status=status,
                limit=self.page_size,
                sort_key=sort_key,
                reverse=reverse,
                after=cursor,
                query=query,
            )

        result: FetchAllResult[Any] = await fetch_all(
            fetch_page,
            max_pages=self.max_pages if max_pages is None else max_pages,
            items_key="orders",
        )
        return {
            "orders": result.items,
            "totalFetched": result.total_fetched,
            "hasMore": result.has_more,
        }

    async def get_order_by_id(self, order_id: str) -> Any:
        return await self._cached(
            CacheNamespace.ORDER,
            {"id": order_id},
            TTL.FIVE_MINUTES,
            lambda: self.call_tool("get-order-by-id", {"orderId": order_id}),
        )

    @invalidates(InvalidationScope.ORDER)
    async def update_order(
        self,
        order_id: str,
        tags: str | None = None,
        email: str | None = None,
        note: str | None = None,
        custom_attributes: Any = None,
        metafields: Any = None,
        shipping_address: Any = None,
    ) -> Any:
        """Update an order. Invalidates orders:* and order:*."""
        return await self.call_tool(
            "update-order",
            _drop_none(
                {
                    "id": order_id,
                    "tags": tags,
                    "email": email,
                    "note": note,
                    "customAttributes": custom_attributes,
                    "metafields": metafields,
                    "shippingAddress": shipping_address,
                }
            ),
        )

    @invalidates(InvalidationScope.ORDER)
    async def update_fulfillment_tracking(
        self,
        fulfillment_id: str,
        tracking_number: str,
        tracking_company: str | None = None,
        tracking_url: str | None = None,
        notify_customer: bool | None = None,
    ) -> Any:
        """Update tracking on an existing fulfillment (gid://shopify/Fulfillment/...)."""
        return await self.call_tool(
            "update-fulfillment-tracking",
            _drop_none(
                {
                    "fulfillmentId": fulfillment_id,
                    "trackingNumber": tracking_number,
                    "trackingCompany": tracking_company,
                    "trackingUrl": tracking_url,
                    "notifyCustomer": notify_customer,
                }
            ),
        )

    # -------------------------------------------------------------------------
    # Utility
    # -------------------------------------------------------------------------

    @property
    def store_domain(self) -> str:
        """Configured store domain, e.g. "mystore.myshopify.com"."""
        return self.server_config.store_domain

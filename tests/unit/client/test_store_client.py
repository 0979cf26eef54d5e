"""Tests for the cached store client."""

from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock, patch

import pytest
from mcp.types import CallToolResult, ImageContent, TextContent

from order_manager.cache import MemoryCache, create_cache_key
from order_manager.client import StoreClient, parse_tool_result
from order_manager.errors import ToolCallError

ClientFactory = Callable[..., StoreClient]


def error_result(text: str | None) -> CallToolResult:
    content = [TextContent(type="text", text=text)] if text is not None else []
    return CallToolResult(content=content, isError=True)


class TestParseToolResult:
    """Test tool result decoding."""

    def test_json_text(self) -> None:
        result = CallToolResult(content=[TextContent(type="text", text='{"id": 1}')])
        assert parse_tool_result("get-order-by-id", result) == {"id": 1}

    def test_plain_text(self) -> None:
        result = CallToolResult(content=[TextContent(type="text", text="No orders found")])
        assert parse_tool_result("get-orders", result) == "No orders found"

    def test_error_uses_tool_text(self) -> None:
        with pytest.raises(ToolCallError) as exc_info:
            parse_tool_result("update-order", error_result("Order not found"))

        assert str(exc_info.value) == "Order not found"
        assert exc_info.value.tool == "update-order"

    def test_error_without_text(self) -> None:
        with pytest.raises(ToolCallError, match="Tool call failed"):
            parse_tool_result("update-order", error_result(None))

    def test_non_text_content(self) -> None:
        result = CallToolResult(
            content=[ImageContent(type="image", data="aGVsbG8=", mimeType="image/png")]
        )
        parsed = parse_tool_result("get-product-by-id", result)
        assert parsed[0]["type"] == "image"
        assert parsed[0]["mimeType"] == "image/png"


class TestReads:
    """Test cached read operations."""

    @pytest.mark.asyncio
    async def test_get_orders_maps_limit_to_first(
        self, make_client: ClientFactory, session: Any
    ) -> None:
        session.handlers["get-orders"] = {"orders": [], "pageInfo": {"hasNextPage": False}}
        client = make_client()

        await client.get_orders(status="open", limit=50, sort_key="CREATED_AT", query="tag:vip")

        assert session.calls_to("get-orders") == [
            {"status": "open", "first": 50, "sortKey": "CREATED_AT", "query": "tag:vip"}
        ]

    @pytest.mark.asyncio
    async def test_get_orders_is_cached(self, make_client: ClientFactory, session: Any) -> None:
        session.handlers["get-orders"] = {"orders": [{"id": 1}]}
        client = make_client()

        first = await client.get_orders(status="open", limit=50)
        second = await client.get_orders(limit=50, status="open")

        assert first == second == {"orders": [{"id": 1}]}
        assert len(session.calls_to("get-orders")) == 1

    @pytest.mark.asyncio
    async def test_different_filters_fetch_separately(
        self, make_client: ClientFactory, session: Any
    ) -> None:
        session.handlers["get-orders"] = {"orders": []}
        client = make_client()

        await client.get_orders(status="open")
        await client.get_orders(status="closed")

        assert len(session.calls_to("get-orders")) == 2

    @pytest.mark.asyncio
    async def test_reverse_false_is_sent(self, make_client: ClientFactory, session: Any) -> None:
        session.handlers["get-orders"] = {"orders": []}
        await make_client().get_orders(reverse=False)
        assert session.calls_to("get-orders") == [{"reverse": False}]

    @pytest.mark.asyncio
    async def test_get_order_by_id_key(
        self, make_client: ClientFactory, session: Any, cache: MemoryCache
    ) -> None:
        session.handlers["get-order-by-id"] = lambda args: {"id": args["orderId"]}
        client = make_client()

        assert await client.get_order_by_id("42") == {"id": "42"}
        assert cache.get(create_cache_key("order", {"id": "42"})) == {"id": "42"}

    @pytest.mark.asyncio
    async def test_product_ttl_is_one_hour(
        self, make_client: ClientFactory, session: Any, clock: Any
    ) -> None:
        session.handlers["get-product-by-id"] = {"id": "p1"}
        client = make_client()

        await client.get_product_by_id("p1")
        clock.advance(3599)
        await client.get_product_by_id("p1")
        assert len(session.calls_to("get-product-by-id")) == 1

        clock.advance(1)
        await client.get_product_by_id("p1")
        assert len(session.calls_to("get-product-by-id")) == 2

    @pytest.mark.asyncio
    async def test_customers_ttl_is_fifteen_minutes(
        self, make_client: ClientFactory, session: Any, clock: Any
    ) -> None:
        session.handlers["get-customers"] = []
        client = make_client()

        await client.get_customers(search_query="john")
        clock.advance(900)
        await client.get_customers(search_query="john")

        assert session.calls_to("get-customers") == [{"searchQuery": "john"}] * 2

    @pytest.mark.asyncio
    async def test_get_products_arguments(self, make_client: ClientFactory, session: Any) -> None:
        session.handlers["get-products"] = []
        await make_client().get_products(search_title="Mug", limit=5)
        assert session.calls_to("get-products") == [{"searchTitle": "Mug", "limit": 5}]

    @pytest.mark.asyncio
    async def test_blank_filters_are_dropped(
        self, make_client: ClientFactory, session: Any, cache: MemoryCache
    ) -> None:
        session.handlers["get-customers"] = []
        session.handlers["get-orders"] = {"orders": []}
        client = make_client()

        await client.get_customers(search_query="")
        await client.get_customers()
        await client.get_orders(status="", query="")

        assert session.calls_to("get-customers") == [{}]
        assert session.calls_to("get-orders") == [{}]
        assert cache.get_stats().hits == 1

    @pytest.mark.asyncio
    async def test_get_customer_orders_arguments(
        self, make_client: ClientFactory, session: Any
    ) -> None:
        session.handlers["get-customer-orders"] = []
        await make_client().get_customer_orders("7", limit=10)
        assert session.calls_to("get-customer-orders") == [{"customerId": "7", "limit": 10}]

    @pytest.mark.asyncio
    async def test_tool_error_not_cached(
        self, make_client: ClientFactory, session: Any, cache: MemoryCache
    ) -> None:
        session.handlers["get-order-by-id"] = error_result("Order not found")
        client = make_client()

        with pytest.raises(ToolCallError, match="Order not found"):
            await client.get_order_by_id("404")

        assert len(cache) == 0
        assert cache.get_stats().sets == 0

    @pytest.mark.asyncio
    async def test_disabled_cache_always_calls_remote(
        self, make_client: ClientFactory, session: Any
    ) -> None:
        session.handlers["get-order-by-id"] = {"id": "1"}
        client = make_client()
        client.disable_cache()

        await client.get_order_by_id("1")
        await client.get_order_by_id("1")

        assert len(session.calls_to("get-order-by-id")) == 2
        assert client.get_cache_stats().bypasses == 2


class TestGetAllOrders:
    """Test paginated order listing."""

    @staticmethod
    def paged_orders(total_pages: int | None) -> Callable[[dict[str, Any]], dict[str, Any]]:
        def handler(args: dict[str, Any]) -> dict[str, Any]:
            page = int(args.get("after", "0"))
            has_next = total_pages is None or page + 1 < total_pages
            return {
                "orders": [{"id": f"{page}-{i}"} for i in range(2)],
                "pageInfo": {"hasNextPage": has_next, "endCursor": str(page + 1)},
            }

        return handler

    @pytest.mark.asyncio
    async def test_collects_all_pages(self, make_client: ClientFactory, session: Any) -> None:
        session.handlers["get-orders"] = self.paged_orders(3)

        result = await make_client().get_all_orders(status="open")

        assert result["totalFetched"] == 6
        assert result["hasMore"] is False
        assert [o["id"] for o in result["orders"]][:2] == ["0-0", "0-1"]

        calls = session.calls_to("get-orders")
        assert calls[0] == {
            "status": "open",
            "first": 250,
            "sortKey": "CREATED_AT",
            "reverse": True,
        }
        assert [c.get("after") for c in calls] == [None, "1", "2"]

    @pytest.mark.asyncio
    async def test_respects_max_pages(self, make_client: ClientFactory, session: Any) -> None:
        session.handlers["get-orders"] = self.paged_orders(None)

        result = await make_client().get_all_orders(max_pages=3)

        assert len(session.calls_to("get-orders")) == 3
        assert result["totalFetched"] == 6
        assert result["hasMore"] is True

    @pytest.mark.asyncio
    async def test_default_max_pages_from_client(
        self, make_client: ClientFactory, session: Any
    ) -> None:
        session.handlers["get-orders"] = self.paged_orders(None)

        result = await make_client(max_pages=2).get_all_orders()

        assert len(session.calls_to("get-orders")) == 2
        assert result["hasMore"] is True

    @pytest.mark.asyncio
    async def test_uses_configured_page_size(
        self, make_client: ClientFactory, session: Any
    ) -> None:
        session.handlers["get-orders"] = self.paged_orders(1)
        await make_client(page_size=100).get_all_orders()
        assert session.calls_to("get-orders")[0]["first"] == 100

    @pytest.mark.asyncio
    async def test_bare_list_response(self, make_client: ClientFactory, session: Any) -> None:
        session.handlers["get-orders"] = [{"id": 1}, {"id": 2}]

        result = await make_client().get_all_orders()

        assert result == {"orders": [{"id": 1}, {"id": 2}], "totalFetched": 2, "hasMore": False}

    @pytest.mark.asyncio
    async def test_pages_are_cached(self, make_client: ClientFactory, session: Any) -> None:
        session.handlers["get-orders"] = self.paged_orders(2)
        client = make_client()

        await client.get_all_orders()
        await client.get_all_orders()

        assert len(session.calls_to("get-orders")) == 2

    @pytest.mark.asyncio
    async def test_failure_discards_partial_results(
        self, make_client: ClientFactory, session: Any
    ) -> None:
        def handler(args: dict[str, Any]) -> Any:
            if "after" in args:
                return error_result("Throttled")
            return {"orders": [{"id": 1}], "pageInfo": {"hasNextPage": True, "endCursor": "c"}}

        session.handlers["get-orders"] = handler

        with pytest.raises(ToolCallError, match="Throttled"):
            await make_client().get_all_orders()


class TestMutations:
    """Test mutations and the namespaces they invalidate."""

    async def _warm(self, client: StoreClient, session: Any) -> None:
        session.handlers.update(
            {
                "get-orders": {"orders": []},
                "get-order-by-id": {"id": "42"},
                "get-customers": [],
                "get-customer-orders": [],
                "get-products": [],
                "get-product-by-id": {"id": "p1"},
            }
        )
        await client.get_orders(status="open")
        await client.get_order_by_id("42")
        await client.get_customers()
        await client.get_customer_orders("7")
        await client.get_products()
        await client.get_product_by_id("p1")

    @staticmethod
    def namespaces(cache: MemoryCache) -> set[str]:
        return {key.split(":", 1)[0] for key in cache._entries}

    @pytest.mark.asyncio
    async def test_update_order_invalidates_orders(
        self, make_client: ClientFactory, session: Any, cache: MemoryCache
    ) -> None:
        client = make_client()
        await self._warm(client, session)
        session.handlers["update-order"] = {"id": "42", "note": "gift"}

        result = await client.update_order("42", note="gift")

        assert result == {"id": "42", "note": "gift"}
        assert session.calls_to("update-order") == [{"id": "42", "note": "gift"}]
        assert self.namespaces(cache) == {"customers", "customer_orders", "products", "product"}

    @pytest.mark.asyncio
    async def test_order_read_goes_remote_after_update(
        self, make_client: ClientFactory, session: Any
    ) -> None:
        client = make_client()
        await self._warm(client, session)
        session.handlers["update-order"] = {}

        await client.update_order("42", tags="vip")
        await client.get_order_by_id("42")

        assert len(session.calls_to("get-order-by-id")) == 2

    @pytest.mark.asyncio
    async def test_fulfillment_tracking_invalidates_orders(
        self, make_client: ClientFactory, session: Any, cache: MemoryCache
    ) -> None:
        client = make_client()
        await self._warm(client, session)
        session.handlers["update-fulfillment-tracking"] = {"ok": True}

        await client.update_fulfillment_tracking(
            "gid://shopify/Fulfillment/9", "1Z999", tracking_company="UPS", notify_customer=False
        )

        assert session.calls_to("update-fulfillment-tracking") == [
            {
                "fulfillmentId": "gid://shopify/Fulfillment/9",
                "trackingNumber": "1Z999",
                "trackingCompany": "UPS",
                "notifyCustomer": False,
            }
        ]
        assert "order" not in self.namespaces(cache)
        assert "orders" not in self.namespaces(cache)

    @pytest.mark.asyncio
    async def test_update_customer_invalidates_customers(
        self, make_client: ClientFactory, session: Any, cache: MemoryCache
    ) -> None:
        client = make_client()
        await self._warm(client, session)
        session.handlers["update-customer"] = {"id": "7"}

        await client.update_customer("7", note="VIP", tags=["vip", "wholesale"])

        assert session.calls_to("update-customer") == [
            {"id": "7", "note": "VIP", "tags": ["vip", "wholesale"]}
        ]
        assert self.namespaces(cache) == {"orders", "order", "products", "product"}

    @pytest.mark.asyncio
    async def test_create_product_invalidates_product_lists(
        self, make_client: ClientFactory, session: Any, cache: MemoryCache
    ) -> None:
        client = make_client()
        await self._warm(client, session)
        session.handlers["createProduct"] = {"id": "p2"}

        await client.create_product("Mug", vendor="Acme", status="DRAFT")

        assert session.calls_to("createProduct") == [
            {"title": "Mug", "vendor": "Acme", "status": "DRAFT"}
        ]
        assert "products" not in self.namespaces(cache)
        assert "product" in self.namespaces(cache)

    @pytest.mark.asyncio
    async def test_failed_mutation_keeps_cache(
        self, make_client: ClientFactory, session: Any, cache: MemoryCache
    ) -> None:
        client = make_client()
        await self._warm(client, session)
        session.handlers["update-order"] = error_result("Order is archived")

        with pytest.raises(ToolCallError, match="Order is archived"):
            await client.update_order("42", note="x")

        assert len(cache) == 6
        await client.get_order_by_id("42")
        assert len(session.calls_to("get-order-by-id")) == 1


class TestCacheControl:
    """Test cache control passthroughs."""

    @pytest.mark.asyncio
    async def test_clear_and_invalidate_key(
        self, make_client: ClientFactory, session: Any
    ) -> None:
        session.handlers["get-order-by-id"] = {"id": "1"}
        client = make_client()
        await client.get_order_by_id("1")
        await client.get_order_by_id("2")

        assert client.invalidate_cache_key(create_cache_key("order", {"id": "1"})) is True
        assert client.invalidate_cache_key("order:missing") is False
        assert client.clear_cache() == 1

    def test_enable_disable(self, make_client: ClientFactory) -> None:
        client = make_client()
        client.disable_cache()
        assert not client.cache.enabled
        client.enable_cache()
        assert client.cache.enabled

    def test_default_cache_created(self, server_config: Any) -> None:
        client = StoreClient(server_config)
        assert isinstance(client.cache, MemoryCache)
        assert client.cache.namespace == "shopify-order-manager"


class TestConnection:
    """Test session lifecycle."""

    @pytest.mark.asyncio
    async def test_injected_session_counts_as_connected(self, make_client: ClientFactory) -> None:
        client = make_client()
        assert client.connected
        await client.connect()
        assert client.connected

    @pytest.mark.asyncio
    async def test_disconnect_drops_session(self, make_client: ClientFactory) -> None:
        client = make_client()
        await client.disconnect()
        assert not client.connected

    @pytest.mark.asyncio
    async def test_list_tools(self, make_client: ClientFactory, session: Any) -> None:
        session.handlers["get-orders"] = {}
        tools = await make_client().list_tools()
        assert tools == [{"name": "get-orders", "description": "get-orders tool"}]

    @pytest.mark.asyncio
    async def test_connect_starts_stdio_session(self, server_config: Any) -> None:
        """connect() launches the configured server and initializes a session."""
        session = AsyncMock()
        transport_cm = AsyncMock()
        transport_cm.__aenter__.return_value = ("read", "write")
        session_cm = AsyncMock()
        session_cm.__aenter__.return_value = session

        with (
            patch("order_manager.client.stdio_client", return_value=transport_cm) as stdio,
            patch("order_manager.client.ClientSession", return_value=session_cm),
        ):
            client = StoreClient(server_config)
            async with client:
                assert client.connected
                params = stdio.call_args.args[0]
                assert params.command == "npx"
                assert params.args == ["shopify-mcp"]
                session.initialize.assert_awaited_once()

        assert not client.connected
        transport_cm.__aexit__.assert_awaited_once()
        session_cm.__aexit__.assert_awaited_once()

    def test_store_domain(self, make_client: ClientFactory) -> None:
        assert make_client().store_domain == "test-store.myshopify.com"

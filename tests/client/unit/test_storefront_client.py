"""
Unit Tests for StorefrontClient and OrderTimelineLoader.

HTTP is served by httpx.MockTransport; no server is started.
"""

import httpx
import pytest

from evarae.client import (
    OrderTimelineLoader,
    StorefrontClient,
    StorefrontError,
    StorefrontUnavailable,
)
from evarae.services.return_fetch import ReturnRequestFetchGuard


def return_payload(id, order_id, status, sku="RING-ROSE-01"):
    return {
        "id": id,
        "orderId": order_id,
        "userId": 1,
        "orderItem": {"sku": sku, "name": "Rose Ring", "price": 2450.0, "quantity": 1},
        "returnReason": "damaged",
        "note": "",
        "images": ["a.jpg", "b.jpg"],
        "status": status,
        "createdAt": "2026-10-15T08:00:00",
    }


class FakeStorefront:
    """Routes requests to canned order and return request payloads."""

    def __init__(self, orders, returns):
        self.orders = orders
        self.returns = returns
        self.return_calls = 0
        self.fail_returns = False

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == "/api/account/return-requests/":
            self.return_calls += 1
            if self.fail_returns:
                return httpx.Response(500, json={"detail": "Failed to fetch return requests"})
            order_id = int(request.url.params["orderId"])
            return httpx.Response(200, json={"returnRequests": self.returns.get(order_id, [])})
        if path.startswith("/api/orders/"):
            order_id = int(path.rsplit("/", 1)[-1])
            if order_id not in self.orders:
                return httpx.Response(404, json={"detail": "Order not found"})
            return httpx.Response(200, json=self.orders[order_id])
        return httpx.Response(404, json={"detail": "Not Found"})


def make_client(fake):
    return StorefrontClient(base_url="http://storefront.test", transport=httpx.MockTransport(fake))


class TestStorefrontClient:

    @pytest.mark.asyncio
    async def test_get_return_requests_parses_snapshots(self):
        fake = FakeStorefront(orders={}, returns={3: [return_payload(1, 3, "approved")]})

        async with make_client(fake) as client:
            result = await client.get_return_requests(3)

        assert len(result) == 1
        assert result[0].order_id == 3
        assert result[0].status == "approved"
        assert result[0].item_sku == "RING-ROSE-01"

    @pytest.mark.asyncio
    async def test_error_response_raises_storefront_error(self):
        fake = FakeStorefront(orders={}, returns={})

        async with make_client(fake) as client:
            with pytest.raises(StorefrontError) as exc_info:
                await client.get_order(99)

        assert exc_info.value.status_code == 404
        assert exc_info.value.detail == "Order not found"

    @pytest.mark.asyncio
    async def test_transport_error_raises_unavailable(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = StorefrontClient(base_url="http://storefront.test", transport=httpx.MockTransport(refuse))
        try:
            with pytest.raises(StorefrontUnavailable):
                await client.get_order(1)
        finally:
            await client.aclose()


class TestOrderTimelineLoader:

    @pytest.mark.asyncio
    async def test_load_projects_timeline(self):
        fake = FakeStorefront(
            orders={3: {"id": 3, "status": "delivered"}},
            returns={3: [return_payload(1, 3, "processing")]},
        )

        async with make_client(fake) as client:
            loader = OrderTimelineLoader(client, ReturnRequestFetchGuard(client.get_return_requests, debounce=0))
            order, projection = await loader.load(3)

        assert order["id"] == 3
        assert projection.status == "return"
        assert projection.return_completed is False
        assert projection.stages[-1].is_current is True

    @pytest.mark.asyncio
    async def test_repeated_loads_fetch_returns_once(self):
        fake = FakeStorefront(orders={3: {"id": 3, "status": "delivered"}}, returns={3: []})

        async with make_client(fake) as client:
            loader = OrderTimelineLoader(client, ReturnRequestFetchGuard(client.get_return_requests, debounce=0))
            for _ in range(3):
                await loader.load(3)

        assert fake.return_calls == 1

    @pytest.mark.asyncio
    async def test_fetch_failure_still_projects(self):
        fake = FakeStorefront(orders={5: {"id": 5, "status": "shipped"}}, returns={})
        fake.fail_returns = True

        async with make_client(fake) as client:
            loader = OrderTimelineLoader(client, ReturnRequestFetchGuard(client.get_return_requests, debounce=0))
            _, projection = await loader.load(5)

            assert projection.status == "shipped"
            assert projection.current_index == 3
            assert projection.has_return_stage is False

            # Re-mount for the same order after the API recovers
            fake.fail_returns = False
            fake.returns[5] = [return_payload(2, 5, "pending")]
            loader.reset(5)
            _, projection = await loader.load(5)

        assert projection.has_return_stage is True
        assert fake.return_calls == 2

    @pytest.mark.asyncio
    async def test_requests_for_other_orders_are_discarded(self):
        fake = FakeStorefront(
            orders={3: {"id": 3, "status": "delivered"}},
            returns={3: [return_payload(1, 4, "completed")]},
        )

        async with make_client(fake) as client:
            loader = OrderTimelineLoader(client, ReturnRequestFetchGuard(client.get_return_requests, debounce=0))
            _, projection = await loader.load(3)

        assert projection.status == "delivered"
        assert projection.has_return_stage is False

    @pytest.mark.asyncio
    async def test_reset_for_one_order_keeps_last_known_requests(self):
        fake = FakeStorefront(
            orders={3: {"id": 3, "status": "delivered"}},
            returns={3: [return_payload(1, 3, "approved")]},
        )

        async with make_client(fake) as client:
            loader = OrderTimelineLoader(client, ReturnRequestFetchGuard(client.get_return_requests, debounce=0))
            await loader.load(3)
            fake.fail_returns = True
            loader.reset(3)
            _, projection = await loader.load(3)

        assert projection.has_return_stage is True

    @pytest.mark.asyncio
    async def test_reset_all_drops_cached_requests(self):
        fake = FakeStorefront(
            orders={3: {"id": 3, "status": "delivered"}},
            returns={3: [return_payload(1, 3, "approved")]},
        )

        async with make_client(fake) as client:
            loader = OrderTimelineLoader(client, ReturnRequestFetchGuard(client.get_return_requests, debounce=0))
            await loader.load(3)
            fake.fail_returns = True
            loader.reset()
            _, projection = await loader.load(3)

        assert projection.status == "delivered"
        assert projection.has_return_stage is False

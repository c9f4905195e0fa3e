"""Async HTTP client for the storefront API.

Used by order pages rendered outside this service: it reads an order and
its return requests and projects the delivery timeline locally.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

import httpx

from evarae.config import get_settings
from evarae.services.return_fetch import ReturnRequestFetchGuard
from evarae.services.returns import ReturnSnapshot, returns_for_order
from evarae.services.timeline import TimelineProjection, project_timeline

logger = logging.getLogger(__name__)


class StorefrontError(Exception):
    """Non-success response from the storefront API."""

    def __init__(self, status_code: int, detail: str):
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"{status_code}: {detail}")


class StorefrontUnavailable(Exception):
    """The storefront API could not be reached."""

    pass


def _handle_response(response: httpx.Response) -> Any:
    if response.is_success:
        return response.json()
    try:
        detail = response.json().get("detail", response.reason_phrase)
    except (ValueError, AttributeError):
        detail = response.text or response.reason_phrase
    raise StorefrontError(response.status_code, str(detail))


class StorefrontClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        auth: Optional[Tuple[str, str]] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.STOREFRONT_API_URL,
            auth=auth,
            timeout=settings.STOREFRONT_API_TIMEOUT if timeout is None else timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "StorefrontClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        try:
            response = await self._client.get(path, params=params)
        except httpx.RequestError as e:
            logger.error("Storefront API unavailable: %s", e)
            raise StorefrontUnavailable(str(e)) from e
        return _handle_response(response)

    async def get_order(self, order_id: int) -> Dict[str, Any]:
        return await self._get(f"/api/orders/{order_id}")

    async def get_return_requests(self, order_id: int) -> List[ReturnSnapshot]:
        data = await self._get("/api/account/return-requests/", params={"orderId": order_id})
        return [ReturnSnapshot.from_payload(r) for r in data.get("returnRequests", [])]


class OrderTimelineLoader:
    """Loads an order and projects its timeline, fetching returns once per order.

    Fetched return requests are kept per order id until ``reset``; scope a
    loader to one view and reset it when the view is torn down.
    """

    def __init__(self, client: StorefrontClient, guard: Optional[ReturnRequestFetchGuard] = None):
        self._client = client
        self._guard = guard or ReturnRequestFetchGuard(client.get_return_requests)
        self._known: Dict[int, List[ReturnSnapshot]] = {}

    async def load(self, order_id: int) -> Tuple[Dict[str, Any], TimelineProjection]:
        order = await self._client.get_order(order_id)
        try:
            requests = await self._guard.trigger(order_id)
        except Exception as e:
            # Render with what we already know; reset() allows a fresh fetch
            logger.warning("Using cached return requests for order %s: %s", order_id, e)
            requests = self._known.get(order_id, [])
        else:
            self._known[order_id] = requests
        # Responses for a previously shown order never leak into this one
        requests = returns_for_order(order_id, requests)
        return order, project_timeline(order.get("status"), requests)

    def reset(self, order_id: Optional[int] = None) -> None:
        """Allow fresh fetches; without an id, also drop every cached result."""
        self._guard.reset(order_id)
        if order_id is None:
            self._known.clear()

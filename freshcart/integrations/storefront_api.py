"""
Storefront HTTP API client.

Three calls are used by checkout:

- ``POST /order/shipping-quote``: fee quote for (items, zone)
- ``POST /order/create``: standard order
- ``POST {fish}/orders``: fish order

Every failure surfaces as ``ApiError`` with a readable message.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

import aiohttp

from freshcart.core.config import Settings
from freshcart.core.constants import QUOTE_PLACEHOLDER_ADDRESS, QUOTE_TIMEOUT_SECONDS
from freshcart.core.exceptions import ApiError
from freshcart.core.idempotency import normalize_idempotency_key
from freshcart.domain.cart import CartLine
from freshcart.domain.order import extract_order_id
from freshcart.domain.value_objects import ShippingZone

logger = logging.getLogger(__name__)

# order submissions wait for the transport to give up on its own
NO_TIMEOUT = aiohttp.ClientTimeout(total=None)


@dataclass(frozen=True, slots=True)
class ShippingQuote:
    zone: ShippingZone
    total_weight_kg: float
    fee: float
    breakdown: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_response(cls, data: Mapping[str, Any], zone: ShippingZone) -> ShippingQuote:
        try:
            fee = float(data["shippingFee"])
        except (KeyError, TypeError, ValueError):
            raise ApiError("Shipping quote response has no fee")
        try:
            weight = float(data.get("totalWeightKg") or 0)
        except (TypeError, ValueError):
            weight = 0.0
        breakdown = data.get("breakdown")
        return cls(
            zone=zone,
            total_weight_kg=weight,
            fee=fee,
            breakdown=dict(breakdown) if isinstance(breakdown, Mapping) else {},
        )


def quote_items(lines: Sequence[CartLine]) -> list[dict[str, Any]]:
    """Order items in the shape the quote endpoint reads."""
    items = []
    for line in lines:
        item: dict[str, Any] = {"product": line.product_id, "quantity": line.quantity}
        if line.variant_id:
            item["variantId"] = line.variant_id
        items.append(item)
    return items


class StorefrontApiClient:
    """Async client for the storefront order endpoints."""

    def __init__(
        self,
        base_url: str,
        fish_base_url: str | None = None,
        access_token: str | None = None,
        *,
        quote_timeout: float = QUOTE_TIMEOUT_SECONDS,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.fish_base_url = (fish_base_url or f"{self.base_url}/fish").rstrip("/")
        self.access_token = access_token
        self._quote_timeout = aiohttp.ClientTimeout(total=quote_timeout)
        self._session: aiohttp.ClientSession | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> StorefrontApiClient:
        return cls(
            settings.api.base_url,
            settings.api.fish_base_url,
            settings.api.access_token,
            quote_timeout=settings.api.quote_timeout,
        )

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=NO_TIMEOUT)
        return self._session

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> StorefrontApiClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def _headers(self, idempotency_key: str | None = None) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        key = normalize_idempotency_key(idempotency_key)
        if key:
            headers["Idempotency-Key"] = key
        return headers

    async def _request(
        self,
        url: str,
        payload: Mapping[str, Any],
        *,
        timeout: aiohttp.ClientTimeout = NO_TIMEOUT,
        idempotency_key: str | None = None,
    ) -> Any:
        session = await self._get_session()
        try:
            async with session.post(
                url,
                json=payload,
                headers=self._headers(idempotency_key),
                timeout=timeout,
            ) as response:
                try:
                    data = await response.json(content_type=None)
                except ValueError:
                    data = None

                if response.status >= 400:
                    message = None
                    if isinstance(data, Mapping):
                        message = data.get("message") or data.get("error")
                    message = str(message or response.reason or "API Error")
                    logger.warning("POST %s failed: %s %s", url, response.status, message)
                    raise ApiError(message, status=response.status)
                return data
        except asyncio.TimeoutError:
            logger.warning("POST %s timed out", url)
            raise ApiError("Request timed out")
        except aiohttp.ClientError as exc:
            logger.warning("POST %s transport error: %s", url, exc)
            raise ApiError(str(exc) or "Network error")

    async def get_shipping_quote(
        self,
        items: Sequence[CartLine] | Sequence[Mapping[str, Any]],
        address: Mapping[str, Any] | None,
        zone: ShippingZone | str,
    ) -> ShippingQuote:
        """Quote the delivery fee. The zone decides the fee; the address may be a placeholder."""
        zone = ShippingZone.normalize(zone)
        order_items = [
            item if isinstance(item, Mapping) else quote_items([item])[0] for item in items
        ]
        payload = {
            "orderItems": order_items,
            "shippingAddress": dict(address or QUOTE_PLACEHOLDER_ADDRESS),
            "shippingZone": zone.value,
        }
        data = await self._request(
            f"{self.base_url}/order/shipping-quote",
            payload,
            timeout=self._quote_timeout,
        )
        if not isinstance(data, Mapping):
            raise ApiError("Unexpected shipping quote response")
        if data.get("success") is False:
            raise ApiError(str(data.get("message") or "API Error"))
        return ShippingQuote.from_response(data, zone)

    async def place_order(
        self, payload: Mapping[str, Any], idempotency_key: str | None = None
    ) -> tuple[str, Any]:
        """Create a standard order and return (order id, raw response)."""
        data = await self._request(
            f"{self.base_url}/order/create",
            payload,
            idempotency_key=idempotency_key,
        )
        order_id = extract_order_id(data, "order", "data")
        if not order_id:
            raise ApiError("Order was created without an id")
        return order_id, data

    async def create_fish_order(
        self, payload: Mapping[str, Any], idempotency_key: str | None = None
    ) -> tuple[str, Any]:
        """Create a fish order and return (order id, raw response)."""
        data = await self._request(
            f"{self.fish_base_url}/orders",
            payload,
            idempotency_key=idempotency_key,
        )
        order_id = extract_order_id(data, "fishOrder", "data")
        if not order_id:
            raise ApiError("Fish order was created without an id")
        return order_id, data

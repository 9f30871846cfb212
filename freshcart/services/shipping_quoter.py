"""Live shipping-fee quote for the current (cart contents, zone)."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol, Sequence

from freshcart.core.constants import (
    MSG_FEE_CALCULATING,
    MSG_GENERIC_QUOTE_ERROR,
    MSG_SELECT_ZONE,
)
from freshcart.core.exceptions import FreshCartException
from freshcart.core.idempotency import build_request_hash
from freshcart.core.units import format_price
from freshcart.domain.cart import CartLine
from freshcart.domain.value_objects import ShippingZone
from freshcart.integrations.storefront_api import ShippingQuote, quote_items
from freshcart.services.cart_service import CartStore

logger = logging.getLogger(__name__)


class QuoteApi(Protocol):
    async def get_shipping_quote(
        self, items: Sequence[Any], address: Any, zone: ShippingZone | str
    ) -> ShippingQuote: ...


class ShippingQuoter:
    """Keeps one shipping quote in step with the cart and the selected zone.

    Every zone or cart change bumps ``token``, drops the current fee and
    starts a new request, cancelling the one in flight. A response whose
    token is no longer current is discarded.
    """

    def __init__(self, api: QuoteApi, cart: CartStore) -> None:
        self._api = api
        self._cart = cart
        self.selected_zone: ShippingZone | None = None
        self.token = 0
        self.fee: float | None = None
        self.quote: ShippingQuote | None = None
        self.loading = False
        self.error: str | None = None
        self._quoted_key: str | None = None
        self._task: asyncio.Task | None = None
        self._unsubscribe = cart.subscribe(self._on_cart_changed)

    def quote_key(self, lines: Sequence[CartLine] | None = None) -> str | None:
        """Stable hash of (items, zone); None without a zone."""
        if self.selected_zone is None:
            return None
        items = quote_items(self._cart.lines if lines is None else lines)
        return build_request_hash({"items": items, "zone": self.selected_zone.value})

    @property
    def is_ready(self) -> bool:
        return (
            self.selected_zone is not None
            and self.quote is not None
            and not self.loading
            and self._quoted_key == self.quote_key()
        )

    def display_fee(self) -> str:
        if self.selected_zone is None:
            return MSG_SELECT_ZONE
        if self._cart.is_empty:
            return format_price(0)
        if self.loading:
            return MSG_FEE_CALCULATING
        if self.error:
            return self.error
        if not self.is_ready or self.fee is None:
            return MSG_FEE_CALCULATING
        return format_price(self.fee)

    def select_zone(self, zone: ShippingZone | str | None) -> asyncio.Task | None:
        """Choose a delivery zone (or clear it with None) and re-quote."""
        self.selected_zone = ShippingZone.normalize(zone) if zone else None
        return self.refresh()

    def _on_cart_changed(self, cart: CartStore) -> None:
        self.refresh()

    def _invalidate(self) -> None:
        self.token += 1
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        self.fee = None
        self.quote = None
        self._quoted_key = None
        self.loading = False

    def refresh(self) -> asyncio.Task | None:
        """Drop the current quote and request a new one when zone and cart allow it."""
        self._invalidate()
        if self.selected_zone is None or self._cart.is_empty:
            return None

        lines = self._cart.lines
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; shipping quote deferred")
            return None

        self.loading = True
        self._task = loop.create_task(self._fetch(self.token, self.selected_zone, lines))
        return self._task

    async def _fetch(self, token: int, zone: ShippingZone, lines: list[CartLine]) -> None:
        key = self.quote_key(lines)
        try:
            quote = await self._api.get_shipping_quote(quote_items(lines), None, zone)
        except Exception as exc:
            if token != self.token:
                logger.warning("Discarding stale shipping quote error (token %s): %s", token, exc)
                return
            if isinstance(exc, FreshCartException):
                logger.warning("Shipping quote failed for %s: %s", zone.value, exc.message)
                self.error = exc.message or MSG_GENERIC_QUOTE_ERROR
            else:
                logger.exception("Unexpected shipping quote failure for %s", zone.value)
                self.error = MSG_GENERIC_QUOTE_ERROR
            self.fee = 0.0
            self.quote = None
            self.loading = False
            return

        if token != self.token:
            logger.warning("Discarding stale shipping quote (token %s, current %s)", token, self.token)
            return

        self.quote = quote
        self.fee = quote.fee
        self.error = None
        self._quoted_key = key
        self.loading = False
        logger.debug(
            "Shipping quote %s: fee=%s weight=%skg", zone.value, quote.fee, quote.total_weight_kg
        )

    async def wait(self) -> ShippingQuote | None:
        """Wait until the current request settles, starting one if none is pending."""
        if not self.is_ready and (self._task is None or self._task.done()):
            self.refresh()
        while self._task is not None and not self._task.done():
            await asyncio.wait({self._task})
        return self.quote if self.is_ready else None

    def close(self) -> None:
        self._unsubscribe()
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

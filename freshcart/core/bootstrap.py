"""Wiring of settings, storage, API client and checkout services for one session."""
from __future__ import annotations

from dataclasses import dataclass

from freshcart.core.config import Settings, load_settings
from freshcart.domain.checkout_fsm import CheckoutSession
from freshcart.integrations.redis_cart import RedisCartStorage
from freshcart.integrations.storefront_api import StorefrontApiClient
from freshcart.services.cart_service import CartStore
from freshcart.services.order_orchestrator import OrderOrchestrator
from freshcart.services.shipping_quoter import ShippingQuoter


@dataclass(slots=True)
class Checkout:
    cart: CartStore
    quoter: ShippingQuoter
    session: CheckoutSession
    orchestrator: OrderOrchestrator
    api: StorefrontApiClient

    async def close(self) -> None:
        self.orchestrator.close()
        self.quoter.close()
        await self.api.close()


def build_checkout(
    session_key: str,
    settings: Settings | None = None,
    *,
    storage: RedisCartStorage | None = None,
    api: StorefrontApiClient | None = None,
) -> Checkout:
    """Create the checkout components for one shopper session and load its cart."""
    settings = settings or load_settings()
    storage = storage or RedisCartStorage(settings.redis_url)
    api = api or StorefrontApiClient.from_settings(settings)

    cart = CartStore(session_key, storage, fish_category=settings.fish_category)
    cart.load()
    quoter = ShippingQuoter(api, cart)
    session = CheckoutSession()
    orchestrator = OrderOrchestrator(
        api,
        cart,
        quoter,
        session,
        fish_category=settings.fish_category,
        fee_split=settings.fee_split,
    )
    return Checkout(cart=cart, quoter=quoter, session=session, orchestrator=orchestrator, api=api)

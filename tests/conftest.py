"""Shared pytest fixtures: fake redis, fake storefront API, catalogue and addresses."""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any

import pytest

from freshcart.domain.checkout_fsm import CheckoutSession
from freshcart.domain.entities.product import Product
from freshcart.domain.value_objects import ShippingZone
from freshcart.integrations.redis_cart import RedisCartStorage
from freshcart.integrations.storefront_api import ShippingQuote
from freshcart.services.cart_service import CartStore
from freshcart.services.order_orchestrator import OrderOrchestrator
from freshcart.services.shipping_quoter import ShippingQuoter


@dataclass
class FakeRedisClient:
    data: dict[str, str] = field(default_factory=dict)
    expiry: dict[str, int] = field(default_factory=dict)
    setex_calls: list[tuple[str, int]] = field(default_factory=list)
    fail_writes: bool = False

    def ping(self) -> bool:
        return True

    def get(self, key: str):
        return self.data.get(key)

    def setex(self, key: str, ttl: int, value: str) -> bool:
        if self.fail_writes:
            import redis

            raise redis.ConnectionError("connection lost")
        self.data[key] = value
        self.expiry[key] = ttl
        self.setex_calls.append((key, ttl))
        return True

    def delete(self, key: str) -> int:
        existed = 1 if key in self.data else 0
        self.data.pop(key, None)
        self.expiry.pop(key, None)
        return existed

    def set(self, key: str, value: str, nx: bool = False, ex: int | None = None):
        if nx and key in self.data:
            return False
        self.data[key] = value
        if ex is not None:
            self.expiry[key] = ex
        return True

    def eval(self, _script: str, _keys_count: int, key: str, token: str) -> int:
        if self.data.get(key) == token:
            self.delete(key)
            return 1
        return 0


@pytest.fixture
def fake_redis(monkeypatch):
    import freshcart.integrations.redis_cart as redis_cart_module

    client = FakeRedisClient()
    monkeypatch.setattr(redis_cart_module.redis, "from_url", lambda *args, **kwargs: client)
    return client


@dataclass
class FakeStorefrontApi:
    """Records calls in order; errors and gates are set per test."""

    fee: float = 40.0
    weight: float = 1.5
    fee_by_zone: dict[str, float] = field(default_factory=dict)
    regular_id: str = "R1"
    fish_id: str = "F1"
    quote_error: Exception | None = None
    regular_error: Exception | None = None
    fish_error: Exception | None = None
    quote_gate: asyncio.Event | None = None
    order_gate: asyncio.Event | None = None
    fish_gate: asyncio.Event | None = None
    calls: list[str] = field(default_factory=list)
    payloads: dict[str, dict[str, Any]] = field(default_factory=dict)
    idempotency_keys: dict[str, str | None] = field(default_factory=dict)
    quote_calls: list[tuple[list[Any], ShippingZone]] = field(default_factory=list)

    async def get_shipping_quote(self, items, address, zone) -> ShippingQuote:
        zone = ShippingZone.normalize(zone)
        self.quote_calls.append((list(items), zone))
        if self.quote_gate is not None:
            await self.quote_gate.wait()
        if self.quote_error is not None:
            raise self.quote_error
        return ShippingQuote(
            zone=zone,
            total_weight_kg=self.weight,
            fee=self.fee_by_zone.get(zone.value, self.fee),
            breakdown={"type": "weight", "tier": "0-2kg"},
        )

    async def place_order(self, payload, idempotency_key=None):
        self.calls.append("regular")
        self.payloads["regular"] = dict(payload)
        self.idempotency_keys["regular"] = idempotency_key
        if self.order_gate is not None:
            await self.order_gate.wait()
        if self.regular_error is not None:
            raise self.regular_error
        return self.regular_id, {"order": {"_id": self.regular_id}}

    async def create_fish_order(self, payload, idempotency_key=None):
        self.calls.append("fish")
        self.payloads["fish"] = dict(payload)
        self.idempotency_keys["fish"] = idempotency_key
        if self.fish_gate is not None:
            await self.fish_gate.wait()
        if self.fish_error is not None:
            raise self.fish_error
        return self.fish_id, {"fishOrder": {"_id": self.fish_id}}


@pytest.fixture
def api() -> FakeStorefrontApi:
    return FakeStorefrontApi()


@pytest.fixture
def rice() -> Product:
    return Product.model_validate(
        {
            "_id": "p-rice",
            "name": "Miniket Rice",
            "price": 50,
            "unit": "pcs",
            "measurement": 1,
            "stock": 10,
            "category": {"_id": "c-1", "name": "Grocery"},
        }
    )


@pytest.fixture
def hilsa() -> Product:
    return Product.model_validate(
        {
            "_id": "f-hilsa",
            "name": "Padma Hilsa",
            "price": 300,
            "unit": "kg",
            "measurement": 1,
            "stock": 20,
            "category": "Fish",
            "isFishProduct": True,
            "sizeCategories": [
                {"_id": "sc-small", "label": "500-800 g", "pricePerKg": 300, "isDefault": True},
                {"_id": "sc-large", "label": "1-1.5 kg", "pricePerKg": 450, "stock": 3},
            ],
        }
    )


@pytest.fixture
def address() -> dict[str, str]:
    return {
        "name": "Rahim Uddin",
        "phone": "01712345678",
        "division": "Dhaka",
        "district": "Dhaka",
        "upazila": "Dhanmondi",
        "address": "House 12, Road 5, Dhanmondi",
        "postalCode": "1205",
    }


@pytest.fixture
def cart(monkeypatch) -> CartStore:
    monkeypatch.delenv("REDIS_URL", raising=False)
    return CartStore("session-1", RedisCartStorage())


@pytest.fixture
def checkout(api, cart):
    quoter = ShippingQuoter(api, cart)
    session = CheckoutSession()
    orchestrator = OrderOrchestrator(api, cart, quoter, session)
    yield orchestrator
    orchestrator.close()
    quoter.close()


@pytest.fixture()
async def aiohttp_client():
    """Minimal aiohttp_client fixture to avoid pytest-aiohttp dependency."""
    clients: list[object] = []

    async def _make_client(app):
        from aiohttp.test_utils import TestClient, TestServer

        server = TestServer(app)
        client = TestClient(server)
        await client.start_server()
        clients.append(client)
        return client

    try:
        yield _make_client
    finally:
        for client in clients:
            await client.close()

"""Integrations package - storefront API client and cart persistence."""

from freshcart.integrations.redis_cart import RedisCartStorage
from freshcart.integrations.storefront_api import ShippingQuote, StorefrontApiClient, quote_items

__all__ = [
    "RedisCartStorage",
    "ShippingQuote",
    "StorefrontApiClient",
    "quote_items",
]

"""Domain package."""

from .cart import CartLine, SizeCategoryRef, VariantSnapshot, line_key
from .entities import GuestInfo, Product, ShippingAddress, SizeCategory, Variant, parse_address
from .value_objects import CheckoutStep, Fulfillment, ProductUnit, ShippingZone

__all__ = [
    # Entities
    "Product",
    "Variant",
    "SizeCategory",
    "ShippingAddress",
    "GuestInfo",
    "parse_address",
    # Cart
    "CartLine",
    "VariantSnapshot",
    "SizeCategoryRef",
    "line_key",
    # Value Objects
    "ShippingZone",
    "Fulfillment",
    "CheckoutStep",
    "ProductUnit",
]

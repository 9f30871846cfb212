"""Domain entities package."""

from .address import GuestInfo, ShippingAddress, parse_address
from .product import Product, SizeCategory, Variant

__all__ = [
    "Product",
    "Variant",
    "SizeCategory",
    "ShippingAddress",
    "GuestInfo",
    "parse_address",
]

"""Checkout and order-placement core for a grocery and fresh-fish storefront."""

__version__ = "0.1.0"

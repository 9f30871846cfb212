"""Value Objects for domain model."""
from __future__ import annotations

from enum import Enum
from typing import Literal


class ShippingZone(str, Enum):
    """Delivery pricing regions."""

    INSIDE_DHAKA = "inside_dhaka"
    OUTSIDE_DHAKA = "outside_dhaka"

    @classmethod
    def normalize(cls, zone: str | ShippingZone) -> ShippingZone:
        """Accept enum members, values and a few spelling variants."""
        if isinstance(zone, cls):
            return zone
        cleaned = str(zone).strip().lower().replace("-", "_").replace(" ", "_")
        for item in cls:
            if item.value == cleaned:
                return item
        raise ValueError(f"Unknown shipping zone: {zone!r}")


class Fulfillment(str, Enum):
    """How a cart line is fulfilled: fixed-unit package or weight-variable fish."""

    STANDARD = "standard"
    FISH = "fish"


class CheckoutStep(str, Enum):
    """Checkout session steps."""

    CART = "cart"
    ADDRESS = "address"
    PLACING = "placing"
    PLACED = "placed"


ProductUnit = Literal["pcs", "kg", "g", "l", "ml"]

"""Business services orchestrating domain logic."""

from .cart_service import CartStore
from .order_orchestrator import OrderOrchestrator
from .shipping_quoter import ShippingQuoter

__all__ = [
    "CartStore",
    "OrderOrchestrator",
    "ShippingQuoter",
]

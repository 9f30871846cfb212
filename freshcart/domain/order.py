"""Order payloads, placement outcomes and orchestrator phases."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Sequence

from freshcart.core.constants import PAYMENT_METHOD_COD
from freshcart.core.units import calc_line_total
from freshcart.domain.cart import CartLine
from freshcart.domain.entities.address import GuestInfo, ShippingAddress
from freshcart.domain.fulfillment import price_per_kg, resolve_size_category_id


class PlacementStatus(str, Enum):
    """Outcome of one placement attempt."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    PARTIAL_SUCCESS = "partial_success"


class OrchestratorPhase(str, Enum):
    """Internal progress of a placement attempt."""

    IDLE = "idle"
    SUBMITTING_REGULAR = "submitting_regular"
    SUBMITTING_FISH = "submitting_fish"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    PARTIAL_SUCCESS = "partial_success"


PHASE_TRANSITIONS: Mapping[OrchestratorPhase, frozenset[OrchestratorPhase]] = {
    OrchestratorPhase.IDLE: frozenset(
        {
            OrchestratorPhase.SUBMITTING_REGULAR,
            OrchestratorPhase.SUBMITTING_FISH,
            OrchestratorPhase.FAILED,
        }
    ),
    OrchestratorPhase.SUBMITTING_REGULAR: frozenset(
        {
            OrchestratorPhase.SUBMITTING_FISH,
            OrchestratorPhase.SUCCEEDED,
            OrchestratorPhase.FAILED,
        }
    ),
    OrchestratorPhase.SUBMITTING_FISH: frozenset(
        {
            OrchestratorPhase.SUCCEEDED,
            OrchestratorPhase.FAILED,
            OrchestratorPhase.PARTIAL_SUCCESS,
        }
    ),
    OrchestratorPhase.SUCCEEDED: frozenset({OrchestratorPhase.IDLE}),
    OrchestratorPhase.FAILED: frozenset({OrchestratorPhase.IDLE}),
    OrchestratorPhase.PARTIAL_SUCCESS: frozenset({OrchestratorPhase.IDLE}),
}


@dataclass
class PlacementResult:
    """Result of order placement."""

    status: PlacementStatus
    regular_order_id: str | None = None
    fish_order_id: str | None = None
    error_message: str | None = None
    regular_total: float = 0.0
    fish_total: float = 0.0
    shipping_fee: float = 0.0
    grand_total: float = 0.0
    calls: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.status == PlacementStatus.SUCCEEDED

    @property
    def primary_order_id(self) -> str | None:
        """Identifier used for the success redirect."""
        if self.status != PlacementStatus.SUCCEEDED:
            return None
        return self.regular_order_id or self.fish_order_id

    @property
    def support_reference(self) -> str | None:
        """Order id to quote to support when only the standard order exists."""
        if self.status == PlacementStatus.PARTIAL_SUCCESS:
            return self.regular_order_id
        return None


def _identity_fields(guest: GuestInfo | None) -> dict[str, Any]:
    return {"guestInfo": guest.to_payload()} if guest is not None else {}


def build_standard_order(
    lines: Sequence[CartLine],
    address: ShippingAddress,
    *,
    shipping_fee: float,
    guest: GuestInfo | None = None,
    notes: str | None = None,
) -> dict[str, Any]:
    """Payload for ``placeOrder`` built from the regular partition."""
    items = []
    total = 0.0
    for line in lines:
        price = line.effective_price
        item: dict[str, Any] = {
            "product": line.product_id,
            "name": line.name,
            "quantity": line.quantity,
            "price": price,
        }
        if line.variant_id:
            item["variantId"] = line.variant_id
        items.append(item)
        total += calc_line_total(price, line.quantity)

    total = round(total, 2)
    payload: dict[str, Any] = {
        "orderItems": items,
        "shippingAddress": address.to_payload(),
        "paymentMethod": PAYMENT_METHOD_COD,
        "shippingFee": shipping_fee,
        "totalPrice": total,
        "totalAmount": round(total + shipping_fee, 2),
    }
    payload.update(_identity_fields(guest))
    if notes:
        payload["notes"] = notes
    return payload


def build_fish_order(
    lines: Sequence[CartLine],
    address: ShippingAddress,
    *,
    shipping_fee: float,
    guest: GuestInfo | None = None,
    notes: str | None = None,
) -> dict[str, Any]:
    """Payload for ``fishOrderApi.create`` built from the fish partition.

    The line quantity is the requested weight in kg; the actual weight is
    reconciled by the shop after placement.

    Raises:
        SizeCategoryUnresolved: when a line has no size category to order
    """
    items = []
    total = 0.0
    for line in lines:
        rate = price_per_kg(line)
        items.append(
            {
                "fishProduct": line.product_id,
                "sizeCategoryId": resolve_size_category_id(line),
                "requestedWeight": line.quantity,
                "pricePerKg": rate,
            }
        )
        total += calc_line_total(rate, line.quantity)

    payload: dict[str, Any] = {
        "orderItems": items,
        "shippingAddress": address.to_fish_payload(),
        "paymentMethod": PAYMENT_METHOD_COD,
        "shippingFee": shipping_fee,
        "totalPrice": round(total, 2),
    }
    payload.update(_identity_fields(guest))
    if notes:
        payload["notes"] = notes
    return payload


def extract_order_id(response: Any, *containers: str) -> str | None:
    """Find the created order id in the response shapes the API returns.

    Looks at ``_id`` / ``id`` on the response itself and on each named
    container (``order``, ``data``, ``fishOrder``).
    """
    if not isinstance(response, Mapping):
        return None
    for key in ("_id", "id"):
        if response.get(key):
            return str(response[key])
    for container in containers:
        nested = response.get(container)
        if isinstance(nested, Mapping):
            for key in ("_id", "id"):
                if nested.get(key):
                    return str(nested[key])
    return None

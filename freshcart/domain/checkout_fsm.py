"""Checkout step transition rules and the per-shopper checkout session."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Mapping, Protocol

from freshcart.core.exceptions import (
    CheckoutTransitionError,
    EmptyCartError,
    PlacementInProgress,
    QuoteUnavailableError,
    ZoneNotSelectedError,
)
from freshcart.domain.entities.address import ShippingAddress, parse_address
from freshcart.domain.value_objects import CheckoutStep, ShippingZone

logger = logging.getLogger(__name__)


ALLOWED_TRANSITIONS: Mapping[CheckoutStep, frozenset[CheckoutStep]] = {
    CheckoutStep.CART: frozenset({CheckoutStep.ADDRESS}),
    CheckoutStep.ADDRESS: frozenset({CheckoutStep.CART, CheckoutStep.PLACING}),
    CheckoutStep.PLACING: frozenset({CheckoutStep.PLACED, CheckoutStep.ADDRESS}),
    CheckoutStep.PLACED: frozenset(),
}

TERMINAL_STEPS = frozenset({CheckoutStep.PLACED})


class QuoteState(Protocol):
    selected_zone: ShippingZone | None
    loading: bool

    @property
    def is_ready(self) -> bool: ...


@dataclass(frozen=True, slots=True)
class TransitionValidationResult:
    allowed: bool
    reason: str | None = None
    code: str | None = None


def validate_checkout_transition(
    *,
    current: CheckoutStep,
    target: CheckoutStep,
    cart_empty: bool = False,
) -> TransitionValidationResult:
    """Validate the transition matrix plus the non-empty-cart guard."""
    if current == target:
        return TransitionValidationResult(True)

    if current in TERMINAL_STEPS:
        return TransitionValidationResult(False, f"Checkout already finished ({current.value}).")

    if target not in ALLOWED_TRANSITIONS.get(current, frozenset()):
        return TransitionValidationResult(
            False,
            f"Cannot move from '{current.value}' to '{target.value}'.",
        )

    # placing -> address is the failure exit and must work with any cart
    needs_items = target == CheckoutStep.PLACING or current == CheckoutStep.CART
    if needs_items and cart_empty:
        return TransitionValidationResult(False, "Your cart is empty.", "empty_cart")

    return TransitionValidationResult(True)


class CheckoutSession:
    """Tracks where one shopper is in checkout: cart → address → placing → placed.

    ``placing`` is ephemeral: it only exists while the placement latch is
    held and always ends in ``placed`` or back in ``address``.
    """

    def __init__(self) -> None:
        self.step = CheckoutStep.CART
        self.error: str | None = None
        self.placed_order_id: str | None = None
        self._placing = False

    @property
    def is_placing(self) -> bool:
        return self._placing

    def _transition(self, target: CheckoutStep, *, cart_empty: bool = False) -> None:
        result = validate_checkout_transition(current=self.step, target=target, cart_empty=cart_empty)
        if not result.allowed:
            if result.code == "empty_cart":
                raise EmptyCartError()
            raise CheckoutTransitionError(result.reason or "Transition not allowed")
        if self.step != target:
            logger.debug("Checkout step %s -> %s", self.step.value, target.value)
        self.step = target

    def proceed_to_address(self, *, cart_empty: bool) -> None:
        self._transition(CheckoutStep.ADDRESS, cart_empty=cart_empty)
        self.error = None

    def back_to_cart(self) -> None:
        """Return to the cart view; the cart itself is left untouched."""
        self._transition(CheckoutStep.CART)

    def sync_with_cart(self, *, cart_empty: bool) -> None:
        """Fall back to the cart view when the cart is emptied during checkout."""
        if cart_empty and self.step == CheckoutStep.ADDRESS:
            self.back_to_cart()

    def begin_placement(
        self,
        address: ShippingAddress | Mapping[str, Any] | None,
        quote: QuoteState,
        *,
        cart_empty: bool,
    ) -> ShippingAddress:
        """Check every placement precondition, then enter ``placing``.

        Raises:
            EmptyCartError, AddressValidationError, ZoneNotSelectedError,
            QuoteUnavailableError, CheckoutTransitionError
        """
        if cart_empty:
            raise EmptyCartError()
        if self.step != CheckoutStep.ADDRESS:
            raise CheckoutTransitionError(
                f"Cannot place an order from the '{self.step.value}' step."
            )
        validated = parse_address(address)
        if quote.selected_zone is None:
            raise ZoneNotSelectedError()
        if quote.loading or not quote.is_ready:
            raise QuoteUnavailableError("Shipping fee is not available yet.")

        self._transition(CheckoutStep.PLACING, cart_empty=cart_empty)
        self.error = None
        return validated

    def mark_placed(self, order_id: str | None) -> None:
        self._transition(CheckoutStep.PLACED)
        self.placed_order_id = order_id

    def mark_failed(self, message: str) -> None:
        """Recoverable failure: back to address selection, error kept for display."""
        if self.step == CheckoutStep.PLACING:
            self._transition(CheckoutStep.ADDRESS)
        self.error = message

    def settle_partial(self, order_id: str | None) -> None:
        """Close a checkout whose standard order exists though the fish order failed."""
        if self.step == CheckoutStep.ADDRESS:
            self._transition(CheckoutStep.PLACING)
        self.mark_placed(order_id)

    def reset(self) -> None:
        """Start a fresh checkout after a finished one."""
        self.step = CheckoutStep.CART
        self.error = None
        self.placed_order_id = None

    @asynccontextmanager
    async def placement_latch(self) -> AsyncIterator[None]:
        """Guard against a second placement while one is outstanding.

        Raises:
            PlacementInProgress: when the latch is already held
        """
        if self._placing:
            raise PlacementInProgress()
        self._placing = True
        try:
            yield
        finally:
            self._placing = False

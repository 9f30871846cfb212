"""
Order placement: split the cart into standard and fish orders and submit them.

The standard order always goes first. Fish items are never ordered against
a failed standard order, and a fish failure after a placed standard order is
reported as partial success with the standard order id as support reference.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping, Protocol

from freshcart.core.constants import (
    DEFAULT_FISH_CATEGORY,
    FEE_SPLIT_PER_LINE,
    MSG_GENERIC_ORDER_ERROR,
    MSG_PLACEMENT_INTERRUPTED,
)
from freshcart.core.exceptions import (
    CartPersistenceError,
    CheckoutTransitionError,
    FreshCartException,
    ValidationException,
)
from freshcart.core.idempotency import build_idempotency_key
from freshcart.core.order_math import calc_total_price, split_shipping_fee
from freshcart.domain.checkout_fsm import CheckoutSession
from freshcart.domain.entities.address import GuestInfo, ShippingAddress
from freshcart.domain.fulfillment import partition
from freshcart.domain.order import (
    PHASE_TRANSITIONS,
    OrchestratorPhase,
    PlacementResult,
    PlacementStatus,
    build_fish_order,
    build_standard_order,
)
from freshcart.services.cart_service import CartStore
from freshcart.services.shipping_quoter import ShippingQuoter

logger = logging.getLogger(__name__)


class OrderApi(Protocol):
    async def place_order(
        self, payload: Mapping[str, Any], idempotency_key: str | None = None
    ) -> tuple[str, Any]: ...

    async def create_fish_order(
        self, payload: Mapping[str, Any], idempotency_key: str | None = None
    ) -> tuple[str, Any]: ...


def describe_error(exc: BaseException) -> str:
    """Readable message for any placement failure."""
    if isinstance(exc, FreshCartException) and exc.message:
        return exc.message
    return MSG_GENERIC_ORDER_ERROR


class OrderOrchestrator:
    """Turns the cart into zero, one or two backend orders with one outcome."""

    def __init__(
        self,
        api: OrderApi,
        cart: CartStore,
        quoter: ShippingQuoter,
        session: CheckoutSession | None = None,
        *,
        fish_category: str = DEFAULT_FISH_CATEGORY,
        fee_split: str = FEE_SPLIT_PER_LINE,
    ) -> None:
        self.api = api
        self.cart = cart
        self.quoter = quoter
        self.session = session or CheckoutSession()
        self.fish_category = fish_category
        self.fee_split = fee_split
        self.phase = OrchestratorPhase.IDLE
        self.last_result: PlacementResult | None = None
        self.pending_partial: PlacementResult | None = None
        self._unsubscribe = cart.subscribe(self._on_cart_changed)

    def _on_cart_changed(self, cart: CartStore) -> None:
        self.session.sync_with_cart(cart_empty=cart.is_empty)

    def _set_phase(self, target: OrchestratorPhase) -> None:
        if target not in PHASE_TRANSITIONS.get(self.phase, frozenset()):
            raise RuntimeError(f"Invalid placement phase change {self.phase.value} -> {target.value}")
        logger.debug("Placement phase %s -> %s", self.phase.value, target.value)
        self.phase = target

    def _start_attempt(self) -> None:
        if self.phase != OrchestratorPhase.IDLE:
            self._set_phase(OrchestratorPhase.IDLE)

    def grand_total(self) -> float | None:
        """Cart total plus the quoted fee, for display; None while the fee is unknown."""
        if self.cart.is_empty:
            return 0.0
        if not self.quoter.is_ready:
            return None
        return calc_total_price(self.cart.cart_total, self.quoter.fee)

    async def place_order(
        self,
        address: ShippingAddress | Mapping[str, Any] | None,
        guest: GuestInfo | Mapping[str, Any] | None = None,
        notes: str | None = None,
    ) -> PlacementResult:
        """Validate, then submit the standard order followed by the fish order.

        Raises:
            PlacementInProgress: another placement holds the latch
            ValidationException: cart, address, zone or size category is invalid
            QuoteUnavailableError: the shipping fee is missing or outdated
        """
        async with self.session.placement_latch():
            if self.pending_partial is not None:
                raise CheckoutTransitionError(
                    f"Order {self.pending_partial.support_reference} was already placed. "
                    "Please contact support about the remaining items."
                )
            self._start_attempt()

            validated = self.session.begin_placement(
                address, self.quoter, cart_empty=self.cart.is_empty
            )
            try:
                return await self._submit(validated, guest, notes)
            except ValidationException as exc:
                self.session.mark_failed(exc.message)
                raise
            except Exception as exc:
                if self.phase in (OrchestratorPhase.SUCCEEDED, OrchestratorPhase.PARTIAL_SUCCESS):
                    raise
                logger.exception("Unexpected error while placing order")
                return self._finish_failed(
                    PlacementResult(status=PlacementStatus.FAILED), describe_error(exc)
                )

    async def _submit(
        self,
        address: ShippingAddress,
        guest: GuestInfo | Mapping[str, Any] | None,
        notes: str | None,
    ) -> PlacementResult:
        if guest is not None and not isinstance(guest, GuestInfo):
            guest = GuestInfo.model_validate(guest)

        split = partition(self.cart.lines, self.fish_category)
        fee = float(self.quoter.fee or 0)
        regular_fee, fish_fee = split_shipping_fee(
            fee, split.regular_lines, split.fish_lines, mode=self.fee_split
        )

        # both payloads exist before the first call goes out
        regular_payload = (
            build_standard_order(
                split.regular_lines, address, shipping_fee=regular_fee, guest=guest, notes=notes
            )
            if split.regular_lines
            else None
        )
        fish_payload = (
            build_fish_order(
                split.fish_lines, address, shipping_fee=fish_fee, guest=guest, notes=notes
            )
            if split.fish_lines
            else None
        )

        result = PlacementResult(
            status=PlacementStatus.FAILED,
            regular_total=regular_payload["totalPrice"] if regular_payload else 0.0,
            fish_total=fish_payload["totalPrice"] if fish_payload else 0.0,
            shipping_fee=fee,
        )
        result.grand_total = calc_total_price(result.regular_total + result.fish_total, fee)

        if regular_payload is not None:
            self._set_phase(OrchestratorPhase.SUBMITTING_REGULAR)
            result.calls.append("regular")
            try:
                result.regular_order_id, _ = await self.api.place_order(
                    regular_payload,
                    idempotency_key=build_idempotency_key("order", regular_payload),
                )
            except asyncio.CancelledError:
                logger.warning("Standard order submission was cancelled")
                self._finish_failed(result, MSG_PLACEMENT_INTERRUPTED)
                raise
            except Exception as exc:
                message = self._log_failure("standard", exc)
                if fish_payload is not None:
                    message = f"{message} None of your items were ordered."
                return self._finish_failed(result, message)

        if fish_payload is not None:
            self._set_phase(OrchestratorPhase.SUBMITTING_FISH)
            result.calls.append("fish")
            try:
                result.fish_order_id, _ = await self.api.create_fish_order(
                    fish_payload,
                    idempotency_key=build_idempotency_key("fish-order", fish_payload),
                )
            except asyncio.CancelledError:
                logger.warning("Fish order submission was cancelled")
                if result.regular_order_id:
                    self._finish_partial(result, MSG_PLACEMENT_INTERRUPTED)
                else:
                    self._finish_failed(result, MSG_PLACEMENT_INTERRUPTED)
                raise
            except Exception as exc:
                message = self._log_failure("fish", exc)
                if result.regular_order_id:
                    return self._finish_partial(result, message)
                return self._finish_failed(result, message)

        return self._finish_succeeded(result)

    def _log_failure(self, kind: str, exc: Exception) -> str:
        if isinstance(exc, FreshCartException):
            logger.warning("Failed to create %s order: %s", kind, exc.message)
        else:
            logger.exception("Unexpected error while creating %s order", kind)
        return describe_error(exc)

    def _finish_failed(self, result: PlacementResult, message: str) -> PlacementResult:
        self._set_phase(OrchestratorPhase.FAILED)
        result.status = PlacementStatus.FAILED
        result.error_message = message
        self.session.mark_failed(message)
        self.last_result = result
        return result

    def _finish_partial(self, result: PlacementResult, message: str) -> PlacementResult:
        self._set_phase(OrchestratorPhase.PARTIAL_SUCCESS)
        result.status = PlacementStatus.PARTIAL_SUCCESS
        result.error_message = (
            f"Your order {result.regular_order_id} was placed, but the fish order failed: "
            f"{message} Please contact support with reference {result.regular_order_id}."
        )
        logger.warning(
            "Partial success: standard order %s placed, fish order failed", result.regular_order_id
        )
        self.session.mark_failed(result.error_message)
        self.pending_partial = result
        self.last_result = result
        return result

    def _finish_succeeded(self, result: PlacementResult) -> PlacementResult:
        self._set_phase(OrchestratorPhase.SUCCEEDED)
        result.status = PlacementStatus.SUCCEEDED
        logger.info(
            "Order placed: regular=%s fish=%s total=%s",
            result.regular_order_id,
            result.fish_order_id,
            result.grand_total,
        )
        self.session.mark_placed(result.primary_order_id)
        self._clear_cart()
        self.last_result = result
        return result

    def _clear_cart(self) -> None:
        try:
            self.cart.clear()
        except CartPersistenceError as exc:
            logger.warning("Orders placed but the cart could not be cleared: %s", exc.message)

    def accept_partial_success(self) -> PlacementResult:
        """Acknowledge a partial success: clear the cart and finish checkout."""
        result = self.pending_partial
        if result is None:
            raise CheckoutTransitionError("There is no partially placed order to accept.")
        self.session.settle_partial(result.support_reference)
        self._clear_cart()
        self.pending_partial = None
        self._set_phase(OrchestratorPhase.IDLE)
        return result

    def start_new_checkout(self) -> None:
        """Begin another checkout after a placed (or abandoned) one."""
        if self.pending_partial is not None:
            raise CheckoutTransitionError("Accept the partially placed order first.")
        self.session.reset()
        self._start_attempt()
        self.last_result = None

    def close(self) -> None:
        self._unsubscribe()

from __future__ import annotations

from dataclasses import dataclass

import pytest

from freshcart.core.exceptions import (
    AddressValidationError,
    CheckoutTransitionError,
    EmptyCartError,
    PlacementInProgress,
    QuoteUnavailableError,
    ZoneNotSelectedError,
)
from freshcart.domain.checkout_fsm import CheckoutSession, validate_checkout_transition
from freshcart.domain.value_objects import CheckoutStep, ShippingZone


@dataclass
class QuoteStub:
    selected_zone: ShippingZone | None = ShippingZone.INSIDE_DHAKA
    loading: bool = False
    ready: bool = True

    @property
    def is_ready(self) -> bool:
        return self.ready


def _at_address() -> CheckoutSession:
    session = CheckoutSession()
    session.proceed_to_address(cart_empty=False)
    return session


def test_happy_path_transitions_allowed() -> None:
    assert validate_checkout_transition(current=CheckoutStep.CART, target=CheckoutStep.ADDRESS).allowed
    assert validate_checkout_transition(current=CheckoutStep.ADDRESS, target=CheckoutStep.PLACING).allowed
    assert validate_checkout_transition(current=CheckoutStep.PLACING, target=CheckoutStep.PLACED).allowed
    assert validate_checkout_transition(current=CheckoutStep.PLACING, target=CheckoutStep.ADDRESS).allowed


def test_cart_to_placed_is_blocked() -> None:
    result = validate_checkout_transition(current=CheckoutStep.CART, target=CheckoutStep.PLACED)
    assert not result.allowed


def test_placed_is_terminal() -> None:
    result = validate_checkout_transition(current=CheckoutStep.PLACED, target=CheckoutStep.CART)
    assert not result.allowed


def test_address_requires_items() -> None:
    session = CheckoutSession()
    with pytest.raises(EmptyCartError):
        session.proceed_to_address(cart_empty=True)
    assert session.step == CheckoutStep.CART


def test_back_to_cart_is_always_allowed_from_address() -> None:
    session = _at_address()
    session.back_to_cart()
    assert session.step == CheckoutStep.CART


def test_emptied_cart_returns_to_cart_step() -> None:
    session = _at_address()
    session.sync_with_cart(cart_empty=True)
    assert session.step == CheckoutStep.CART


def test_begin_placement_validates_address_first(address) -> None:
    session = _at_address()
    broken = dict(address, phone="12345", postalCode="12")

    with pytest.raises(AddressValidationError) as exc_info:
        session.begin_placement(broken, QuoteStub(), cart_empty=False)

    assert set(exc_info.value.errors) == {"phone", "postalCode"}
    assert session.step == CheckoutStep.ADDRESS


def test_begin_placement_requires_zone_and_fresh_quote(address) -> None:
    session = _at_address()

    with pytest.raises(ZoneNotSelectedError):
        session.begin_placement(address, QuoteStub(selected_zone=None), cart_empty=False)
    with pytest.raises(QuoteUnavailableError):
        session.begin_placement(address, QuoteStub(loading=True), cart_empty=False)
    with pytest.raises(QuoteUnavailableError):
        session.begin_placement(address, QuoteStub(ready=False), cart_empty=False)
    with pytest.raises(EmptyCartError):
        session.begin_placement(address, QuoteStub(), cart_empty=True)
    assert session.step == CheckoutStep.ADDRESS


def test_begin_placement_outside_address_step(address) -> None:
    with pytest.raises(CheckoutTransitionError):
        CheckoutSession().begin_placement(address, QuoteStub(), cart_empty=False)


def test_failure_returns_to_address_with_error(address) -> None:
    session = _at_address()
    validated = session.begin_placement(address, QuoteStub(), cart_empty=False)
    assert validated.postal_code == "1205"
    assert session.step == CheckoutStep.PLACING

    session.mark_failed("Server error")

    assert session.step == CheckoutStep.ADDRESS
    assert session.error == "Server error"


def test_success_is_terminal(address) -> None:
    session = _at_address()
    session.begin_placement(address, QuoteStub(), cart_empty=False)
    session.mark_placed("R1")

    assert session.step == CheckoutStep.PLACED
    assert session.placed_order_id == "R1"
    with pytest.raises(CheckoutTransitionError):
        session.back_to_cart()


@pytest.mark.asyncio
async def test_placement_latch_blocks_second_entry() -> None:
    session = CheckoutSession()

    async with session.placement_latch():
        assert session.is_placing
        with pytest.raises(PlacementInProgress):
            async with session.placement_latch():
                pass

    assert not session.is_placing


@pytest.mark.asyncio
async def test_placement_latch_released_on_exception() -> None:
    session = CheckoutSession()

    with pytest.raises(RuntimeError):
        async with session.placement_latch():
            raise RuntimeError("boom")

    assert not session.is_placing

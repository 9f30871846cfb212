from __future__ import annotations

import pytest

from freshcart.core.order_math import calc_items_total, calc_total_price, split_shipping_fee
from freshcart.domain.cart import CartLine, VariantSnapshot


def _line(product_id: str, price: float, quantity: float, **kwargs) -> CartLine:
    return CartLine(product_id=product_id, name=product_id, price=price, quantity=quantity, **kwargs)


def test_calc_items_total_uses_variant_price_first() -> None:
    lines = [
        _line("a", 50, 2),
        _line("b", 10, 3, variant_id="v1", variant_snapshot=VariantSnapshot(id="v1", price=20)),
    ]
    assert calc_items_total(lines) == 160


def test_calc_total_price_treats_unknown_fee_as_zero() -> None:
    assert calc_total_price(550, 40) == 590
    assert calc_total_price(550, None) == 550


def test_fee_split_per_line_count() -> None:
    regular = [_line("a", 50, 2), _line("b", 10, 1)]
    fish = [_line("f", 300, 1.5, unit="kg", measurement=1)]

    assert split_shipping_fee(90, regular, fish) == (60.0, 30.0)


def test_fee_split_shares_always_add_up() -> None:
    regular = [_line("a", 1, 1), _line("b", 1, 1)]
    fish = [_line("f", 1, 1)]

    regular_share, fish_share = split_shipping_fee(100, regular, fish)
    assert regular_share == 66.67
    assert fish_share == 33.33
    assert regular_share + fish_share == pytest.approx(100)


def test_fee_split_goes_to_the_only_partition() -> None:
    lines = [_line("a", 1, 1)]
    assert split_shipping_fee(40, lines, []) == (40.0, 0.0)
    assert split_shipping_fee(40, [], lines) == (0.0, 40.0)
    assert split_shipping_fee(40, [], []) == (0.0, 0.0)


def test_fee_split_by_weight() -> None:
    regular = [_line("rice", 50, 1, unit="kg", measurement=0.5)]
    fish = [_line("hilsa", 300, 1.5, unit="kg", measurement=1)]

    assert split_shipping_fee(40, regular, fish, mode="weight") == (10.0, 30.0)


def test_fee_split_by_weight_falls_back_to_line_count_without_weight() -> None:
    regular = [_line("soap", 30, 1)]
    fish = [_line("hilsa", 300, 1, unit="pcs")]

    assert split_shipping_fee(40, regular, fish, mode="weight") == (20.0, 20.0)

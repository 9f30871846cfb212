"""Shared helpers for order totals and shipping fee shares."""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Sequence

from freshcart.core.constants import FEE_SPLIT_PER_LINE, FEE_SPLIT_WEIGHT
from freshcart.core.units import calc_line_total, cart_weight_kg

_CENT = Decimal("0.01")


def _money(value: Any) -> Decimal:
    return Decimal(str(value or 0)).quantize(_CENT, rounding=ROUND_HALF_UP)


def calc_items_total(lines: Sequence[Any]) -> float:
    """Σ(effective price × quantity) over cart lines."""
    total = Decimal("0")
    for line in lines:
        total += Decimal(str(calc_line_total(line.effective_price, line.quantity)))
    return float(total)


def calc_quantity(lines: Sequence[Any]) -> float:
    return float(sum(Decimal(str(line.quantity)) for line in lines))


def split_shipping_fee(
    fee: float,
    regular_lines: Sequence[Any],
    fish_lines: Sequence[Any],
    *,
    mode: str = FEE_SPLIT_PER_LINE,
) -> tuple[float, float]:
    """Split a quoted fee into (regular share, fish share).

    ``per_line`` splits by line count. ``weight`` splits by each partition's
    share of the physical weight and falls back to line count when the cart
    weighs nothing. The fish share absorbs rounding so the two shares always
    add up to the quoted fee.
    """
    total_fee = _money(fee)
    if not regular_lines and not fish_lines:
        return 0.0, 0.0
    if not fish_lines:
        return float(total_fee), 0.0
    if not regular_lines:
        return 0.0, float(total_fee)

    ratio: Decimal | None = None
    if mode == FEE_SPLIT_WEIGHT:
        regular_weight = Decimal(str(cart_weight_kg(regular_lines)))
        total_weight = regular_weight + Decimal(str(cart_weight_kg(fish_lines)))
        if total_weight > 0:
            ratio = regular_weight / total_weight
    if ratio is None:
        ratio = Decimal(len(regular_lines)) / Decimal(len(regular_lines) + len(fish_lines))

    regular_share = (total_fee * ratio).quantize(_CENT, rounding=ROUND_HALF_UP)
    return float(regular_share), float(total_fee - regular_share)


def calc_total_price(items_total: float, delivery_fee: float | None) -> float:
    """Items plus shipping; an unknown fee counts as nothing yet."""
    return float(_money(items_total) + _money(delivery_fee))

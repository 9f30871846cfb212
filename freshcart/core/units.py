"""Helpers for unit types, quantity validation, weights and line totals."""
from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable

from freshcart.core.constants import CURRENCY_SYMBOL

UNIT_PCS = "pcs"
UNIT_KG = "kg"
UNIT_G = "g"
UNIT_L = "l"
UNIT_ML = "ml"

UNIT_TYPES = {UNIT_PCS, UNIT_KG, UNIT_G, UNIT_L, UNIT_ML}

UNIT_ALIASES = {
    # Pieces
    "pc": UNIT_PCS,
    "pcs": UNIT_PCS,
    "piece": UNIT_PCS,
    "pieces": UNIT_PCS,
    "unit": UNIT_PCS,
    # Kg
    "kg": UNIT_KG,
    "kgs": UNIT_KG,
    "kilo": UNIT_KG,
    "kilogram": UNIT_KG,
    "kilograms": UNIT_KG,
    # G
    "g": UNIT_G,
    "gm": UNIT_G,
    "gram": UNIT_G,
    "grams": UNIT_G,
    # L
    "l": UNIT_L,
    "ltr": UNIT_L,
    "liter": UNIT_L,
    "litre": UNIT_L,
    # ML
    "ml": UNIT_ML,
    "milliliter": UNIT_ML,
    "millilitre": UNIT_ML,
}

# 1 liter is treated as 1 kg
BULK_UNITS = {UNIT_KG, UNIT_L}
SMALL_UNITS = {UNIT_G, UNIT_ML}

KG_L_STEP = Decimal("0.1")
WHOLE_STEP = Decimal("1")
CENT = Decimal("0.01")


def normalize_unit(value: str | None) -> str:
    if not value:
        return UNIT_PCS
    raw = str(value).strip().lower()
    if raw in UNIT_TYPES:
        return raw
    return UNIT_ALIASES.get(raw, UNIT_PCS)


def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _to_float(value: Any) -> float:
    """Coerce to a finite float, 0.0 for anything unusable."""
    if value is None:
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return number


# =============================================================================
# WEIGHT
# =============================================================================


def line_weight_kg(
    unit: str | None,
    measurement: Any,
    quantity: Any,
    unit_weight_kg: Any = None,
) -> float:
    """Physical weight of one cart line in kilograms.

    Pieces weigh nothing unless an explicit per-piece weight is known.
    Bulk units (kg, l) multiply the per-unit measurement by the count;
    small units (g, ml) do the same and divide by 1000. Unusable inputs
    contribute zero instead of raising.
    """
    unit_type = normalize_unit(unit)
    qty = _to_float(quantity)

    if unit_type == UNIT_PCS:
        if unit_weight_kg is None:
            return 0.0
        return _to_float(unit_weight_kg) * qty

    amount = _to_float(measurement) * qty
    if unit_type in BULK_UNITS:
        return amount
    return amount / 1000


def cart_weight_kg(lines: Iterable[Any]) -> float:
    """Sum of line weights at full precision (the value sent on the wire)."""
    total = 0.0
    for line in lines:
        total += line_weight_kg(
            getattr(line, "unit", None),
            getattr(line, "measurement", None),
            getattr(line, "quantity", 0),
            getattr(line, "unit_weight_kg", None),
        )
    return total


def display_weight_kg(weight: float) -> float:
    return float(_to_decimal(weight).quantize(CENT, rounding=ROUND_HALF_UP))


# =============================================================================
# QUANTITIES
# =============================================================================


def quantity_step(unit: str | None, *, is_fish: bool = False, increment: Any = None) -> Decimal:
    """Smallest allowed quantity change for a line.

    An explicit measurement increment wins. Fish lines are bought by
    weight, so their quantity moves in 0.1 kg steps; everything else is a
    whole count of packages.
    """
    if increment is not None:
        try:
            step = _to_decimal(increment)
        except (InvalidOperation, ValueError):
            step = None
        if step is not None and step > 0:
            return step
    if is_fish and normalize_unit(unit) in BULK_UNITS:
        return KG_L_STEP
    return WHOLE_STEP


def validate_quantity(
    value: Any,
    unit: str | None,
    *,
    min_quantity: Any = None,
    increment: Any = None,
    is_fish: bool = False,
) -> Decimal:
    """Validate a requested quantity; raise ValueError('invalid'|'min'|'step')."""
    try:
        qty = _to_decimal(value)
    except (InvalidOperation, ValueError):
        raise ValueError("invalid")
    if not qty.is_finite() or qty <= 0:
        raise ValueError("invalid")

    step = quantity_step(unit, is_fish=is_fish, increment=increment)
    minimum = step
    if min_quantity is not None:
        try:
            minimum = max(_to_decimal(min_quantity), Decimal("0"))
        except (InvalidOperation, ValueError):
            minimum = step

    if qty < minimum:
        raise ValueError("min")

    scaled = (qty / step).quantize(WHOLE_STEP, rounding=ROUND_HALF_UP)
    if scaled * step != qty:
        raise ValueError("step")
    return qty


def format_quantity(value: Any, unit: str | None) -> str:
    qty = _to_decimal(value)
    if normalize_unit(unit) == UNIT_PCS:
        qty = qty.quantize(WHOLE_STEP, rounding=ROUND_HALF_UP)
    else:
        qty = qty.quantize(CENT, rounding=ROUND_HALF_UP)

    text = format(qty, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def format_measurement(measurement: Any, unit: str | None) -> str:
    """Display a per-unit measurement as-is, e.g. ``0.5 kg``."""
    return f"{format_quantity(_to_float(measurement), unit)} {normalize_unit(unit)}"


def measurement_options(unit: str | None) -> list[float]:
    """Common quantities offered in quantity pickers."""
    unit_type = normalize_unit(unit)
    if unit_type in BULK_UNITS:
        return [0.25, 0.5, 0.75, 1, 1.5, 2, 2.5, 3, 4, 5]
    if unit_type in SMALL_UNITS:
        return [100, 250, 500, 750, 1000, 1500, 2000]
    return [1, 2, 3, 4, 5, 6, 7, 8, 9, 10]


# =============================================================================
# PRICES
# =============================================================================


def price_per_unit(price: Any, measurement: Any) -> float:
    amount = _to_float(measurement)
    if amount <= 0:
        return 0.0
    return _to_float(price) / amount


def format_price(amount: Any) -> str:
    value = _to_decimal(_to_float(amount)).quantize(CENT, rounding=ROUND_HALF_UP)
    return f"{CURRENCY_SYMBOL}{value:,.2f}"


def format_price_per_unit(price: Any, measurement: Any, unit: str | None) -> str:
    return f"{format_price(price_per_unit(price, measurement))}/{normalize_unit(unit)}"


def calc_line_total(price: Any, quantity: Any) -> float:
    total = _to_decimal(_to_float(price)) * _to_decimal(_to_float(quantity))
    return float(total.quantize(CENT, rounding=ROUND_HALF_UP))

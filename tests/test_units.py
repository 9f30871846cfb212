from __future__ import annotations

from decimal import Decimal
from types import SimpleNamespace

import pytest

from freshcart.core.units import (
    cart_weight_kg,
    display_weight_kg,
    format_price,
    format_price_per_unit,
    format_quantity,
    line_weight_kg,
    normalize_unit,
    quantity_step,
    validate_quantity,
)


def _line(unit, measurement, quantity, unit_weight_kg=None):
    return SimpleNamespace(
        unit=unit, measurement=measurement, quantity=quantity, unit_weight_kg=unit_weight_kg
    )


def test_normalize_unit_accepts_aliases_and_defaults_to_pieces() -> None:
    assert normalize_unit("Kilogram") == "kg"
    assert normalize_unit("litre") == "l"
    assert normalize_unit("pieces") == "pcs"
    assert normalize_unit("bunch") == "pcs"
    assert normalize_unit(None) == "pcs"


def test_small_units_weigh_measurement_times_quantity_over_thousand() -> None:
    lines = [_line("g", 500, 2), _line("ml", 250, 3), _line("g", 200, 1)]
    assert cart_weight_kg(lines) == pytest.approx((500 * 2 + 250 * 3 + 200 * 1) / 1000)


def test_bulk_units_treat_litre_as_kilogram() -> None:
    assert line_weight_kg("kg", 2, 3) == 6
    assert line_weight_kg("l", 1.5, 2) == 3


def test_pieces_weigh_nothing_without_override() -> None:
    assert line_weight_kg("pcs", 1, 5) == 0
    assert line_weight_kg("pcs", 1, 4, unit_weight_kg=0.25) == 1


def test_missing_or_bad_measurement_contributes_zero() -> None:
    assert line_weight_kg("kg", None, 3) == 0
    assert line_weight_kg("g", "n/a", 3) == 0
    assert line_weight_kg("ml", float("nan"), 2) == 0


def test_weight_keeps_full_precision_until_display() -> None:
    weight = cart_weight_kg([_line("g", 333, 1), _line("g", 333, 1)])
    assert weight == pytest.approx(0.666)
    assert display_weight_kg(weight) == 0.67


def test_quantity_step_prefers_explicit_increment() -> None:
    assert quantity_step("kg", is_fish=True) == Decimal("0.1")
    assert quantity_step("kg") == Decimal("1")
    assert quantity_step("g", increment=250) == Decimal("250")


def test_validate_quantity_reports_min_and_step() -> None:
    assert validate_quantity(1.5, "kg", is_fish=True) == Decimal("1.5")

    with pytest.raises(ValueError, match="step"):
        validate_quantity(1.55, "kg", is_fish=True)
    with pytest.raises(ValueError, match="min"):
        validate_quantity(1, "pcs", min_quantity=2)
    with pytest.raises(ValueError, match="invalid"):
        validate_quantity("abc", "pcs")
    with pytest.raises(ValueError, match="invalid"):
        validate_quantity(0, "pcs")


def test_price_formatting() -> None:
    assert format_price(1234.5) == "৳1,234.50"
    assert format_price_per_unit(25, 2, "kg") == "৳12.50/kg"
    assert format_quantity(1.50, "kg") == "1.5"
    assert format_quantity(2, "pcs") == "2"


def test_measurement_display_and_picker_options() -> None:
    from freshcart.core.units import format_measurement, measurement_options

    assert format_measurement(0.5, "kilogram") == "0.5 kg"
    assert format_measurement(250, "g") == "250 g"
    assert measurement_options("l")[:3] == [0.25, 0.5, 0.75]
    assert measurement_options("ml")[0] == 100
    assert measurement_options("pcs")[-1] == 10

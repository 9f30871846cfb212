from __future__ import annotations

import pytest

from freshcart.core.exceptions import SizeCategoryUnresolved
from freshcart.domain.cart import CartLine, SizeCategoryRef, VariantSnapshot
from freshcart.domain.fulfillment import classify, partition, price_per_kg, resolve_size_category_id
from freshcart.domain.value_objects import Fulfillment


def _line(product_id: str = "p1", **kwargs) -> CartLine:
    kwargs.setdefault("name", product_id)
    kwargs.setdefault("price", 100)
    kwargs.setdefault("quantity", 1)
    return CartLine(product_id=product_id, **kwargs)


def test_tag_wins_over_structure() -> None:
    line = _line(is_fish_product=True, fulfillment="standard")
    assert classify(line) is Fulfillment.STANDARD


def test_explicit_flag_marks_fish() -> None:
    assert classify(_line(is_fish_product=True, unit="pcs")) is Fulfillment.FISH


def test_size_categories_mark_fish() -> None:
    line = _line(size_categories=[SizeCategoryRef(id="sc-1")], category_name="Seafood")
    assert classify(line) is Fulfillment.FISH


def test_fish_category_needs_kg_unit() -> None:
    assert classify(_line(category_name="Fish", unit="kg")) is Fulfillment.FISH
    assert classify(_line(category_name=" fish ", unit="kg")) is Fulfillment.FISH
    assert classify(_line(category_name="Fish", unit="pcs")) is Fulfillment.STANDARD


def test_fish_category_with_non_kg_variant_is_standard() -> None:
    line = _line(
        category_name="Fish",
        unit="kg",
        variant_id="v-pack",
        variant_snapshot=VariantSnapshot(id="v-pack", price=250, unit="pcs"),
    )
    assert classify(line) is Fulfillment.STANDARD


def test_configured_fish_category_name() -> None:
    line = _line(category_name="Machh", unit="kg")
    assert classify(line) is Fulfillment.STANDARD
    assert classify(line, fish_category="Machh") is Fulfillment.FISH


def test_partition_is_disjoint_and_complete() -> None:
    lines = [
        _line("rice"),
        _line("hilsa", is_fish_product=True, unit="kg"),
        _line("oil", unit="l", measurement=1),
        _line("rui", category_name="Fish", unit="kg"),
    ]

    result = partition(lines)

    assert [line.product_id for line in result.regular_lines] == ["rice", "oil"]
    assert [line.product_id for line in result.fish_lines] == ["hilsa", "rui"]
    regular_ids = {id(line) for line in result.regular_lines}
    fish_ids = {id(line) for line in result.fish_lines}
    assert not regular_ids & fish_ids
    assert regular_ids | fish_ids == {id(line) for line in lines}
    assert result.is_mixed


def test_partition_of_empty_cart() -> None:
    assert partition([]).is_empty


def test_size_category_resolution_order() -> None:
    sizes = [SizeCategoryRef(id="sc-a"), SizeCategoryRef(id="sc-b", is_default=True)]

    assert resolve_size_category_id(_line(variant_id="sc-x", size_categories=sizes)) == "sc-x"
    assert (
        resolve_size_category_id(_line(variant_snapshot=VariantSnapshot(id="snap"), size_categories=sizes))
        == "snap"
    )
    assert resolve_size_category_id(_line(size_categories=sizes)) == "sc-b"
    assert resolve_size_category_id(_line(size_categories=[SizeCategoryRef(id="sc-a")])) == "sc-a"


def test_unresolvable_size_category_is_a_validation_error() -> None:
    with pytest.raises(SizeCategoryUnresolved):
        resolve_size_category_id(_line("rui", category_name="Fish", unit="kg"))


def test_price_per_kg_follows_chosen_size_category() -> None:
    sizes = [SizeCategoryRef(id="sc-a", price_per_kg=300), SizeCategoryRef(id="sc-b", price_per_kg=450)]
    assert price_per_kg(_line(price=300, variant_id="sc-b", size_categories=sizes)) == 450
    assert price_per_kg(_line(price=320, size_categories=sizes)) == 300
    assert price_per_kg(_line(price=320)) == 320


def test_price_per_kg_matches_resolved_default_category() -> None:
    sizes = [
        SizeCategoryRef(id="sc-small", price_per_kg=250),
        SizeCategoryRef(id="sc-big", price_per_kg=320, is_default=True),
    ]
    line = _line(price=250, size_categories=sizes, unit="kg")

    assert resolve_size_category_id(line) == "sc-big"
    assert price_per_kg(line) == 320

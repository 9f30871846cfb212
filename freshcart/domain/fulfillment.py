"""Standard vs. fish classification of cart lines (single source of truth)."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from freshcart.core.constants import DEFAULT_FISH_CATEGORY
from freshcart.core.exceptions import SizeCategoryUnresolved
from freshcart.core.units import UNIT_KG, normalize_unit
from freshcart.domain.cart import CartLine
from freshcart.domain.value_objects import Fulfillment


@dataclass(frozen=True, slots=True)
class Partition:
    """Disjoint split of a cart; together the lists hold every line once."""

    regular_lines: list[CartLine] = field(default_factory=list)
    fish_lines: list[CartLine] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.regular_lines and not self.fish_lines

    @property
    def is_mixed(self) -> bool:
        return bool(self.regular_lines) and bool(self.fish_lines)


def _same_category(name: str | None, fish_category: str) -> bool:
    if not name:
        return False
    return name.strip().casefold() == fish_category.strip().casefold()


def classify(line: CartLine, fish_category: str = DEFAULT_FISH_CATEGORY) -> Fulfillment:
    """Decide how a line is fulfilled. First match wins, in this order:

    0. the tag assigned when the line was added;
    1. the explicit fish-product flag;
    2. a non-empty size-category list;
    3. fish category name + kg unit + (no variant snapshot or a kg one);
    4. standard.

    Rules 1-3 only matter for lines written before the tag existed.
    """
    if line.fulfillment:
        try:
            return Fulfillment(line.fulfillment)
        except ValueError:
            pass

    if line.is_fish_product:
        return Fulfillment.FISH

    if line.size_categories:
        return Fulfillment.FISH

    if _same_category(line.category_name, fish_category) and normalize_unit(line.unit) == UNIT_KG:
        snapshot = line.variant_snapshot
        if snapshot is None or normalize_unit(snapshot.unit) == UNIT_KG:
            return Fulfillment.FISH

    return Fulfillment.STANDARD


def is_fish(line: CartLine, fish_category: str = DEFAULT_FISH_CATEGORY) -> bool:
    return classify(line, fish_category) is Fulfillment.FISH


def partition(lines: Iterable[CartLine], fish_category: str = DEFAULT_FISH_CATEGORY) -> Partition:
    """Split lines into regular and fish lists, keeping cart order."""
    regular: list[CartLine] = []
    fish: list[CartLine] = []
    for line in lines:
        if is_fish(line, fish_category):
            fish.append(line)
        else:
            regular.append(line)
    return Partition(regular_lines=regular, fish_lines=fish)


def resolve_size_category_id(line: CartLine) -> str:
    """Size category for a fish line.

    Tries the line's variant id, then its variant snapshot id, then the
    default entry of its size-category list, then the first entry.

    Raises:
        SizeCategoryUnresolved: when none of these is available
    """
    if line.variant_id:
        return line.variant_id
    if line.variant_snapshot is not None and line.variant_snapshot.id:
        return line.variant_snapshot.id
    candidates = [c for c in line.size_categories if c.id]
    default = next((c for c in candidates if c.is_default), None)
    if default is not None:
        return default.id
    if candidates:
        return candidates[0].id
    raise SizeCategoryUnresolved(line.key, line.name)


def price_per_kg(line: CartLine) -> float:
    """Price per kg of a fish line: the tier of its resolved size category, else the line price."""
    try:
        size_id = resolve_size_category_id(line)
    except SizeCategoryUnresolved:
        return line.effective_price
    chosen = next((c for c in line.size_categories if c.id == size_id), None)
    if chosen is not None and chosen.price_per_kg is not None:
        return float(chosen.price_per_kg)
    return line.effective_price

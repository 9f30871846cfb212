"""Cart line types and their persisted representation."""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

from freshcart.core.constants import DEFAULT_LINE_VARIANT, DEFAULT_STOCK_CEILING
from freshcart.core.units import normalize_unit


def _opt_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _opt_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def line_key(product_id: str, variant_id: str | None = None) -> str:
    """Identity of a cart line: (product, variant or "default")."""
    return f"{product_id}:{variant_id or DEFAULT_LINE_VARIANT}"


@dataclass
class VariantSnapshot:
    """Variant data captured when the line was added."""

    id: str
    label: str = ""
    price: float | None = None
    unit: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "label": self.label, "price": self.price, "unit": self.unit}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> VariantSnapshot:
        return cls(
            id=str(data.get("id") or data.get("_id") or ""),
            label=str(data.get("label", "")),
            price=_opt_float(data.get("price")),
            unit=normalize_unit(data["unit"]) if data.get("unit") else None,
        )


@dataclass
class SizeCategoryRef:
    """Size category entry carried on a fish line."""

    id: str
    label: str = ""
    price_per_kg: float | None = None
    is_default: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "price_per_kg": self.price_per_kg,
            "is_default": self.is_default,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SizeCategoryRef:
        return cls(
            id=str(data.get("id") or data.get("_id") or ""),
            label=str(data.get("label", "")),
            price_per_kg=_opt_float(data.get("price_per_kg", data.get("pricePerKg"))),
            is_default=bool(data.get("is_default", data.get("isDefault", False))),
        )


@dataclass
class CartLine:
    """Single (product, variant) entry in the cart."""

    product_id: str
    name: str
    price: float
    quantity: float
    unit: str = "pcs"
    measurement: float | None = None
    stock: float = DEFAULT_STOCK_CEILING
    variant_id: str | None = None
    unit_weight_kg: float | None = None
    category_name: str | None = None
    is_fish_product: bool = False
    size_categories: list[SizeCategoryRef] = field(default_factory=list)
    variant_snapshot: VariantSnapshot | None = None
    min_order_quantity: float | None = None
    measurement_increment: float | None = None
    fulfillment: str | None = None
    image: str | None = None
    added_at: float = field(default_factory=time.time)

    @property
    def key(self) -> str:
        return line_key(self.product_id, self.variant_id)

    @property
    def effective_price(self) -> float:
        """Variant price takes precedence over the product price."""
        if self.variant_snapshot is not None and self.variant_snapshot.price is not None:
            return float(self.variant_snapshot.price)
        return float(self.price)

    def to_dict(self) -> dict[str, Any]:
        return {
            "product_id": self.product_id,
            "variant_id": self.variant_id,
            "name": self.name,
            "price": float(self.price),
            "quantity": float(self.quantity),
            "unit": self.unit,
            "measurement": self.measurement,
            "stock": float(self.stock),
            "unit_weight_kg": self.unit_weight_kg,
            "category_name": self.category_name,
            "is_fish_product": bool(self.is_fish_product),
            "size_categories": [c.to_dict() for c in self.size_categories],
            "variant_snapshot": self.variant_snapshot.to_dict() if self.variant_snapshot else None,
            "min_order_quantity": self.min_order_quantity,
            "measurement_increment": self.measurement_increment,
            "fulfillment": self.fulfillment,
            "image": self.image,
            "added_at": float(self.added_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CartLine:
        """Load a persisted line, including entries written by older carts.

        Older entries were whole product documents plus a quantity: they use
        ``_id``/``id``, camelCase keys and a populated ``category`` object,
        and never carry the fulfillment tag.
        """
        category = data.get("category_name", data.get("category"))
        if isinstance(category, dict):
            category = category.get("name")

        snapshot = data.get("variant_snapshot", data.get("variantSnapshot"))
        sizes = data.get("size_categories", data.get("sizeCategories")) or []

        return cls(
            product_id=str(data.get("product_id") or data.get("_id") or data.get("id") or ""),
            variant_id=_opt_str(data.get("variant_id", data.get("variantId"))),
            name=str(data.get("name", "")),
            price=float(data.get("price") or 0),
            quantity=float(data.get("quantity") or 0),
            unit=normalize_unit(data.get("unit")),
            measurement=_opt_float(data.get("measurement")),
            stock=float(data.get("stock", DEFAULT_STOCK_CEILING) or 0),
            unit_weight_kg=_opt_float(data.get("unit_weight_kg", data.get("unitWeightKg"))),
            category_name=_opt_str(category),
            is_fish_product=bool(data.get("is_fish_product", data.get("isFishProduct", False))),
            size_categories=[SizeCategoryRef.from_dict(c) for c in sizes if isinstance(c, dict)],
            variant_snapshot=VariantSnapshot.from_dict(snapshot) if isinstance(snapshot, dict) else None,
            min_order_quantity=_opt_float(
                data.get("min_order_quantity", data.get("minOrderQuantity"))
            ),
            measurement_increment=_opt_float(
                data.get("measurement_increment", data.get("measurementIncrement"))
            ),
            fulfillment=_opt_str(data.get("fulfillment")),
            image=data.get("image"),
            added_at=float(data.get("added_at", time.time())),
        )

"""Catalogue entities handed to the cart when a shopper adds a product."""
from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from freshcart.core.constants import DEFAULT_STOCK_CEILING
from freshcart.core.units import normalize_unit


class Variant(BaseModel):
    """Priced, stocked sub-SKU of a product (e.g. a pack size)."""

    id: str = Field(..., alias="_id", description="Variant ID")
    label: str = Field("", description="Display label, e.g. '500 g'")
    price: float = Field(..., ge=0, description="Variant price")
    stock: float = Field(DEFAULT_STOCK_CEILING, ge=0, description="Available quantity")
    unit: Optional[str] = Field(None, description="Unit override")
    measurement: Optional[float] = Field(None, ge=0, description="Measurement override")
    unit_weight_kg: Optional[float] = Field(None, ge=0, alias="unitWeightKg")

    class Config:
        """Pydantic config."""

        populate_by_name = True

    @field_validator("unit")
    @classmethod
    def normalize_unit_value(cls, v: str | None) -> str | None:
        return normalize_unit(v) if v else None


class SizeCategory(BaseModel):
    """Weight range / price tier of a fish product."""

    id: str = Field(..., alias="_id", description="Size category ID")
    label: str = Field("", description="Display label, e.g. '1-1.5 kg'")
    price_per_kg: float = Field(..., ge=0, alias="pricePerKg")
    stock_kg: Optional[float] = Field(None, ge=0, alias="stock")
    is_default: bool = Field(False, alias="isDefault")

    class Config:
        """Pydantic config."""

        populate_by_name = True


class Product(BaseModel):
    """Product entity with type-safe fields."""

    id: str = Field(..., alias="_id", description="Product ID")
    name: str = Field(..., min_length=1, description="Product name")
    price: float = Field(..., ge=0, description="Unit price (price per kg for fish)")
    unit: str = Field("pcs", description="Unit of measurement")
    measurement: float = Field(1, ge=0, description="Physical quantity per unit")
    stock: float = Field(DEFAULT_STOCK_CEILING, ge=0, description="Available quantity")
    category: Optional[str] = Field(None, description="Category name")
    image: Optional[str] = Field(None, description="Image URL")
    is_fish_product: bool = Field(False, alias="isFishProduct")
    size_categories: list[SizeCategory] = Field(default_factory=list, alias="sizeCategories")
    variants: list[Variant] = Field(default_factory=list)
    min_order_quantity: Optional[float] = Field(None, gt=0, alias="minOrderQuantity")
    measurement_increment: Optional[float] = Field(None, gt=0, alias="measurementIncrement")
    unit_weight_kg: Optional[float] = Field(None, ge=0, alias="unitWeightKg")

    class Config:
        """Pydantic config."""

        populate_by_name = True

    @field_validator("unit", mode="before")
    @classmethod
    def normalize_unit_value(cls, v: Any) -> str:
        return normalize_unit(v)

    @field_validator("category", mode="before")
    @classmethod
    def category_name(cls, v: Any) -> str | None:
        """Accept a populated category object as well as a plain name."""
        if isinstance(v, dict):
            return v.get("name")
        return v

    def get_variant(self, variant_id: str) -> Variant | None:
        return next((v for v in self.variants if v.id == variant_id), None)

    def get_size_category(self, size_category_id: str) -> SizeCategory | None:
        return next((c for c in self.size_categories if c.id == size_category_id), None)

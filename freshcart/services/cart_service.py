"""Per-session cart: keyed lines, quantity rules, derived totals and persistence."""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Callable, Mapping

from freshcart.core.constants import DEFAULT_FISH_CATEGORY
from freshcart.core.exceptions import (
    CartLineNotFound,
    QuantityValidationError,
    StockLimitExceeded,
    ValidationException,
)
from freshcart.core.optimistic import OptimisticUpdate
from freshcart.core.order_math import calc_items_total, calc_quantity
from freshcart.core.units import (
    UNIT_KG,
    cart_weight_kg,
    format_quantity,
    quantity_step,
    validate_quantity,
)
from freshcart.domain.cart import CartLine, SizeCategoryRef, VariantSnapshot, line_key
from freshcart.domain.entities.product import Product
from freshcart.domain.fulfillment import classify
from freshcart.domain.value_objects import Fulfillment
from freshcart.integrations.redis_cart import RedisCartStorage

logger = logging.getLogger(__name__)

CartListener = Callable[["CartStore"], None]

_QUANTITY_MESSAGES = {
    "invalid": "Please enter a valid quantity.",
    "min": "Minimum order quantity is {minimum}.",
    "step": "Quantity must be a multiple of {step}.",
}


def _add(a: float, b: float) -> float:
    return float(Decimal(str(a)) + Decimal(str(b)))


class CartStore:
    """Cart of one session.

    Every mutation is applied locally, saved, and rolled back if the save
    fails. Listeners registered with ``subscribe`` run after each committed
    change; ``revision`` counts those changes.
    """

    def __init__(
        self,
        session_key: str,
        storage: RedisCartStorage | None = None,
        *,
        fish_category: str = DEFAULT_FISH_CATEGORY,
    ) -> None:
        self.session_key = session_key
        self.fish_category = fish_category
        self._storage = storage
        self._lines: dict[str, CartLine] = {}
        self._listeners: list[CartListener] = []
        self._revision = 0

    # ------------------------------------------------------------------
    # derived state
    # ------------------------------------------------------------------

    @property
    def lines(self) -> list[CartLine]:
        return list(self._lines.values())

    @property
    def revision(self) -> int:
        return self._revision

    @property
    def is_empty(self) -> bool:
        return not self._lines

    @property
    def cart_total(self) -> float:
        return calc_items_total(self.lines)

    @property
    def cart_count(self) -> float:
        return calc_quantity(self.lines)

    @property
    def total_weight_kg(self) -> float:
        return cart_weight_kg(self.lines)

    def get_line(self, key: str) -> CartLine:
        try:
            return self._lines[key]
        except KeyError:
            raise CartLineNotFound(key)

    def __contains__(self, key: object) -> bool:
        return key in self._lines

    def __len__(self) -> int:
        return len(self._lines)

    # ------------------------------------------------------------------
    # listeners
    # ------------------------------------------------------------------

    def subscribe(self, callback: CartListener) -> Callable[[], None]:
        """Register a change listener; returns a function that removes it."""
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _notify(self) -> None:
        for callback in list(self._listeners):
            try:
                callback(self)
            except Exception:
                logger.exception("Cart listener %r failed", callback)

    # ------------------------------------------------------------------
    # persistence
    # ------------------------------------------------------------------

    def _capture(self) -> dict[str, CartLine]:
        return dict(self._lines)

    def _restore(self, snapshot: dict[str, CartLine]) -> None:
        self._lines = snapshot

    def _save(self) -> None:
        if self._storage is not None:
            self._storage.save_lines(self.session_key, self.lines)

    def _commit(self, mutate: Callable[[], None], label: str) -> None:
        with OptimisticUpdate(self._capture, self._restore, label=f"cart {label}"):
            mutate()
            self._save()
        self._revision += 1
        self._notify()

    def load(self) -> list[CartLine]:
        """Replace local state with the persisted cart."""
        if self._storage is None:
            return self.lines
        loaded = self._storage.load_lines(self.session_key)
        self._lines = {}
        for line in loaded:
            existing = self._lines.get(line.key)
            if existing is not None:
                existing.quantity = _add(existing.quantity, line.quantity)
            else:
                self._lines[line.key] = line
        self._revision += 1
        logger.debug("Loaded %s cart lines for session %s", len(self._lines), self.session_key)
        self._notify()
        return self.lines

    # ------------------------------------------------------------------
    # validation
    # ------------------------------------------------------------------

    def _validate_quantity(self, line: CartLine, quantity: Any) -> float:
        is_fish = classify(line, self.fish_category) is Fulfillment.FISH
        try:
            value = validate_quantity(
                quantity,
                line.unit,
                min_quantity=line.min_order_quantity,
                increment=line.measurement_increment,
                is_fish=is_fish,
            )
        except ValueError as exc:
            reason = str(exc)
            step = quantity_step(line.unit, is_fish=is_fish, increment=line.measurement_increment)
            minimum = line.min_order_quantity if line.min_order_quantity is not None else step
            template = _QUANTITY_MESSAGES.get(reason, _QUANTITY_MESSAGES["invalid"])
            raise QuantityValidationError(
                line.key,
                template.format(
                    minimum=format_quantity(minimum, line.unit),
                    step=format_quantity(step, line.unit),
                ),
            )
        return float(value)

    # ------------------------------------------------------------------
    # mutations
    # ------------------------------------------------------------------

    def _build_line(self, product: Product, variant_id: str | None) -> CartLine:
        line = CartLine(
            product_id=product.id,
            name=product.name,
            price=product.price,
            quantity=0,
            unit=product.unit,
            measurement=product.measurement,
            stock=product.stock,
            unit_weight_kg=product.unit_weight_kg,
            category_name=product.category,
            is_fish_product=product.is_fish_product,
            size_categories=[
                SizeCategoryRef(
                    id=c.id,
                    label=c.label,
                    price_per_kg=c.price_per_kg,
                    is_default=c.is_default,
                )
                for c in product.size_categories
            ],
            min_order_quantity=product.min_order_quantity,
            measurement_increment=product.measurement_increment,
            image=product.image,
        )

        if variant_id:
            size = product.get_size_category(variant_id)
            variant = product.get_variant(variant_id)
            if size is not None:
                line.variant_id = size.id
                line.unit = UNIT_KG
                line.price = size.price_per_kg
                if size.stock_kg is not None:
                    line.stock = size.stock_kg
            elif variant is not None:
                line.variant_id = variant.id
                line.variant_snapshot = VariantSnapshot(
                    id=variant.id,
                    label=variant.label,
                    price=variant.price,
                    unit=variant.unit or product.unit,
                )
                line.stock = variant.stock
                if variant.unit:
                    line.unit = variant.unit
                if variant.measurement is not None:
                    line.measurement = variant.measurement
                if variant.unit_weight_kg is not None:
                    line.unit_weight_kg = variant.unit_weight_kg
            else:
                raise ValidationException(f"{product.name} has no option {variant_id}")
        elif product.size_categories:
            default = next((c for c in product.size_categories if c.is_default), None)
            line.price = (default or product.size_categories[0]).price_per_kg

        line.fulfillment = classify(line, self.fish_category).value
        return line

    def _check_stock(self, line: CartLine, requested: float, *, clamp: bool) -> float:
        if requested <= line.stock:
            return requested
        if clamp and line.stock > 0:
            logger.info(
                "Reduced %s from %s to max available %s", line.key, requested, line.stock
            )
            return float(line.stock)
        raise StockLimitExceeded(line.key, requested, float(line.stock))

    def add_line(
        self,
        product: Product | Mapping[str, Any],
        quantity: Any = 1,
        variant_id: str | None = None,
        *,
        clamp_to_stock: bool = False,
    ) -> CartLine:
        """Add a product (or one of its variants / size categories) to the cart.

        Adding a key that is already in the cart increases its quantity.
        A total above stock raises ``StockLimitExceeded`` unless
        ``clamp_to_stock`` asks for the maximum available instead.
        """
        if not isinstance(product, Product):
            product = Product.model_validate(product)

        key = line_key(product.id, variant_id)
        existing = self._lines.get(key)
        template = existing if existing is not None else self._build_line(product, variant_id)

        added = self._validate_quantity(template, quantity)
        current = existing.quantity if existing is not None else 0.0
        total = self._check_stock(template, _add(current, added), clamp=clamp_to_stock)

        def mutate() -> None:
            if existing is not None:
                existing.quantity = total
            else:
                template.quantity = total
                self._lines[key] = template

        self._commit(mutate, "add")
        logger.debug("Cart %s: %s -> %s", self.session_key, key, total)
        return self._lines[key]

    def update_quantity(self, key: str, quantity: Any) -> CartLine | None:
        """Set a line's quantity; zero or less removes the line."""
        line = self.get_line(key)
        try:
            as_number = float(quantity)
        except (TypeError, ValueError):
            as_number = None
        if as_number is not None and as_number <= 0:
            self.remove_line(key)
            return None

        value = self._validate_quantity(line, quantity)
        value = self._check_stock(line, value, clamp=False)

        def mutate() -> None:
            self._lines[key].quantity = value

        self._commit(mutate, "update")
        return self._lines[key]

    def remove_line(self, key: str) -> None:
        self.get_line(key)

        def mutate() -> None:
            del self._lines[key]

        self._commit(mutate, "remove")

    def clear(self) -> None:
        def mutate() -> None:
            self._lines = {}

        self._commit(mutate, "clear")

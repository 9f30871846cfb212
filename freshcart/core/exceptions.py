"""Custom exceptions for the checkout core."""
from __future__ import annotations


class FreshCartException(Exception):
    """Base exception for all checkout errors."""

    def __init__(self, message: str, *args: object) -> None:
        super().__init__(message, *args)
        self.message = message


class ValidationException(FreshCartException):
    """Input validation errors. Raised before any network call."""

    pass


class EmptyCartError(ValidationException):
    """Checkout step requires at least one cart line."""

    def __init__(self, message: str = "Your cart is empty.") -> None:
        super().__init__(message)


class QuantityValidationError(ValidationException):
    """Quantity is below the minimum or off the measurement increment."""

    def __init__(self, key: str, message: str) -> None:
        super().__init__(message)
        self.key = key


class StockLimitExceeded(ValidationException):
    """Requested quantity is above the stock ceiling of the line."""

    def __init__(self, key: str, requested: float, available: float) -> None:
        super().__init__(
            f"Only {available:g} available, requested {requested:g}"
        )
        self.key = key
        self.requested = requested
        self.available = available


class SizeCategoryUnresolved(ValidationException):
    """Fish line has no resolvable size category."""

    def __init__(self, key: str, name: str = "") -> None:
        label = name or key
        super().__init__(f"Please choose a size for {label}")
        self.key = key


class AddressValidationError(ValidationException):
    """Shipping address is structurally invalid."""

    def __init__(self, errors: dict[str, str]) -> None:
        first = next(iter(errors.values()), "Please provide a shipping address.")
        super().__init__(first)
        self.errors = errors


class ZoneNotSelectedError(ValidationException):
    """No delivery zone selected."""

    def __init__(self, message: str = "Please select a delivery zone.") -> None:
        super().__init__(message)


class CheckoutTransitionError(ValidationException):
    """Checkout step change is not allowed from the current step."""

    pass


class CartLineNotFound(FreshCartException):
    """Cart line key is not present in the cart."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Cart line {key} not found")
        self.key = key


class CartPersistenceError(FreshCartException):
    """Cart could not be saved; local state was restored."""

    pass


class QuoteUnavailableError(FreshCartException):
    """Placement blocked because there is no valid shipping quote."""

    pass


class ApiError(FreshCartException):
    """Storefront API call failed."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class PlacementInProgress(FreshCartException):
    """A placement attempt is already outstanding."""

    def __init__(self) -> None:
        super().__init__("Your order is already being placed.")


class ConfigurationException(FreshCartException):
    """Configuration errors."""

    pass

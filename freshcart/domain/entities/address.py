"""Shipping address and guest identity entities."""
from __future__ import annotations

import re
from typing import Any, Mapping

from pydantic import BaseModel, Field, ValidationError, field_validator

from freshcart.core.exceptions import AddressValidationError

PHONE_PATTERN = re.compile(r"^(\+880|880|0)?1[3-9]\d{8}$")
POSTAL_CODE_PATTERN = re.compile(r"^\d{4}$")


def _clean(value: Any) -> str:
    return " ".join(str(value or "").split())


class ShippingAddress(BaseModel):
    """Structurally valid delivery address."""

    name: str = Field(..., description="Recipient name")
    phone: str = Field(..., description="Bangladeshi mobile number")
    division: str = Field("", description="Division (fish orders only)")
    district: str = Field(..., description="District")
    upazila: str = Field(..., description="Upazila")
    address: str = Field(..., description="Street address")
    postal_code: str = Field(..., alias="postalCode", description="4-digit postal code")

    class Config:
        """Pydantic config."""

        populate_by_name = True
        str_strip_whitespace = True

    @field_validator("name", "division", "district", "upazila", "address", mode="before")
    @classmethod
    def collapse_whitespace(cls, v: Any) -> str:
        return _clean(v)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v:
            raise ValueError("Name is required")
        return v

    @field_validator("phone", mode="before")
    @classmethod
    def validate_phone(cls, v: Any) -> str:
        """Validate Bangladeshi phone number format."""
        phone = str(v or "").replace(" ", "").replace("-", "")
        if not phone:
            raise ValueError("Phone number is required")
        if not PHONE_PATTERN.match(phone):
            raise ValueError("Please enter a valid Bangladeshi phone number")
        return phone

    @field_validator("district")
    @classmethod
    def validate_district(cls, v: str) -> str:
        if len(v) < 2:
            raise ValueError("District is required")
        return v

    @field_validator("upazila")
    @classmethod
    def validate_upazila(cls, v: str) -> str:
        if len(v) < 2:
            raise ValueError("Upazila is required")
        return v

    @field_validator("address")
    @classmethod
    def validate_street(cls, v: str) -> str:
        if len(v) < 10:
            raise ValueError("Please provide a detailed address")
        return v

    @field_validator("postal_code", mode="before")
    @classmethod
    def validate_postal_code(cls, v: Any) -> str:
        code = str(v or "").strip()
        if not POSTAL_CODE_PATTERN.match(code):
            raise ValueError("Please enter a valid 4-digit postal code")
        return code

    def to_payload(self) -> dict[str, str]:
        """Address block for standard orders."""
        return {
            "name": self.name,
            "phone": self.phone,
            "address": self.address,
            "district": self.district,
            "upazila": self.upazila,
            "postalCode": self.postal_code,
        }

    def to_fish_payload(self) -> dict[str, str]:
        """Address block for fish orders, which also carry the division."""
        payload = self.to_payload()
        payload["division"] = self.division
        return payload


class GuestInfo(BaseModel):
    """Identity embedded in orders placed without an authenticated session."""

    name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    email: str = Field("")

    @classmethod
    def from_address(cls, address: ShippingAddress) -> GuestInfo:
        return cls(name=address.name, phone=address.phone)

    def to_payload(self) -> dict[str, str]:
        return {"name": self.name, "email": self.email, "phone": self.phone}


def parse_address(data: ShippingAddress | Mapping[str, Any] | None) -> ShippingAddress:
    """Validate raw form data into a ShippingAddress.

    Raises:
        AddressValidationError: with one message per invalid field
    """
    if isinstance(data, ShippingAddress):
        return data
    if not data:
        raise AddressValidationError({"address": "Please provide a shipping address."})
    try:
        return ShippingAddress.model_validate(dict(data))
    except ValidationError as exc:
        errors: dict[str, str] = {}
        for error in exc.errors():
            field = str(error["loc"][0]) if error.get("loc") else "address"
            message = str(error.get("msg", "Invalid value"))
            errors.setdefault(field, message.removeprefix("Value error, "))
        raise AddressValidationError(errors) from exc

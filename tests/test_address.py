from __future__ import annotations

import pytest

from freshcart.core.exceptions import AddressValidationError
from freshcart.domain.entities.address import GuestInfo, parse_address


def test_valid_address_payloads(address) -> None:
    parsed = parse_address(address)

    assert parsed.to_payload() == {
        "name": "Rahim Uddin",
        "phone": "01712345678",
        "address": "House 12, Road 5, Dhanmondi",
        "district": "Dhaka",
        "upazila": "Dhanmondi",
        "postalCode": "1205",
    }
    assert parsed.to_fish_payload()["division"] == "Dhaka"


@pytest.mark.parametrize("phone", ["01712345678", "+8801712345678", "8801912345678", "1712345678"])
def test_bangladeshi_phone_formats(address, phone) -> None:
    assert parse_address(dict(address, phone=phone)).phone == phone


@pytest.mark.parametrize(
    ("field", "value"),
    [
        ("phone", "01212345678"),
        ("postalCode", "12345"),
        ("district", "D"),
        ("upazila", ""),
        ("address", "Road 5"),
        ("name", "   "),
    ],
)
def test_structurally_invalid_fields(address, field, value) -> None:
    with pytest.raises(AddressValidationError):
        parse_address(dict(address, **{field: value}))


def test_missing_address() -> None:
    with pytest.raises(AddressValidationError) as exc_info:
        parse_address(None)
    assert exc_info.value.errors == {"address": "Please provide a shipping address."}


def test_guest_info_from_address(address) -> None:
    guest = GuestInfo.from_address(parse_address(address))
    assert guest.to_payload() == {"name": "Rahim Uddin", "email": "", "phone": "01712345678"}

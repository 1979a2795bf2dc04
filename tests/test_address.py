"""Tests for shipping address validation."""

import pytest
from kungfu import Error, Ok

from kixstore.address import validate_address
from kixstore.errors import ValidationError


def errors(form) -> dict[str, str]:
    match validate_address(form):
        case Error(ValidationError(fields=fields)):
            return fields
        case other:
            pytest.fail(f"expected validation error, got {other}")


class TestValidateAddress:
    def test_valid_form(self, address_form):
        match validate_address({**address_form, "full_name": "  Sam Rivera  "}):
            case Ok(address):
                assert address.full_name == "Sam Rivera"
                assert address.apartment == ""
            case Error(err):
                pytest.fail(str(err))

    def test_reports_every_missing_field(self):
        fields = errors({})

        assert fields == {
            "full_name": "Full name is required",
            "email": "Email is required",
            "phone": "Phone number is required",
            "street": "Street address is required",
            "city": "City is required",
            "state": "State is required",
            "zip": "ZIP code is required",
        }

    def test_format_errors(self, address_form):
        fields = errors({**address_form, "email": "sam@", "phone": "12345", "zip": "9720"})

        assert fields == {
            "email": "Please enter a valid email address",
            "phone": "Please enter a valid phone number",
            "zip": "Please enter a valid 5-digit ZIP code",
        }

    def test_zip_plus_four(self, address_form):
        assert isinstance(validate_address({**address_form, "zip": "97201-1234"}), Ok)

    def test_non_us_zip_is_free_form(self, address_form):
        assert isinstance(validate_address({**address_form, "country": "CA", "zip": "K1A 0B1"}), Ok)

    def test_none_values_count_as_missing(self, address_form):
        assert errors({**address_form, "city": None}) == {"city": "City is required"}

    def test_message(self, address_form):
        match validate_address({**address_form, "email": ""}):
            case Error(err):
                assert err.message == "Please correct the highlighted fields"
            case Ok(_):
                pytest.fail("expected validation error")

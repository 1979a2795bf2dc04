"""
Shipping address and its validation.

Every failing field is reported at once, each with its own message:

    match validate_address(form):
        case Ok(address): ...
        case Error(err): err.fields  # {"email": "Please enter a valid email address", ...}
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from kungfu import Result, Ok, Error
from pydantic import BaseModel, ConfigDict, ValidationError as PydanticValidationError, ValidationInfo, field_validator
from pydantic_core import PydanticCustomError

from kixstore.errors import ValidationError

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_RE = re.compile(r"^[\d\s\-\+\(\)]{10,}$")
US_ZIP_RE = re.compile(r"^\d{5}(-\d{4})?$")

_REQUIRED = {
    "full_name": "Full name is required",
    "email": "Email is required",
    "phone": "Phone number is required",
    "street": "Street address is required",
    "city": "City is required",
    "state": "State is required",
    "country": "Country is required",
    "zip": "ZIP code is required",
}


class ShippingAddress(BaseModel):
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True, validate_default=True)

    full_name: str = ""
    email: str = ""
    phone: str = ""
    street: str = ""
    apartment: str = ""
    city: str = ""
    state: str = ""
    # Declared before zip: the zip rule depends on it.
    country: str = "US"
    zip: str = ""

    @field_validator("full_name", "email", "phone", "street", "city", "state", "country", "zip")
    @classmethod
    def _required(cls, value: str, info: ValidationInfo) -> str:
        if not value:
            raise PydanticCustomError("required", _REQUIRED[info.field_name or ""])
        return value

    @field_validator("email")
    @classmethod
    def _email(cls, value: str) -> str:
        if not EMAIL_RE.match(value):
            raise PydanticCustomError("email", "Please enter a valid email address")
        return value

    @field_validator("phone")
    @classmethod
    def _phone(cls, value: str) -> str:
        if not PHONE_RE.match(re.sub(r"\s", "", value)):
            raise PydanticCustomError("phone", "Please enter a valid phone number")
        return value

    @field_validator("zip")
    @classmethod
    def _zip(cls, value: str, info: ValidationInfo) -> str:
        if info.data.get("country") == "US" and not US_ZIP_RE.match(value):
            raise PydanticCustomError("zip", "Please enter a valid 5-digit ZIP code")
        return value

    def to_doc(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


def validate_address(form: Mapping[str, Any]) -> Result[ShippingAddress, ValidationError]:
    try:
        return Ok(ShippingAddress.model_validate({k: "" if v is None else v for k, v in form.items()}))
    except PydanticValidationError as exc:
        fields: dict[str, str] = {}
        for error in exc.errors():
            name = str(error["loc"][0]) if error["loc"] else "__root__"
            fields.setdefault(name, error["msg"])
        return Error(ValidationError("Please correct the highlighted fields", fields))


__all__ = ("ShippingAddress", "validate_address", "EMAIL_RE", "PHONE_RE", "US_ZIP_RE")

"""
Promo codes: model, error kinds, discount arithmetic.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from kixstore._money import round2


class PromoType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


def normalize_code(code: str) -> str:
    """Trimmed and upper-cased: lookups are case-insensitive."""
    return code.strip().upper()


class Promo(BaseModel):
    """
    Note: usage_limit is stored for the admin view but not enforced.
    """

    model_config = ConfigDict(frozen=True)

    code: str
    type: PromoType
    value: Decimal = Field(ge=0)
    description: str = ""
    active: bool = True
    expiration_date: datetime | None = None
    minimum_purchase: Decimal = Field(default=Decimal("0"), ge=0)
    usage_limit: int | None = None

    @field_validator("code")
    @classmethod
    def _normalize(cls, value: str) -> str:
        code = normalize_code(value)
        if not code:
            raise ValueError("code must not be empty")
        return code

    @field_validator("expiration_date")
    @classmethod
    def _aware(cls, value: datetime | None) -> datetime | None:
        # Naive dates are taken as UTC.
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def is_expired(self, now: datetime) -> bool:
        return self.expiration_date is not None and self.expiration_date < now

    def to_doc(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude={"code"})

    @classmethod
    def from_doc(cls, code: str, data: dict[str, Any]) -> Promo:
        return cls.model_validate({**data, "code": code})


def compute_discount(promo: Promo, subtotal: Decimal) -> Decimal:
    """
    Discount for `subtotal`, never more than the subtotal itself.

        percentage → min(round2(subtotal * value / 100), subtotal)
        fixed      → min(value, subtotal)
    """
    if subtotal <= 0:
        return Decimal("0.00")
    match promo.type:
        case PromoType.PERCENTAGE:
            raw = round2(subtotal * promo.value / 100)
        case PromoType.FIXED:
            raw = promo.value
    return round2(min(raw, subtotal))


@dataclass(frozen=True, slots=True)
class AppliedPromo:
    """A validated promo plus the discount it gave at validation time."""

    promo: Promo
    discount_amount: Decimal

    @property
    def code(self) -> str:
        return self.promo.code

    @property
    def description(self) -> str:
        return self.promo.description


# ═══════════════════════════════════════════════════════════════════════════════
# Rejections
# ═══════════════════════════════════════════════════════════════════════════════


class PromoErrorKind(Enum):
    NOT_FOUND = "not_found"
    INACTIVE = "inactive"
    EXPIRED = "expired"
    BELOW_MINIMUM = "below_minimum"


@dataclass(frozen=True, slots=True)
class PromoError:
    """Why a code was refused. `message` is shown to the shopper as-is."""

    kind: PromoErrorKind
    message: str
    code: str

    def __str__(self) -> str:
        return self.message


__all__ = (
    "PromoType",
    "normalize_code",
    "Promo",
    "compute_discount",
    "AppliedPromo",
    "PromoErrorKind",
    "PromoError",
)

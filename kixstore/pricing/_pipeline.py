"""
Pricing pipeline: subtotal → discount → shipping → tax → total.

Pure and deterministic. Discount and tax are rounded to the cent; the total
is the plain sum of the already-rounded parts.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from kixstore._money import ZERO, round2, to_money
from kixstore.pricing._policy import DEFAULT_POLICY, PricingPolicy
from kixstore.promo import Promo, compute_discount


@dataclass(frozen=True, slots=True)
class Quote:
    """The five figures an order keeps forever."""

    subtotal: Decimal
    discount: Decimal
    shipping: Decimal
    tax: Decimal
    total: Decimal

    @property
    def discounted_subtotal(self) -> Decimal:
        return self.subtotal - self.discount

    def to_doc(self) -> dict[str, Any]:
        return {
            "subtotal": str(self.subtotal),
            "discount": str(self.discount),
            "shipping": str(self.shipping),
            "tax": str(self.tax),
            "total": str(self.total),
        }

    @staticmethod
    def from_doc(doc: dict[str, Any]) -> Quote:
        return Quote(
            subtotal=to_money(doc["subtotal"]),
            discount=to_money(doc["discount"]),
            shipping=to_money(doc["shipping"]),
            tax=to_money(doc["tax"]),
            total=to_money(doc["total"]),
        )


def price(
    subtotal: Decimal,
    promo: Promo | None = None,
    policy: PricingPolicy = DEFAULT_POLICY,
) -> Quote:
    """
    Example:
        price(Decimal("100"))                     # shipping 0, tax 8.00, total 108.00
        price(Decimal("60"), save20_fixed_promo)  # 20 off, shipping 10, total 53.20
    """
    if subtotal < 0:
        raise ValueError("subtotal must be >= 0")

    discount = compute_discount(promo, subtotal) if promo is not None else ZERO
    discounted = subtotal - discount
    shipping = policy.shipping_for(discounted)
    tax = round2(discounted * policy.tax_rate)

    return Quote(
        subtotal=subtotal,
        discount=discount,
        shipping=shipping,
        tax=tax,
        total=discounted + shipping + tax,
    )


__all__ = ("Quote", "price")

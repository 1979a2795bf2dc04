"""
Pricing policy: the one source of truth for shipping and tax constants.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal

from kixstore._money import ZERO


@dataclass(frozen=True, slots=True)
class PricingPolicy:
    """
    Shipping and tax rules shared by the cart page estimate, the checkout
    quote and the stored order.

    Fluent builder pattern: every with_* returns a new policy.

    Example:
        policy = PricingPolicy().with_tax_rate(Decimal("0.0725"))

    Note: The threshold is inclusive. A discounted subtotal of exactly the
    threshold ships free.
    """

    free_shipping_threshold: Decimal = Decimal("100")
    flat_shipping_fee: Decimal = Decimal("10")
    tax_rate: Decimal = Decimal("0.08")

    def __post_init__(self) -> None:
        if self.free_shipping_threshold < 0 or self.flat_shipping_fee < 0:
            raise ValueError("shipping amounts must be >= 0")
        if not ZERO <= self.tax_rate < 1:
            raise ValueError("tax rate must be in [0, 1)")

    def with_free_shipping_threshold(self, threshold: Decimal) -> PricingPolicy:
        return replace(self, free_shipping_threshold=threshold)

    def with_flat_shipping_fee(self, fee: Decimal) -> PricingPolicy:
        return replace(self, flat_shipping_fee=fee)

    def with_tax_rate(self, rate: Decimal) -> PricingPolicy:
        return replace(self, tax_rate=rate)

    def qualifies_for_free_shipping(self, discounted_subtotal: Decimal) -> bool:
        return discounted_subtotal >= self.free_shipping_threshold

    def shipping_for(self, discounted_subtotal: Decimal) -> Decimal:
        return ZERO if self.qualifies_for_free_shipping(discounted_subtotal) else self.flat_shipping_fee

    def remaining_for_free_shipping(self, discounted_subtotal: Decimal) -> Decimal:
        """How much more to spend for free shipping; zero once it applies."""
        return max(self.free_shipping_threshold - discounted_subtotal, ZERO)


DEFAULT_POLICY = PricingPolicy()


__all__ = ("PricingPolicy", "DEFAULT_POLICY")

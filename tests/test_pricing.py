"""Tests for the pricing pipeline."""

from decimal import Decimal

import pytest

from kixstore.pricing import DEFAULT_POLICY, PricingPolicy, Quote, price
from kixstore.promo import Promo, PromoType, compute_discount


def promo(kind: PromoType, value: str, code: str = "TEST") -> Promo:
    return Promo(code=code, type=kind, value=Decimal(value))


class TestPrice:
    """Subtotal → discount → shipping → tax → total."""

    def test_free_shipping_at_threshold(self):
        quote = price(Decimal("100"))

        assert quote == Quote(
            subtotal=Decimal("100"),
            discount=Decimal("0"),
            shipping=Decimal("0"),
            tax=Decimal("8.00"),
            total=Decimal("108.00"),
        )

    def test_fixed_promo_below_threshold(self):
        quote = price(Decimal("60"), promo(PromoType.FIXED, "20", "SAVE20"))

        assert quote.discount == Decimal("20.00")
        assert quote.discounted_subtotal == Decimal("40.00")
        assert quote.shipping == Decimal("10")
        assert quote.tax == Decimal("3.20")
        assert quote.total == Decimal("53.20")

    def test_percentage_promo_caps_at_subtotal(self):
        quote = price(Decimal("30"), promo(PromoType.PERCENTAGE, "150"))

        assert quote.discount == Decimal("30.00")
        assert quote.discounted_subtotal == Decimal("0.00")
        assert quote.tax == Decimal("0.00")
        assert quote.total == Decimal("10.00")

    def test_discount_can_drop_below_free_shipping(self):
        quote = price(Decimal("110"), promo(PromoType.FIXED, "20"))

        assert quote.shipping == Decimal("10")
        assert quote.total == Decimal("90") + Decimal("10") + Decimal("7.20")

    def test_tax_rounds_half_up(self):
        # 0.08 * 10.5625 = 0.845 → 0.85
        quote = price(Decimal("10.5625"))

        assert quote.tax == Decimal("0.85")

    def test_empty_cart(self):
        quote = price(Decimal("0"), promo(PromoType.FIXED, "20"))

        assert quote.discount == Decimal("0")
        assert quote.total == Decimal("10")

    def test_negative_subtotal_rejected(self):
        with pytest.raises(ValueError):
            price(Decimal("-1"))

    def test_custom_policy(self):
        policy = DEFAULT_POLICY.with_free_shipping_threshold(Decimal("50")).with_tax_rate(Decimal("0"))

        assert price(Decimal("50"), policy=policy).total == Decimal("50")

    def test_quote_doc_round_trip(self):
        quote = price(Decimal("60"), promo(PromoType.FIXED, "20"))

        assert Quote.from_doc(quote.to_doc()) == quote


class TestPercentageCap:
    """discount == min(round2(S * V / 100), S) for any subtotal and rate."""

    @pytest.mark.parametrize(
        ("subtotal", "value", "expected"),
        [
            ("100", "10", "10.00"),
            ("33.33", "15", "5.00"),
            ("19.99", "50", "10.00"),
            ("30", "150", "30.00"),
            ("0.01", "100", "0.01"),
            ("45", "0", "0.00"),
        ],
    )
    def test_discount(self, subtotal, value, expected):
        discount = compute_discount(promo(PromoType.PERCENTAGE, value), Decimal(subtotal))

        assert discount == Decimal(expected)
        assert discount <= Decimal(subtotal)

    def test_fixed_caps_at_subtotal(self):
        assert compute_discount(promo(PromoType.FIXED, "20"), Decimal("15")) == Decimal("15.00")


class TestPricingPolicy:
    def test_remaining_for_free_shipping(self):
        assert DEFAULT_POLICY.remaining_for_free_shipping(Decimal("62.50")) == Decimal("37.50")
        assert DEFAULT_POLICY.remaining_for_free_shipping(Decimal("120")) == Decimal("0")

    def test_threshold_is_inclusive(self):
        assert DEFAULT_POLICY.qualifies_for_free_shipping(Decimal("100"))
        assert not DEFAULT_POLICY.qualifies_for_free_shipping(Decimal("99.99"))

    def test_invalid_policy(self):
        with pytest.raises(ValueError):
            PricingPolicy(tax_rate=Decimal("1.5"))
        with pytest.raises(ValueError):
            PricingPolicy(flat_shipping_fee=Decimal("-1"))

"""
Pricing: one policy, one pipeline.

    from kixstore import pricing as PR

    quote = PR.price(cart.total(), promo, PR.PricingPolicy())
    quote.total
"""

from kixstore.pricing._policy import PricingPolicy, DEFAULT_POLICY
from kixstore.pricing._pipeline import Quote, price

__all__ = ("PricingPolicy", "DEFAULT_POLICY", "Quote", "price")

"""
Promo: discount codes, their validation, and the discount they give.

    from kixstore import promo as P

    validator = P.PromoValidator(P.PromoBook(store))
    result = await validator.apply("save20", subtotal)
"""

from kixstore.promo._types import (
    PromoType,
    normalize_code,
    Promo,
    compute_discount,
    AppliedPromo,
    PromoErrorKind,
    PromoError,
)
from kixstore.promo._validator import (
    Clock,
    PromoRejection,
    utc_now,
    PromoBook,
    PromoValidator,
)

__all__ = (
    "PromoType",
    "normalize_code",
    "Promo",
    "compute_discount",
    "AppliedPromo",
    "PromoErrorKind",
    "PromoError",
    "Clock",
    "PromoRejection",
    "utc_now",
    "PromoBook",
    "PromoValidator",
)

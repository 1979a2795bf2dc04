"""
Promo validation against the promo book.

Checks run in order and the first failure wins:

    1. code exists          → NOT_FOUND      "Invalid promo code"
    2. active               → INACTIVE       "This promo code is no longer active"
    3. not past expiration  → EXPIRED        "This promo code has expired"
    4. subtotal ≥ minimum   → BELOW_MINIMUM  "Minimum purchase of $N required"
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
from decimal import Decimal

from kungfu import Result, Ok, Error
from pydantic import ValidationError as PydanticValidationError

from kixstore._logging import get_logger
from kixstore._money import format_amount
from kixstore.errors import TransientIOError, ValidationError
from kixstore.promo._types import (
    AppliedPromo,
    Promo,
    PromoError,
    PromoErrorKind,
    compute_discount,
    normalize_code,
)
from kixstore.storage import PROMO_CODES, DocumentStore

log = get_logger("promo")

type Clock = Callable[[], datetime]
type PromoRejection = PromoError | ValidationError | TransientIOError


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PromoBook:
    """Promo codes in the document store, keyed by normalized code."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def find(self, code: str) -> Result[Promo | None, TransientIOError]:
        key = normalize_code(code)
        match await self._store.get(PROMO_CODES, key):
            case Ok(None):
                return Ok(None)
            case Ok(doc):
                try:
                    return Ok(Promo.from_doc(key, doc))
                except PydanticValidationError as exc:
                    log.error("promo_corrupt", code=key, error=str(exc))
                    return Ok(None)
            case Error(err):
                return Error(TransientIOError("Could not check promo code", err.cause))

    async def save(self, promo: Promo) -> Result[None, TransientIOError]:
        match await self._store.set(PROMO_CODES, promo.code, promo.to_doc()):
            case Ok(_):
                return Ok(None)
            case Error(err):
                return Error(TransientIOError("Could not save promo code", err.cause))


class PromoValidator:
    """
    Example:
        match await validator.validate(" save20 ", Decimal("60")):
            case Ok(promo):
                ...
            case Error(PromoError(message=msg)):
                show(msg)
    """

    def __init__(self, book: PromoBook, clock: Clock = utc_now) -> None:
        self._book = book
        self._clock = clock

    async def validate(self, code: str, subtotal: Decimal) -> Result[Promo, PromoRejection]:
        key = normalize_code(code)
        if not key:
            return Error(ValidationError("Please enter a promo code", {"promo_code": "Please enter a promo code"}))

        match await self._book.find(key):
            case Error(err):
                log.warning("promo_lookup_failed", code=key, error=err.message)
                return Error(err)
            case Ok(None):
                return self._reject(PromoErrorKind.NOT_FOUND, "Invalid promo code", key)
            case Ok(promo):
                pass

        if not promo.active:
            return self._reject(PromoErrorKind.INACTIVE, "This promo code is no longer active", key)
        if promo.is_expired(self._clock()):
            return self._reject(PromoErrorKind.EXPIRED, "This promo code has expired", key)
        if promo.minimum_purchase > 0 and subtotal < promo.minimum_purchase:
            return self._reject(
                PromoErrorKind.BELOW_MINIMUM,
                f"Minimum purchase of ${format_amount(promo.minimum_purchase)} required",
                key,
            )

        return Ok(promo)

    async def apply(self, code: str, subtotal: Decimal) -> Result[AppliedPromo, PromoRejection]:
        """Validate and compute the discount it gives on `subtotal`."""
        match await self.validate(code, subtotal):
            case Ok(promo):
                applied = AppliedPromo(promo, compute_discount(promo, subtotal))
                log.info("promo_applied", code=promo.code, discount=str(applied.discount_amount))
                return Ok(applied)
            case Error(err):
                return Error(err)

    def _reject(self, kind: PromoErrorKind, message: str, code: str) -> Result[Promo, PromoRejection]:
        log.info("promo_rejected", code=code, reason=kind.value)
        return Error(PromoError(kind, message, code))


__all__ = ("Clock", "PromoRejection", "utc_now", "PromoBook", "PromoValidator")

"""Tests for promo validation."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from kungfu import Error, Ok

from kixstore.errors import TransientIOError, ValidationError
from kixstore.promo import (
    Promo,
    PromoBook,
    PromoError,
    PromoErrorKind,
    PromoType,
    PromoValidator,
    normalize_code,
)
from kixstore.storage import PROMO_CODES, UnavailableDocumentStore

NOW = datetime(2024, 6, 1, 12, tzinfo=timezone.utc)


@pytest.fixture
def book(store) -> PromoBook:
    return PromoBook(store)


@pytest.fixture
def validator(book) -> PromoValidator:
    return PromoValidator(book, clock=lambda: NOW)


async def save(book: PromoBook, code: str, kind: PromoType = PromoType.PERCENTAGE, value: str = "10", **fields):
    await book.save(Promo(code=code, type=kind, value=Decimal(value), **fields))


def rejection(result) -> PromoErrorKind:
    match result:
        case Error(PromoError(kind=kind)):
            return kind
        case other:
            pytest.fail(f"expected a promo rejection, got {other}")


class TestPromoValidator:
    """Checks run in order; the first failure wins."""

    async def test_valid_code_is_case_insensitive(self, book, validator):
        await save(book, "save20", PromoType.FIXED, "20")

        match await validator.validate("  Save20 ", Decimal("60")):
            case Ok(promo):
                assert promo.code == "SAVE20"
            case Error(err):
                pytest.fail(str(err))

    async def test_unknown_code(self, validator):
        result = await validator.validate("NOPE", Decimal("60"))

        assert result == Error(PromoError(PromoErrorKind.NOT_FOUND, "Invalid promo code", "NOPE"))

    async def test_empty_code(self, validator):
        match await validator.validate("   ", Decimal("60")):
            case Error(ValidationError(message=message)):
                assert message == "Please enter a promo code"
            case other:
                pytest.fail(f"expected validation error, got {other}")

    async def test_inactive_checked_before_expiry(self, book, validator):
        await save(book, "OLD", active=False, expiration_date=NOW - timedelta(days=1))

        result = await validator.validate("OLD", Decimal("60"))

        assert rejection(result) is PromoErrorKind.INACTIVE
        assert result.error.message == "This promo code is no longer active"

    async def test_expired(self, book, validator):
        await save(book, "GONE", expiration_date=NOW - timedelta(seconds=1))

        result = await validator.validate("GONE", Decimal("60"))

        assert rejection(result) is PromoErrorKind.EXPIRED
        assert result.error.message == "This promo code has expired"

    async def test_not_yet_expired(self, book, validator):
        await save(book, "SOON", expiration_date=NOW + timedelta(days=1))

        assert isinstance(await validator.validate("SOON", Decimal("60")), Ok)

    async def test_expiry_checked_before_minimum(self, book, validator):
        await save(book, "BOTH", expiration_date=NOW - timedelta(days=1), minimum_purchase=Decimal("500"))

        assert rejection(await validator.validate("BOTH", Decimal("60"))) is PromoErrorKind.EXPIRED

    async def test_below_minimum(self, book, validator):
        await save(book, "BIG", minimum_purchase=Decimal("50"))

        result = await validator.validate("BIG", Decimal("49.99"))

        assert rejection(result) is PromoErrorKind.BELOW_MINIMUM
        assert result.error.message == "Minimum purchase of $50 required"
        assert isinstance(await validator.validate("BIG", Decimal("50")), Ok)

    async def test_apply_computes_discount(self, book, validator):
        await save(book, "TENOFF", PromoType.PERCENTAGE, "10")

        applied = (await validator.apply("tenoff", Decimal("85.50"))).unwrap()

        assert applied.code == "TENOFF"
        assert applied.discount_amount == Decimal("8.55")

    async def test_store_failure_is_transient(self):
        validator = PromoValidator(PromoBook(UnavailableDocumentStore()), clock=lambda: NOW)

        match await validator.validate("SAVE20", Decimal("60")):
            case Error(TransientIOError()):
                pass
            case other:
                pytest.fail(f"expected transient error, got {other}")

    async def test_corrupt_promo_reads_as_unknown(self, store, validator):
        await store.set(PROMO_CODES, "BROKEN", {"type": "bogus", "value": "10"})

        assert rejection(await validator.validate("broken", Decimal("60"))) is PromoErrorKind.NOT_FOUND


class TestPromoModel:
    def test_normalize_code(self):
        assert normalize_code(" welcome10 ") == "WELCOME10"

    def test_naive_expiration_taken_as_utc(self):
        promo = Promo(code="X", type=PromoType.FIXED, value=Decimal("5"), expiration_date=datetime(2024, 1, 1))

        assert promo.expiration_date.tzinfo is timezone.utc
        assert promo.is_expired(NOW)

    def test_stored_document(self, store):
        promo = Promo(code="x", type=PromoType.FIXED, value=Decimal("5"), usage_limit=100)

        doc = promo.to_doc()

        assert "code" not in doc
        assert doc["value"] == "5"
        assert doc["usage_limit"] == 100
        assert Promo.from_doc("X", doc) == promo

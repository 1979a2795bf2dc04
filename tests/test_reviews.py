"""Tests for ReviewStore."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from kungfu import Error, Ok

from kixstore.catalog import ReviewStore
from kixstore.errors import TransientIOError, ValidationError
from kixstore.storage import UnavailableDocumentStore

T0 = datetime(2024, 5, 1, tzinfo=timezone.utc)


@pytest.fixture
def reviews(store) -> ReviewStore:
    return ReviewStore(store)


async def add(reviews: ReviewStore, product_id: str, rating: int, minutes: int = 0):
    return await reviews.add(
        product_id,
        user_id="u1",
        user_name="Sam",
        rating=rating,
        comment="Comfortable",
        created_at=T0 + timedelta(minutes=minutes),
    )


class TestReviewStore:
    async def test_add_and_list_newest_first(self, reviews):
        await add(reviews, "1", 4, minutes=0)
        await add(reviews, "1", 5, minutes=10)
        await add(reviews, "2", 1)

        listed = await reviews.for_product("1")

        assert [r.rating for r in listed] == [5, 4]
        assert all(r.product_id == "1" for r in listed)
        assert await reviews.count("1") == 2

    async def test_add_returns_stored_id(self, reviews):
        match await add(reviews, "1", 5):
            case Ok(review):
                assert review.id != "draft"
                assert [r.id for r in await reviews.for_product("1")] == [review.id]
            case Error(err):
                pytest.fail(str(err))

    async def test_invalid_review_reports_every_field(self, reviews):
        match await reviews.add("1", user_id=None, user_name="  ", rating=6, comment=""):
            case Error(ValidationError(message=message, fields=fields)):
                assert message == "Please check your review"
                assert set(fields) == {"user_name", "rating", "comment"}
            case other:
                pytest.fail(f"expected validation error, got {other}")

    async def test_average_rating_one_decimal(self, reviews):
        for rating in (5, 4, 4):
            await add(reviews, "1", rating)

        assert await reviews.average_rating("1") == Decimal("4.3")
        assert await reviews.average_rating("none") == Decimal("0.0")

    async def test_average_rounds_half_up(self, reviews):
        for rating in (5, 4, 4, 4):
            await add(reviews, "1", rating)

        # 17 / 4 = 4.25
        assert await reviews.average_rating("1") == Decimal("4.3")

    async def test_unreachable_store(self):
        reviews = ReviewStore(UnavailableDocumentStore())

        assert await reviews.for_product("1") == []
        match await add(reviews, "1", 5):
            case Error(TransientIOError()):
                pass
            case other:
                pytest.fail(f"expected transient error, got {other}")

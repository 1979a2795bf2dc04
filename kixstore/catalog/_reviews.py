"""
Product reviews. One write path, newest-first reads.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

from kungfu import Result, Ok, Error
from pydantic import ValidationError as PydanticValidationError

from kixstore._logging import get_logger
from kixstore.catalog._types import Review
from kixstore.errors import TransientIOError, ValidationError
from kixstore.storage import REVIEWS, DocumentStore, Query

log = get_logger("reviews")


class ReviewStore:
    """
    Example:
        match await reviews.add("1", user_id="u1", user_name="Sam", rating=5, comment="Great"):
            case Ok(review): ...
            case Error(ValidationError(fields=fields)): ...
    """

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def add(
        self,
        product_id: str,
        *,
        user_id: str | None,
        user_name: str,
        rating: int,
        comment: str,
        created_at: datetime | None = None,
    ) -> Result[Review, ValidationError | TransientIOError]:
        try:
            review = Review(
                id="draft",
                product_id=product_id,
                user_id=user_id,
                user_name=user_name,
                rating=rating,
                comment=comment,
                created_at=created_at or datetime.now(timezone.utc),
            )
        except PydanticValidationError as exc:
            fields = {str(e["loc"][0]): e["msg"] for e in exc.errors() if e["loc"]}
            return Error(ValidationError("Please check your review", fields))

        match await self._store.add(REVIEWS, review.to_doc()):
            case Ok(review_id):
                log.info("review_added", product_id=product_id, review_id=review_id, rating=rating)
                return Ok(review.model_copy(update={"id": review_id}))
            case Error(err):
                return Error(TransientIOError("Could not save review", err.cause))

    async def for_product(self, product_id: str) -> list[Review]:
        """Newest first. An unreadable store shows no reviews."""
        match await self._store.query(REVIEWS, Query().where("product_id", product_id)):
            case Ok(snapshots):
                pass
            case Error(err):
                log.warning("reviews_read_failed", product_id=product_id, error=err.message)
                return []

        reviews = []
        for snapshot in snapshots:
            try:
                reviews.append(Review.from_doc(snapshot.id, snapshot.data))
            except PydanticValidationError as exc:
                log.error("review_corrupt", review_id=snapshot.id, error=str(exc))
        reviews.sort(key=lambda r: r.created_at, reverse=True)
        return reviews

    async def average_rating(self, product_id: str) -> Decimal:
        """Mean rating at one decimal; 0.0 with no reviews."""
        reviews = await self.for_product(product_id)
        if not reviews:
            return Decimal("0.0")
        mean = Decimal(sum(r.rating for r in reviews)) / len(reviews)
        return mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)

    async def count(self, product_id: str) -> int:
        return len(await self.for_product(product_id))


__all__ = ("ReviewStore",)

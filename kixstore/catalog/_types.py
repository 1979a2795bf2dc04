"""
Catalog models. Documents are `model_dump(mode="json")`, so amounts
persist as strings.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Category(str, Enum):
    MENS = "mens"
    WOMENS = "womens"
    KIDS = "kids"


STANDARD_SIZES: tuple[float, ...] = (7, 7.5, 8, 8.5, 9, 9.5, 10, 10.5, 11, 11.5, 12)
KIDS_SIZES: tuple[float, ...] = (3, 3.5, 4, 4.5, 5, 5.5, 6, 6.5, 7)


class Product(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    brand: str
    price: Decimal = Field(ge=0)
    original_price: Decimal | None = None
    discount_percent: int | None = None
    on_sale: bool = False
    category: Category
    image_url: str = ""
    images: list[str] = Field(default_factory=list)
    rating: float = Field(default=0, ge=0, le=5)
    review_count: int = Field(default=0, ge=0)
    is_new_arrival: bool = False
    is_trending: bool = False
    description: str = ""
    features: list[str] = Field(default_factory=list)
    sizes: list[float] = Field(default_factory=list)

    def to_doc(self) -> dict[str, Any]:
        """Stored form: everything but the id, which is the document key."""
        return self.model_dump(mode="json", exclude={"id"})

    @classmethod
    def from_doc(cls, doc_id: str, data: dict[str, Any]) -> Product:
        return cls.model_validate({**data, "id": doc_id})


class Review(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    product_id: str
    user_id: str | None = None
    user_name: str
    rating: int = Field(ge=1, le=5)
    comment: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("user_name", "comment")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value.strip()

    def to_doc(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude={"id"})

    @classmethod
    def from_doc(cls, doc_id: str, data: dict[str, Any]) -> Review:
        return cls.model_validate({**data, "id": doc_id})


__all__ = ("Category", "STANDARD_SIZES", "KIDS_SIZES", "Product", "Review")

"""
Cart line: one (product, size) with a display snapshot taken at add time.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any

from kixstore._money import to_money
from kixstore.catalog._types import Product

type LineKey = tuple[str, float]


@dataclass(frozen=True, slots=True)
class CartLine:
    """
    Note: price is the price when the line was added. Later catalog price
    changes never reach an existing line.
    """

    product_id: str
    size: float
    quantity: int
    name: str
    brand: str
    price: Decimal
    image_url: str = ""

    def __post_init__(self) -> None:
        if self.quantity < 1:
            raise ValueError("quantity must be >= 1")

    @property
    def key(self) -> LineKey:
        return (self.product_id, self.size)

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity

    def with_quantity(self, quantity: int) -> CartLine:
        return replace(self, quantity=quantity)

    @staticmethod
    def from_product(product: Product, size: float, quantity: int = 1) -> CartLine:
        return CartLine(
            product_id=product.id,
            size=float(size),
            quantity=quantity,
            name=product.name,
            brand=product.brand,
            price=product.price,
            image_url=product.image_url,
        )

    def to_doc(self) -> dict[str, Any]:
        return {
            "product_id": self.product_id,
            "size": self.size,
            "quantity": self.quantity,
            "name": self.name,
            "brand": self.brand,
            "price": str(self.price),
            "image_url": self.image_url,
        }

    @staticmethod
    def from_doc(raw: Any) -> CartLine:
        return CartLine(
            product_id=str(raw["product_id"]),
            size=float(raw["size"]),
            quantity=int(raw["quantity"]),
            name=str(raw.get("name", "")),
            brand=str(raw.get("brand", "")),
            price=to_money(raw["price"]),
            image_url=str(raw.get("image_url", "")),
        )


__all__ = ("LineKey", "CartLine")

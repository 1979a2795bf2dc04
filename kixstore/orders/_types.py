"""
Order snapshot and its status machines.

Everything but status, payment_status, payment_method, payment_date and
payment_reference is fixed at creation.

    status:          pending → processing → shipped → delivered
                     pending | processing → cancelled
    payment_status:  pending → paid | failed,  failed → paid
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from kixstore.address import ShippingAddress
from kixstore.cart import CartLine
from kixstore.pricing import Quote

DELIVERY_WINDOW = timedelta(days=7)


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


STATUS_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

PAYABLE = frozenset({PaymentStatus.PENDING, PaymentStatus.FAILED})


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in STATUS_TRANSITIONS[current]


def new_order_id() -> str:
    return f"ord_{uuid.uuid4().hex[:12]}"


class OrderItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_id: str
    name: str
    brand: str
    price: Decimal
    size: float
    quantity: int = Field(ge=1)
    image_url: str = ""

    @classmethod
    def from_line(cls, line: CartLine) -> OrderItem:
        return cls(
            product_id=line.product_id,
            name=line.name,
            brand=line.brand,
            price=line.price,
            size=line.size,
            quantity=line.quantity,
            image_url=line.image_url,
        )


class Order(BaseModel):
    model_config = ConfigDict(frozen=True)

    order_id: str
    user_id: str
    user_email: str | None = None
    items: tuple[OrderItem, ...]
    shipping_address: ShippingAddress
    order_date: datetime
    status: OrderStatus = OrderStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    subtotal: Decimal
    discount: Decimal = Decimal("0")
    shipping: Decimal
    tax: Decimal
    total: Decimal
    promo_code: str | None = None
    estimated_delivery: datetime
    payment_method: str | None = None
    payment_date: datetime | None = None
    payment_reference: str | None = None
    checkout_key: str | None = None

    @property
    def quote(self) -> Quote:
        return Quote(self.subtotal, self.discount, self.shipping, self.tax, self.total)

    @property
    def is_paid(self) -> bool:
        return self.payment_status is PaymentStatus.PAID

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    @classmethod
    def snapshot(
        cls,
        *,
        user_id: str,
        user_email: str | None,
        lines: tuple[CartLine, ...],
        address: ShippingAddress,
        quote: Quote,
        promo_code: str | None,
        order_date: datetime,
        checkout_key: str | None = None,
        order_id: str | None = None,
    ) -> Order:
        return cls(
            order_id=order_id or new_order_id(),
            user_id=user_id,
            user_email=user_email,
            items=tuple(OrderItem.from_line(line) for line in lines),
            shipping_address=address,
            order_date=order_date,
            subtotal=quote.subtotal,
            discount=quote.discount,
            shipping=quote.shipping,
            tax=quote.tax,
            total=quote.total,
            promo_code=promo_code,
            estimated_delivery=order_date + DELIVERY_WINDOW,
            checkout_key=checkout_key,
        )

    def to_doc(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude={"order_id"})

    @classmethod
    def from_doc(cls, order_id: str, data: dict[str, Any]) -> Order:
        return cls.model_validate({**data, "order_id": order_id})


__all__ = (
    "DELIVERY_WINDOW",
    "OrderStatus",
    "PaymentStatus",
    "STATUS_TRANSITIONS",
    "PAYABLE",
    "can_transition",
    "new_order_id",
    "OrderItem",
    "Order",
)

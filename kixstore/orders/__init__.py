"""
Orders: immutable snapshots with bounded status changes.

    from kixstore import orders as O

    repo = O.OrderRepository(store, profiles)
    match await repo.get_for_user(order_id, user_id):
        case Ok(order): ...
        case Error(err): ...
"""

from kixstore.orders._types import (
    DELIVERY_WINDOW,
    OrderStatus,
    PaymentStatus,
    STATUS_TRANSITIONS,
    PAYABLE,
    can_transition,
    new_order_id,
    OrderItem,
    Order,
)
from kixstore.orders._repository import OrderRepository, OrderLookupError

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
    "OrderRepository",
    "OrderLookupError",
)

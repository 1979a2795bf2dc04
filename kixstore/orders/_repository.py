"""
Orders repository over the `orders` collection.

Reads that gate a page (fetch, ownership) return errors; writes after
creation are compare-and-set so concurrent writers cannot both win.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from kungfu import Result, Ok, Error
from pydantic import ValidationError as PydanticValidationError

from kixstore._logging import get_logger
from kixstore.errors import (
    NotFoundError,
    PermissionDeniedError,
    TransientIOError,
    ValidationError,
)
from kixstore.orders._types import (
    PAYABLE,
    Order,
    OrderStatus,
    PaymentStatus,
    can_transition,
)
from kixstore.profiles import ProfileService
from kixstore.storage import ORDERS, DocumentStore, Query

log = get_logger("orders")

type OrderLookupError = NotFoundError | PermissionDeniedError | TransientIOError


class OrderRepository:
    def __init__(self, store: DocumentStore, profiles: ProfileService) -> None:
        self._store = store
        self._profiles = profiles

    def _decode(self, order_id: str, doc: dict[str, Any]) -> Order | None:
        try:
            return Order.from_doc(order_id, doc)
        except PydanticValidationError as exc:
            log.error("order_corrupt", order_id=order_id, error=str(exc))
            return None

    async def create(self, order: Order) -> Result[Order, TransientIOError]:
        """Write the snapshot once. An existing id is never overwritten."""
        match await self._store.create(ORDERS, order.order_id, order.to_doc()):
            case Ok(True):
                log.info(
                    "order_created",
                    order_id=order.order_id,
                    user_id=order.user_id,
                    items=order.item_count,
                    total=str(order.total),
                )
                return Ok(order)
            case Ok(_):
                return Error(TransientIOError(f"Order id already in use: {order.order_id}"))
            case Error(err):
                return Error(TransientIOError("Could not create order", err.cause))

    async def get(self, order_id: str) -> Result[Order, NotFoundError | TransientIOError]:
        match await self._store.get(ORDERS, order_id):
            case Ok(None):
                return Error(NotFoundError("Order", order_id))
            case Ok(doc):
                order = self._decode(order_id, doc)
                if order is None:
                    return Error(NotFoundError("Order", order_id))
                return Ok(order)
            case Error(err):
                return Error(TransientIOError("Could not load order", err.cause))

    async def get_for_user(self, order_id: str, user_id: str | None) -> Result[Order, OrderLookupError]:
        """Order by id, only for its owner. Checks run in that order."""
        match await self.get(order_id):
            case Ok(order):
                pass
            case Error(err):
                return Error(err)
        if user_id is None or order.user_id != user_id:
            log.warning("order_access_denied", order_id=order_id, user_id=user_id)
            return Error(PermissionDeniedError("You do not have access to this order"))
        return Ok(order)

    async def list_for_user(self, user_id: str) -> Result[list[Order], TransientIOError]:
        """Newest first."""
        match await self._store.query(ORDERS, Query().where("user_id", user_id)):
            case Ok(snapshots):
                orders = [o for s in snapshots if (o := self._decode(s.id, s.data)) is not None]
                orders.sort(key=lambda o: o.order_date, reverse=True)
                return Ok(orders)
            case Error(err):
                return Error(TransientIOError("Could not load orders", err.cause))

    async def find_by_checkout_key(self, checkout_key: str) -> Result[Order | None, TransientIOError]:
        match await self._store.query(ORDERS, Query().where("checkout_key", checkout_key).limit(1)):
            case Ok([]):
                return Ok(None)
            case Ok([snapshot, *_]):
                return Ok(self._decode(snapshot.id, snapshot.data))
            case Error(err):
                return Error(TransientIOError("Could not load order", err.cause))

    # ─── status ──────────────────────────────────────────────────────────────

    async def update_status(
        self,
        actor_id: str | None,
        order_id: str,
        target: OrderStatus,
    ) -> Result[Order, OrderLookupError | ValidationError]:
        """Admin-only fulfilment transition."""
        match await self._profiles.require_admin(actor_id):
            case Error(err):
                return Error(err)
            case Ok(_):
                pass

        match await self.get(order_id):
            case Ok(order):
                pass
            case Error(err):
                return Error(err)

        current = order.status
        if not can_transition(current, target):
            return Error(
                ValidationError(
                    f"Cannot move order from {current.value} to {target.value}",
                    {"status": f"{current.value} → {target.value} is not allowed"},
                )
            )

        match await self._store.compare_and_set(
            ORDERS,
            order_id,
            lambda doc: doc.get("status") == current.value,
            {"status": target.value},
        ):
            case Ok(True):
                log.info("order_status_changed", order_id=order_id, status=target.value, previous=current.value)
                return Ok(order.model_copy(update={"status": target}))
            case Ok(False):
                return Error(TransientIOError("Order changed meanwhile, reload and retry"))
            case Error(err):
                return Error(TransientIOError("Could not update order", err.cause))

    # ─── payment ─────────────────────────────────────────────────────────────

    async def mark_paid(
        self,
        order_id: str,
        *,
        method: str,
        reference: str,
        paid_at: datetime,
    ) -> Result[bool, TransientIOError]:
        """
        The single conditional write behind payment confirmation.

        Ok(True) only for the caller whose write moved pending/failed → paid.
        """
        payable = {status.value for status in PAYABLE}
        match await self._store.compare_and_set(
            ORDERS,
            order_id,
            lambda doc: doc.get("payment_status") in payable,
            {
                "payment_status": PaymentStatus.PAID.value,
                "payment_method": method,
                "payment_date": paid_at.isoformat(),
                "payment_reference": reference,
            },
        ):
            case Ok(won):
                return Ok(won)
            case Error(err):
                return Error(TransientIOError("Could not update order", err.cause))

    async def mark_failed(self, order_id: str) -> Result[bool, TransientIOError]:
        """pending → failed. Never touches a paid order."""
        match await self._store.compare_and_set(
            ORDERS,
            order_id,
            lambda doc: doc.get("payment_status") == PaymentStatus.PENDING.value,
            {"payment_status": PaymentStatus.FAILED.value},
        ):
            case Ok(changed):
                return Ok(changed)
            case Error(err):
                return Error(TransientIOError("Could not update order", err.cause))


__all__ = ("OrderRepository", "OrderLookupError")

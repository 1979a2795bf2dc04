"""
Payment confirmation: exactly one pending → paid transition per order.

    order exists ─→ owned by caller ─→ already paid? ─ yes → Ok, no side effects
                                              │
                                              no
                                              ↓
                              conditional write payment_status → paid
                                  │ won                  │ lost
                                  ↓                      ↓
                  clear cart, clear handoff, notify   re-read: paid → Ok
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol

from kungfu import Result, Ok, Error

from kixstore._logging import get_logger
from kixstore.cart import CartService
from kixstore.errors import (
    NotFoundError,
    PaymentDeclinedError,
    PermissionDeniedError,
    TransientIOError,
    ValidationError,
)
from kixstore.orders import Order, OrderRepository, PaymentStatus
from kixstore.payment._gateway import Card, PaymentGateway, validate_card
from kixstore.payment._handoff import clear_handoff
from kixstore.storage import LocalStorage

log = get_logger("payment")

type Clock = Callable[[], datetime]
type ConfirmError = NotFoundError | PermissionDeniedError | TransientIOError
type PayError = ConfirmError | ValidationError | PaymentDeclinedError


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ═══════════════════════════════════════════════════════════════════════════════
# Notifications
# ═══════════════════════════════════════════════════════════════════════════════


class OrderNotifier(Protocol):
    async def order_paid(self, order: Order) -> None: ...


class LogNotifier:
    """Default notifier: one structured log line per paid order."""

    async def order_paid(self, order: Order) -> None:
        log.info(
            "order_paid_notification",
            order_id=order.order_id,
            user_email=order.user_email,
            total=str(order.total),
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Confirmation
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Confirmation:
    """`newly_paid` is True only for the call that performed the transition."""

    order: Order
    newly_paid: bool


class PaymentConfirmationHandler:
    def __init__(
        self,
        orders: OrderRepository,
        cart: CartService,
        session: LocalStorage,
        notifier: OrderNotifier | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._orders = orders
        self._cart = cart
        self._session = session
        self._notifier = notifier if notifier is not None else LogNotifier()
        self._clock = clock

    async def confirm(
        self,
        order_id: str,
        user_id: str | None,
        reference: str,
        method: str = "card",
    ) -> Result[Confirmation, ConfirmError]:
        match await self._orders.get_for_user(order_id, user_id):
            case Ok(order):
                pass
            case Error(err):
                return Error(err)

        if order.is_paid:
            log.info("payment_already_confirmed", order_id=order_id)
            return Ok(Confirmation(order, newly_paid=False))

        paid_at = self._clock()
        match await self._orders.mark_paid(order_id, method=method, reference=reference, paid_at=paid_at):
            case Ok(True):
                pass
            case Ok(False):
                return await self._settled_elsewhere(order_id)
            case Error(err):
                return Error(err)

        paid = order.model_copy(
            update={
                "payment_status": PaymentStatus.PAID,
                "payment_method": method,
                "payment_date": paid_at,
                "payment_reference": reference,
            }
        )
        log.info("payment_confirmed", order_id=order_id, user_id=order.user_id, reference=reference)

        await self._cart.clear_for(order.user_id)
        clear_handoff(self._session)
        await self._notifier.order_paid(paid)
        return Ok(Confirmation(paid, newly_paid=True))

    async def _settled_elsewhere(self, order_id: str) -> Result[Confirmation, ConfirmError]:
        """Lost the conditional write: fine if someone else paid it."""
        match await self._orders.get(order_id):
            case Ok(current) if current.is_paid:
                log.info("payment_already_confirmed", order_id=order_id)
                return Ok(Confirmation(current, newly_paid=False))
            case Ok(current):
                return Error(
                    TransientIOError(f"Order could not be confirmed from {current.payment_status.value}")
                )
            case Error(err):
                return Error(err)


# ═══════════════════════════════════════════════════════════════════════════════
# Card payment
# ═══════════════════════════════════════════════════════════════════════════════


class PaymentProcessor:
    """
    Card form → gateway charge → confirmation.

    Declines mark the order failed and come back as PaymentDeclinedError
    with the gateway's reason. Nothing is retried here.

    Example:
        match await processor.pay(order_id, user_id, session_id, card):
            case Ok(confirmation): ...
            case Error(PaymentDeclinedError(reason=reason)): ...
    """

    def __init__(self, gateway: PaymentGateway, orders: OrderRepository, confirmations: PaymentConfirmationHandler) -> None:
        self._gateway = gateway
        self._orders = orders
        self._confirmations = confirmations

    async def pay(
        self,
        order_id: str,
        user_id: str | None,
        session_id: str,
        card: Card,
    ) -> Result[Confirmation, PayError]:
        match validate_card(card):
            case Error(err):
                return Error(err)
            case Ok(_):
                pass

        match await self._orders.get_for_user(order_id, user_id):
            case Ok(order) if order.is_paid:
                return Ok(Confirmation(order, newly_paid=False))
            case Ok(_):
                pass
            case Error(err):
                return Error(err)

        match await self._gateway.confirm_payment(session_id, card):
            case Ok(receipt):
                if receipt.order_id != order_id:
                    return Error(PermissionDeniedError("Payment session belongs to another order"))
                return await self._confirmations.confirm(order_id, user_id, receipt.reference, receipt.method)
            case Error(PaymentDeclinedError() as declined):
                match await self._orders.mark_failed(order_id):
                    case Error(err):
                        log.warning("payment_failure_not_recorded", order_id=order_id, error=err.message)
                    case Ok(_):
                        pass
                log.info("payment_declined", order_id=order_id, reason=declined.reason)
                return Error(declined)
            case Error(err):
                return Error(err)


__all__ = (
    "Clock",
    "ConfirmError",
    "PayError",
    "utc_now",
    "OrderNotifier",
    "LogNotifier",
    "Confirmation",
    "PaymentConfirmationHandler",
    "PaymentProcessor",
)

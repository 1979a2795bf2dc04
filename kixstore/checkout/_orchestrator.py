"""
Checkout orchestrator: one attempt from cart to payment handoff.

    IDLE ─→ ADDRESS_VALIDATED ─→ ORDER_PERSISTED ─→ AWAITING_PAYMENT ─┬→ PAYMENT_SUCCEEDED
                                                                      ├→ PAYMENT_FAILED
                                                                      └→ PAYMENT_CANCELLED

The order is written at most once per attempt key. Proceeding again from
ORDER_PERSISTED, PAYMENT_FAILED or PAYMENT_CANCELLED resumes that same
pending order. A fresh attempt (new key) writes a new order.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from kungfu import LazyCoroResult, Result, Ok, Error

from kixstore._logging import get_logger
from kixstore.address import ShippingAddress, validate_address
from kixstore.cart import CartLine, CartService
from kixstore.checkout._saga import run_chain, step, from_async
from kixstore.errors import (
    NotFoundError,
    PaymentDeclinedError,
    PermissionDeniedError,
    TransientIOError,
    ValidationError,
)
from kixstore.idempotency import (
    DocumentRecordStore,
    IdempotencyError,
    IdempotencyErrorKind,
    Policy,
    idempotent,
)
from kixstore.identity import IdentityResolver
from kixstore.orders import Order, OrderRepository
from kixstore.payment import (
    Card,
    Confirmation,
    PaymentGateway,
    PaymentProcessor,
    PaymentSession,
    PendingOrder,
    clear_handoff,
    stage_handoff,
)
from kixstore.pricing import DEFAULT_POLICY, PricingPolicy, Quote, price
from kixstore.profiles import ProfileService
from kixstore.promo import AppliedPromo, Clock, PromoRejection, PromoValidator, utc_now
from kixstore.storage import CHECKOUT_ATTEMPTS, DocumentStore, LocalStorage

log = get_logger("checkout")

ATTEMPT_TTL_HOURS = 24

type CheckoutError = (
    ValidationError
    | PermissionDeniedError
    | NotFoundError
    | TransientIOError
    | PromoRejection
)


class CheckoutStage(Enum):
    IDLE = "idle"
    ADDRESS_VALIDATED = "address_validated"
    ORDER_PERSISTED = "order_persisted"
    AWAITING_PAYMENT = "awaiting_payment"
    PAYMENT_SUCCEEDED = "payment_succeeded"
    PAYMENT_FAILED = "payment_failed"
    PAYMENT_CANCELLED = "payment_cancelled"


# Stages from which "proceed to payment" may run (again).
PROCEEDABLE = frozenset(
    {
        CheckoutStage.ADDRESS_VALIDATED,
        CheckoutStage.ORDER_PERSISTED,
        CheckoutStage.AWAITING_PAYMENT,
        CheckoutStage.PAYMENT_FAILED,
        CheckoutStage.PAYMENT_CANCELLED,
    }
)


def new_attempt_key() -> str:
    return f"chk_{uuid.uuid4().hex}"


@dataclass(frozen=True, slots=True)
class Handoff:
    """What the payment step receives: the order id, its total, the session."""

    order_id: str
    total: Decimal
    session: PaymentSession


@dataclass(slots=True)
class CheckoutAttempt:
    user_id: str
    user_email: str | None
    key: str = field(default_factory=new_attempt_key)
    stage: CheckoutStage = CheckoutStage.IDLE
    address: ShippingAddress | None = None
    promo: AppliedPromo | None = None
    order_id: str | None = None
    handoff: Handoff | None = None


@dataclass(frozen=True, slots=True)
class OrderDraft:
    """Input to the idempotent order write. Keyed by `attempt_key`."""

    attempt_key: str
    user_id: str
    user_email: str | None
    lines: tuple[CartLine, ...]
    address: ShippingAddress
    quote: Quote
    promo_code: str | None
    order_date: datetime


class CheckoutOrchestrator:
    """
    Example:
        match checkout.begin():
            case Ok(attempt): ...
        checkout.submit_address(attempt, form)
        await checkout.apply_promo(attempt, "SAVE20")
        match await checkout.proceed_to_payment(attempt):
            case Ok(handoff):
                await checkout.pay(attempt, card)
            case Error(err): ...
    """

    def __init__(
        self,
        identity: IdentityResolver,
        cart: CartService,
        promos: PromoValidator,
        orders: OrderRepository,
        profiles: ProfileService,
        gateway: PaymentGateway,
        processor: PaymentProcessor,
        session: LocalStorage,
        store: DocumentStore,
        policy: PricingPolicy = DEFAULT_POLICY,
        currency: str = "usd",
        clock: Clock = utc_now,
    ) -> None:
        self._identity = identity
        self._cart = cart
        self._promos = promos
        self._orders = orders
        self._profiles = profiles
        self._gateway = gateway
        self._processor = processor
        self._session = session
        self._policy = policy
        self._currency = currency
        self._clock = clock
        self._persist = (
            idempotent(self._place_order)
            .key(lambda draft: f"checkout:{draft.attempt_key}")
            .store(DocumentRecordStore(store, CHECKOUT_ATTEMPTS))
            .policy(Policy().with_ttl(hours=ATTEMPT_TTL_HOURS))
            .build()
        )

    @property
    def policy(self) -> PricingPolicy:
        return self._policy

    # ─── pricing ─────────────────────────────────────────────────────────────

    def estimate(self, promo: AppliedPromo | None = None) -> Quote:
        """Cart-page estimate; same policy as the order quote."""
        return price(self._cart.total(), promo.promo if promo else None, self._policy)

    def quote(self, attempt: CheckoutAttempt) -> Quote:
        return self.estimate(attempt.promo)

    # ─── attempt ─────────────────────────────────────────────────────────────

    def begin(self) -> Result[CheckoutAttempt, ValidationError | PermissionDeniedError]:
        identity = self._identity.current
        if not identity.is_authenticated or identity.id is None:
            return Error(PermissionDeniedError("Please sign in to check out"))
        if self._cart.item_count() == 0:
            return Error(ValidationError("Your cart is empty", {"cart": "Add an item before checking out"}))
        attempt = CheckoutAttempt(user_id=identity.id, user_email=identity.email)
        log.info("checkout_started", attempt=attempt.key, user_id=attempt.user_id)
        return Ok(attempt)

    def submit_address(
        self,
        attempt: CheckoutAttempt,
        form: Mapping[str, Any],
    ) -> Result[ShippingAddress, ValidationError]:
        """Every failing field is reported at once."""
        if attempt.order_id is not None:
            return Error(
                ValidationError("The order has already been placed", {"address": "Start a new checkout to change it"})
            )
        match validate_address(form):
            case Ok(address):
                attempt.address = address
                attempt.stage = CheckoutStage.ADDRESS_VALIDATED
                return Ok(address)
            case Error(err):
                attempt.address = None
                attempt.stage = CheckoutStage.IDLE
                log.debug("address_rejected", attempt=attempt.key, fields=sorted(err.fields))
                return Error(err)

    async def apply_promo(self, attempt: CheckoutAttempt, code: str) -> Result[AppliedPromo, PromoRejection]:
        match await self._promos.apply(code, self._cart.total()):
            case Ok(applied):
                attempt.promo = applied
                return Ok(applied)
            case Error(err):
                return Error(err)

    def remove_promo(self, attempt: CheckoutAttempt) -> None:
        attempt.promo = None

    # ─── proceed ─────────────────────────────────────────────────────────────

    def _check_owner(self, attempt: CheckoutAttempt) -> Result[None, PermissionDeniedError]:
        current = self._identity.current
        if not current.is_authenticated or current.id != attempt.user_id:
            return Error(PermissionDeniedError("Please sign in to check out"))
        return Ok(None)

    def _place_order(self, draft: OrderDraft) -> LazyCoroResult[str, TransientIOError]:
        async def run() -> Result[str, TransientIOError]:
            order = Order.snapshot(
                user_id=draft.user_id,
                user_email=draft.user_email,
                lines=draft.lines,
                address=draft.address,
                quote=draft.quote,
                promo_code=draft.promo_code,
                order_date=draft.order_date,
                checkout_key=draft.attempt_key,
            )
            match await self._orders.create(order):
                case Ok(created):
                    return Ok(created.order_id)
                case Error(err):
                    return Error(err)

        return LazyCoroResult(run)

    async def _draft(self, attempt: CheckoutAttempt) -> Result[OrderDraft, CheckoutError]:
        if attempt.address is None:
            return Error(ValidationError("Please enter your shipping address", {"address": "required"}))
        lines = self._cart.lines
        if not lines:
            return Error(ValidationError("Your cart is empty", {"cart": "Add an item before checking out"}))

        subtotal = self._cart.total()
        if attempt.promo is not None:
            # The cart may have changed since the code was applied.
            match await self._promos.apply(attempt.promo.code, subtotal):
                case Ok(applied):
                    attempt.promo = applied
                case Error(err):
                    attempt.promo = None
                    return Error(err)

        return Ok(
            OrderDraft(
                attempt_key=attempt.key,
                user_id=attempt.user_id,
                user_email=attempt.user_email,
                lines=lines,
                address=attempt.address,
                quote=price(subtotal, attempt.promo.promo if attempt.promo else None, self._policy),
                promo_code=attempt.promo.code if attempt.promo else None,
                order_date=self._clock(),
            )
        )

    async def _persist_order(self, attempt: CheckoutAttempt) -> Result[Order, CheckoutError]:
        if attempt.order_id is None:
            match await self._draft(attempt):
                case Ok(draft):
                    pass
                case Error(err):
                    return Error(err)

            match await self._persist.run(draft):
                case Ok(outcome):
                    attempt.order_id = outcome.value
                    if outcome.from_cache:
                        log.info("checkout_resumed", attempt=attempt.key, order_id=outcome.value)
                    else:
                        await self._save_address(attempt.user_id, draft.address)
                case Error(IdempotencyError(kind=IdempotencyErrorKind.EXECUTION, original_error=TransientIOError() as err)):
                    return Error(err)
                case Error(err):
                    log.error("order_persist_failed", attempt=attempt.key, kind=err.kind.value, error=err.message)
                    return Error(TransientIOError("Could not place your order. Please try again."))

            attempt.stage = CheckoutStage.ORDER_PERSISTED

        match await self._orders.get(attempt.order_id):
            case Ok(order):
                return Ok(order)
            case Error(err):
                return Error(err)

    async def _save_address(self, user_id: str, address: ShippingAddress) -> None:
        match await self._profiles.save_address(user_id, address.to_doc()):
            case Error(err):
                log.warning("address_save_failed", user_id=user_id, error=err.message)
            case Ok(_):
                pass

    async def proceed_to_payment(self, attempt: CheckoutAttempt) -> Result[Handoff, CheckoutError]:
        """
        Persist the order (once) and hand it to the gateway.

        A gateway failure removes the staged handoff and leaves the order
        pending, so proceeding again retries the handoff alone.
        """
        match self._check_owner(attempt):
            case Error(err):
                return Error(err)
            case Ok(_):
                pass
        if attempt.stage not in PROCEEDABLE:
            if attempt.stage is CheckoutStage.PAYMENT_SUCCEEDED:
                return Error(ValidationError("This order has already been paid", {}))
            return Error(ValidationError("Please enter your shipping address", {"address": "required"}))

        match await self._persist_order(attempt):
            case Ok(order):
                pass
            case Error(err):
                return Error(err)

        if order.is_paid:
            attempt.stage = CheckoutStage.PAYMENT_SUCCEEDED
            return Error(ValidationError("This order has already been paid", {}))

        pending = PendingOrder(
            order_id=order.order_id,
            total=order.total,
            items=tuple(item.model_dump(mode="json") for item in order.items),
            customer_email=order.user_email,
        )

        async def stage() -> PendingOrder:
            stage_handoff(self._session, pending)
            return pending

        async def unstage(_: PendingOrder) -> None:
            clear_handoff(self._session)

        handoff = from_async(
            stage,
            on_error=lambda exc: TransientIOError("Could not prepare payment", exc),
            compensate=unstage,
        ).then(
            lambda staged: step(
                LazyCoroResult(
                    lambda: self._gateway.initialize_session(staged.order_id, staged.total, self._currency)
                )
            )
        )

        match await run_chain(handoff):
            case Ok(result):
                attempt.handoff = Handoff(order.order_id, order.total, result.value)
                attempt.stage = CheckoutStage.AWAITING_PAYMENT
                log.info("checkout_handed_off", attempt=attempt.key, order_id=order.order_id)
                return Ok(attempt.handoff)
            case Error(failure):
                attempt.handoff = None
                attempt.stage = CheckoutStage.ORDER_PERSISTED
                log.warning(
                    "checkout_handoff_failed",
                    attempt=attempt.key,
                    order_id=order.order_id,
                    step=failure.step_failed,
                    rolled_back=failure.rollback_complete,
                )
                return Error(failure.error)

    # ─── payment ─────────────────────────────────────────────────────────────

    async def pay(
        self,
        attempt: CheckoutAttempt,
        card: Card,
    ) -> Result[Confirmation, CheckoutError | PaymentDeclinedError]:
        if attempt.stage is not CheckoutStage.AWAITING_PAYMENT or attempt.handoff is None:
            return Error(ValidationError("Proceed to payment first", {}))

        handoff = attempt.handoff
        match await self._processor.pay(handoff.order_id, attempt.user_id, handoff.session.session_id, card):
            case Ok(confirmation):
                attempt.stage = CheckoutStage.PAYMENT_SUCCEEDED
                return Ok(confirmation)
            case Error(PaymentDeclinedError() as declined):
                attempt.stage = CheckoutStage.PAYMENT_FAILED
                attempt.handoff = None
                clear_handoff(self._session)
                return Error(declined)
            case Error(err):
                # Card form errors leave the attempt waiting for another try.
                return Error(err)

    def cancel(self, attempt: CheckoutAttempt) -> None:
        """Back out of the payment step. The order stays pending for a retry."""
        if attempt.stage is CheckoutStage.AWAITING_PAYMENT:
            attempt.stage = CheckoutStage.PAYMENT_CANCELLED
            attempt.handoff = None
            log.info("checkout_cancelled", attempt=attempt.key, order_id=attempt.order_id)


__all__ = (
    "ATTEMPT_TTL_HOURS",
    "CheckoutError",
    "CheckoutStage",
    "PROCEEDABLE",
    "new_attempt_key",
    "Handoff",
    "CheckoutAttempt",
    "OrderDraft",
    "CheckoutOrchestrator",
)

"""
Payment gateway collaborator.

The storefront hands an order id and total to the gateway, and later
confirms the session with a card. SandboxGateway answers the gateway's
published test cards deterministically:

    4242 4242 4242 4242   succeeds
    4000 0000 0000 0002   declined
    4000 0025 0000 3155   succeeds after a 3-D Secure challenge
"""

from __future__ import annotations

import re
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Protocol

from kungfu import Result, Ok, Error

from kixstore._logging import get_logger
from kixstore._money import to_minor_units
from kixstore.errors import NotFoundError, PaymentDeclinedError, TransientIOError, ValidationError

log = get_logger("payment")

TEST_CARD_SUCCESS = "4242424242424242"
TEST_CARD_DECLINE = "4000000000000002"
TEST_CARD_REQUIRES_AUTH = "4000002500003155"

DECLINE_MESSAGE = "Your card was declined. Please try a different card."
AUTHENTICATION_FAILED_MESSAGE = "Card authentication failed. Please try again."

EXPIRY_RE = re.compile(r"^\d{2}/\d{2}$")


# ═══════════════════════════════════════════════════════════════════════════════
# Card input
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Card:
    number: str
    expiry: str
    cvc: str

    @property
    def digits(self) -> str:
        return re.sub(r"\s+", "", self.number)

    @property
    def last4(self) -> str:
        return self.digits[-4:]


def validate_card(card: Card) -> Result[Card, ValidationError]:
    """
    Format checks before anything reaches the gateway. Every failing field
    is reported; `message` is the first one.
    """
    fields: dict[str, str] = {}
    digits = card.digits
    if len(digits) != 16 or not digits.isdigit():
        fields["number"] = "Please enter a valid 16-digit card number"
    if not EXPIRY_RE.match(card.expiry.strip()):
        fields["expiry"] = "Please enter a valid expiry date (MM/YY)"
    cvc = card.cvc.strip()
    if len(cvc) < 3 or not cvc.isdigit():
        fields["cvc"] = "Please enter a valid CVC"

    if fields:
        return Error(ValidationError(next(iter(fields.values())), fields))
    return Ok(card)


# ═══════════════════════════════════════════════════════════════════════════════
# Gateway protocol
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class PaymentSession:
    session_id: str
    order_id: str
    amount: Decimal
    currency: str

    @property
    def amount_minor(self) -> int:
        return to_minor_units(self.amount)


class ChargeOutcome(Enum):
    SUCCEEDED = "succeeded"
    AUTHENTICATED = "authenticated"  # succeeded after a 3-D Secure challenge


@dataclass(frozen=True, slots=True)
class PaymentReceipt:
    """Proof of a successful charge. `reference` is the confirmation token."""

    session_id: str
    order_id: str
    reference: str
    method: str
    outcome: ChargeOutcome


type ChargeError = PaymentDeclinedError | NotFoundError | TransientIOError


class PaymentGateway(Protocol):
    async def initialize_session(
        self,
        order_id: str,
        amount: Decimal,
        currency: str,
    ) -> Result[PaymentSession, TransientIOError]: ...

    async def confirm_payment(self, session_id: str, card: Card) -> Result[PaymentReceipt, ChargeError]: ...


# ═══════════════════════════════════════════════════════════════════════════════
# Sandbox
# ═══════════════════════════════════════════════════════════════════════════════

type Challenge = Callable[[PaymentSession], Awaitable[bool]]


async def approve_challenge(session: PaymentSession) -> bool:
    return True


class SandboxGateway:
    """
    In-process gateway for tests and demos. Card numbers other than the
    decline cards succeed.

    Example:
        gateway = SandboxGateway()
        match await gateway.initialize_session("ord_1", Decimal("108"), "usd"):
            case Ok(session):
                await gateway.confirm_payment(session.session_id, Card(TEST_CARD_SUCCESS, "12/34", "123"))
    """

    def __init__(self, challenge: Challenge = approve_challenge) -> None:
        self._challenge = challenge
        self._sessions: dict[str, PaymentSession] = {}
        self._charged: dict[str, PaymentReceipt] = {}

    @property
    def sessions(self) -> dict[str, PaymentSession]:
        return dict(self._sessions)

    async def initialize_session(
        self,
        order_id: str,
        amount: Decimal,
        currency: str,
    ) -> Result[PaymentSession, TransientIOError]:
        if amount < 0:
            return Error(TransientIOError(f"Invalid amount for {order_id}"))
        session = PaymentSession(
            session_id=f"cs_test_{uuid.uuid4().hex[:24]}",
            order_id=order_id,
            amount=amount,
            currency=currency,
        )
        self._sessions[session.session_id] = session
        log.info("payment_session_created", session_id=session.session_id, order_id=order_id, amount=session.amount_minor)
        return Ok(session)

    async def confirm_payment(self, session_id: str, card: Card) -> Result[PaymentReceipt, ChargeError]:
        session = self._sessions.get(session_id)
        if session is None:
            return Error(NotFoundError("Payment session", session_id))
        if (receipt := self._charged.get(session_id)) is not None:
            return Ok(receipt)

        match card.digits:
            case "4000000000000002":
                log.info("payment_declined", session_id=session_id, last4=card.last4)
                return Error(PaymentDeclinedError(DECLINE_MESSAGE))
            case "4000002500003155":
                if not await self._challenge(session):
                    log.info("payment_authentication_failed", session_id=session_id)
                    return Error(PaymentDeclinedError(AUTHENTICATION_FAILED_MESSAGE))
                outcome = ChargeOutcome.AUTHENTICATED
            case _:
                outcome = ChargeOutcome.SUCCEEDED

        receipt = PaymentReceipt(
            session_id=session_id,
            order_id=session.order_id,
            reference=f"pi_test_{uuid.uuid4().hex[:24]}",
            method="card",
            outcome=outcome,
        )
        self._charged[session_id] = receipt
        log.info("payment_charged", session_id=session_id, order_id=session.order_id, outcome=outcome.value)
        return Ok(receipt)


__all__ = (
    "TEST_CARD_SUCCESS",
    "TEST_CARD_DECLINE",
    "TEST_CARD_REQUIRES_AUTH",
    "DECLINE_MESSAGE",
    "AUTHENTICATION_FAILED_MESSAGE",
    "Card",
    "validate_card",
    "PaymentSession",
    "ChargeOutcome",
    "PaymentReceipt",
    "ChargeError",
    "PaymentGateway",
    "Challenge",
    "approve_challenge",
    "SandboxGateway",
)

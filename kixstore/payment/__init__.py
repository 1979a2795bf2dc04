"""
Payment: gateway collaborator, checkout handoff and confirmation.

    processor = PaymentProcessor(gateway, orders, confirmations)
    match await processor.pay(order_id, user_id, session_id, card):
        case Ok(confirmation): ...
        case Error(err): ...
"""

from kixstore.payment._gateway import (
    TEST_CARD_SUCCESS,
    TEST_CARD_DECLINE,
    TEST_CARD_REQUIRES_AUTH,
    DECLINE_MESSAGE,
    AUTHENTICATION_FAILED_MESSAGE,
    Card,
    validate_card,
    PaymentSession,
    ChargeOutcome,
    PaymentReceipt,
    ChargeError,
    PaymentGateway,
    Challenge,
    approve_challenge,
    SandboxGateway,
)
from kixstore.payment._handoff import PendingOrder, stage_handoff, read_handoff, clear_handoff
from kixstore.payment._confirm import (
    ConfirmError,
    PayError,
    OrderNotifier,
    LogNotifier,
    Confirmation,
    PaymentConfirmationHandler,
    PaymentProcessor,
)

__all__ = (
    # Gateway
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
    # Handoff
    "PendingOrder",
    "stage_handoff",
    "read_handoff",
    "clear_handoff",
    # Confirmation
    "ConfirmError",
    "PayError",
    "OrderNotifier",
    "LogNotifier",
    "Confirmation",
    "PaymentConfirmationHandler",
    "PaymentProcessor",
)

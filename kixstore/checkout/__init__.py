"""
Checkout: attempt state machine, idempotent order write, payment handoff.

    match checkout.begin():
        case Ok(attempt):
            checkout.submit_address(attempt, form)
            handoff = await checkout.proceed_to_payment(attempt)
"""

from kixstore.checkout._saga import (
    Compensator,
    SagaStep,
    Then,
    SagaResult,
    SagaError,
    step,
    from_async,
    run,
    run_chain,
)
from kixstore.checkout._orchestrator import (
    ATTEMPT_TTL_HOURS,
    CheckoutError,
    CheckoutStage,
    PROCEEDABLE,
    new_attempt_key,
    Handoff,
    CheckoutAttempt,
    OrderDraft,
    CheckoutOrchestrator,
)

__all__ = (
    # Saga
    "Compensator",
    "SagaStep",
    "Then",
    "SagaResult",
    "SagaError",
    "step",
    "from_async",
    "run",
    "run_chain",
    # Orchestrator
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

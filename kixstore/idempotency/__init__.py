"""
Idempotency: run an operation at most once per key.

    from kixstore import idempotency as I

    executor = (
        I.idempotent(place_order)
        .key(lambda attempt: f"checkout:{attempt.id}")
        .store(I.DocumentRecordStore(store, CHECKOUT_ATTEMPTS))
        .policy(I.Policy().with_ttl(hours=24))
        .build()
    )
    result = await executor.run(attempt)
"""

from kixstore.idempotency._types import (
    RecordState,
    IdempotencyRecord,
    IdempotencyResult,
    IdempotencyErrorKind,
    IdempotencyError,
)
from kixstore.idempotency._policy import OnPending, WAIT, FAIL, Policy
from kixstore.idempotency._store import Store, StoreAny, MemoryStore, DocumentRecordStore
from kixstore.idempotency._run import Outcome, run_idempotent
from kixstore.idempotency._builder import KeyFn, Idempotent, IdempotentExecutor, idempotent

__all__ = (
    # Types
    "RecordState",
    "IdempotencyRecord",
    "IdempotencyResult",
    "IdempotencyErrorKind",
    "IdempotencyError",
    # Policy
    "OnPending",
    "WAIT",
    "FAIL",
    "Policy",
    # Store
    "Store",
    "StoreAny",
    "MemoryStore",
    "DocumentRecordStore",
    # Run
    "Outcome",
    "run_idempotent",
    # Builder
    "KeyFn",
    "Idempotent",
    "IdempotentExecutor",
    "idempotent",
)

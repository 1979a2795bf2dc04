"""
Idempotent execution.

    fetch record ─┬─ COMPLETED → cached value
                  ├─ FAILED    → cached failure
                  ├─ PENDING   → WAIT: poll until settled / FAIL: conflict
                  └─ none      → claim key → run → record outcome
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

from kungfu import Result, Ok, Error, LazyCoroResult

from kixstore._logging import get_logger
from kixstore.idempotency._policy import OnPending, Policy
from kixstore.idempotency._store import StoreAny
from kixstore.idempotency._types import (
    IdempotencyError,
    IdempotencyErrorKind,
    IdempotencyRecord,
    IdempotencyResult,
    RecordState,
)
from kixstore.storage import StoreError

log = get_logger("idempotency")

type Outcome[T, E] = Result[IdempotencyResult[T], IdempotencyError[E]]


def _store_error[T, E](err: StoreError) -> Outcome[T, E]:
    return Error(IdempotencyError(IdempotencyErrorKind.STORE_ERROR, err.message))


def _from_record[T, E](record: IdempotencyRecord[Any]) -> Outcome[T, E] | None:
    """Settled record → its outcome; None while still pending."""
    match record.state:
        case RecordState.COMPLETED:
            return Ok(IdempotencyResult(value=record.value, from_cache=True, key=record.key))
        case RecordState.FAILED:
            return Error(
                IdempotencyError(
                    IdempotencyErrorKind.EXECUTION,
                    "Cached failure",
                    original_error=record.error,
                )
            )
        case RecordState.PENDING:
            return None


async def _wait_for[T, E](key: str, store: StoreAny, policy: Policy) -> Outcome[T, E]:
    deadline = asyncio.get_running_loop().time() + policy.pending_wait_timeout.total_seconds()
    interval = policy.poll_interval.total_seconds()

    while asyncio.get_running_loop().time() < deadline:
        await asyncio.sleep(interval)
        match await store.get(key):
            case Error(err):
                return _store_error(err)
            case Ok(None):
                return Error(
                    IdempotencyError(IdempotencyErrorKind.CONFLICT, "Pending run released the key")
                )
            case Ok(record):
                settled = _from_record(record)
                if settled is not None:
                    return settled

    return Error(
        IdempotencyError(IdempotencyErrorKind.TIMEOUT, "Timeout waiting for pending operation")
    )


async def _execute[K, T, E](
    key: str,
    input_value: K,
    operation: Callable[[K], LazyCoroResult[T, E]],
    store: StoreAny,
    policy: Policy,
) -> Outcome[T, E]:
    try:
        result = await operation(input_value)
    except Exception as e:
        await store.delete(key)
        log.error("idempotent_operation_raised", key=key, error=str(e))
        return Error(IdempotencyError(IdempotencyErrorKind.EXECUTION, str(e)))

    match result:
        case Ok(value):
            match await store.set_completed(key, value, policy.result_ttl):
                case Error(err):
                    return _store_error(err)
                case Ok(_):
                    return Ok(IdempotencyResult(value=value, from_cache=False, key=key))
        case Error(err):
            if policy.persist_failed:
                await store.set_failed(key, str(err), policy.result_ttl)
            else:
                await store.delete(key)
            return Error(
                IdempotencyError(
                    IdempotencyErrorKind.EXECUTION,
                    "Operation returned Error",
                    original_error=err,
                )
            )


async def run_idempotent[K, T, E](
    key: str,
    input_value: K,
    operation: Callable[[K], LazyCoroResult[T, E]],
    store: StoreAny,
    policy: Policy,
) -> Outcome[T, E]:
    """Run `operation(input_value)` at most once per live `key`."""
    match await store.get(key):
        case Error(err):
            return _store_error(err)
        case Ok(None):
            pass
        case Ok(record):
            settled = _from_record(record)
            if settled is not None:
                log.debug("idempotent_replay", key=key, state=record.state.value)
                return settled
            if policy.conflict_strategy is OnPending.FAIL:
                return Error(
                    IdempotencyError(IdempotencyErrorKind.CONFLICT, f"Pending conflict: {key}")
                )
            return await _wait_for(key, store, policy)

    match await store.set_pending(key, policy.result_ttl):
        case Error(err):
            return _store_error(err)
        case Ok(False):
            # Lost the race to claim: behave as if we had seen it pending.
            if policy.conflict_strategy is OnPending.FAIL:
                return Error(IdempotencyError(IdempotencyErrorKind.CONFLICT, "Race conflict"))
            return await _wait_for(key, store, policy)
        case Ok(_):
            return await _execute(key, input_value, operation, store, policy)


__all__ = ("Outcome", "run_idempotent")

"""
Idempotency builder: fluent API over run_idempotent().
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, replace

from kungfu import LazyCoroResult, Ok

from kixstore.idempotency._policy import Policy
from kixstore.idempotency._run import Outcome, run_idempotent
from kixstore.idempotency._store import MemoryStore, StoreAny
from kixstore.idempotency._types import IdempotencyError, IdempotencyResult

type KeyFn[K] = Callable[[K], str]


@dataclass(slots=True, frozen=True)
class Idempotent[K, T, E]:
    _operation: Callable[[K], LazyCoroResult[T, E]]
    _key_fn: KeyFn[K] | None = None
    _store: StoreAny | None = None
    _policy: Policy = Policy()

    def key(self, fn: KeyFn[K]) -> Idempotent[K, T, E]:
        return replace(self, _key_fn=fn)

    def store(self, s: StoreAny) -> Idempotent[K, T, E]:
        return replace(self, _store=s)

    def policy(self, p: Policy) -> Idempotent[K, T, E]:
        return replace(self, _policy=p)

    def build(self) -> IdempotentExecutor[K, T, E]:
        if self._key_fn is None:
            raise ValueError("key() is required")
        return IdempotentExecutor(
            operation=self._operation,
            key_fn=self._key_fn,
            store=self._store if self._store is not None else MemoryStore(),
            policy=self._policy,
        )


@dataclass(slots=True, frozen=True)
class IdempotentExecutor[K, T, E]:
    operation: Callable[[K], LazyCoroResult[T, E]]
    key_fn: KeyFn[K]
    store: StoreAny
    policy: Policy

    def run(self, input_val: K) -> LazyCoroResult[IdempotencyResult[T], IdempotencyError[E]]:
        """Lazy: nothing happens until awaited."""
        key = self.key_fn(input_val)

        async def execute() -> Outcome[T, E]:
            return await run_idempotent(key, input_val, self.operation, self.store, self.policy)

        return LazyCoroResult(execute)

    async def invalidate(self, input_val: K) -> bool:
        """Forget the record so the next run executes again."""
        match await self.store.delete(self.key_fn(input_val)):
            case Ok(deleted):
                return deleted
            case _:
                return False


def idempotent[K, T, E](
    operation: Callable[[K], LazyCoroResult[T, E]],
) -> Idempotent[K, T, E]:
    """
    Example:
        executor = (
            idempotent(place_order)
            .key(lambda attempt: f"checkout:{attempt.id}")
            .store(DocumentRecordStore(store, CHECKOUT_ATTEMPTS))
            .policy(Policy().with_ttl(hours=24))
            .build()
        )
        result = await executor.run(attempt)
    """
    return Idempotent(_operation=operation)


__all__ = ("KeyFn", "Idempotent", "IdempotentExecutor", "idempotent")

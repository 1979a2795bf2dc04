"""
Core types for kixstore.

Re-exports from kungfu/combinators + storefront-wide aliases.
"""

from __future__ import annotations

from collections.abc import Callable, Awaitable
from decimal import Decimal

# Re-export from kungfu
from kungfu import Result, Ok, Error, LazyCoroResult

# Re-export from combinators
from combinators.lift import catching_async

# ═══════════════════════════════════════════════════════════════════════════════
# Aliases
# ═══════════════════════════════════════════════════════════════════════════════

type Money = Decimal
"""Currency amount in major units (dollars)."""

type Lazy[T, E] = LazyCoroResult[T, E]
"""Lazy async computation that may fail."""

type Listener[T] = Callable[[T], None]
"""Synchronous change callback."""

# ═══════════════════════════════════════════════════════════════════════════════
# Lift helpers
# ═══════════════════════════════════════════════════════════════════════════════


def from_result[T, E](result: Result[T, E]) -> LazyCoroResult[T, E]:
    """Lift a ready Result into LazyCoroResult."""
    async def _run() -> Result[T, E]:
        return result
    return LazyCoroResult(_run)


def from_awaitable[T, E](
    awaitable_fn: Callable[[], Awaitable[T]],
    on_error: Callable[[Exception], E],
) -> LazyCoroResult[T, E]:
    """
    Create LazyCoroResult from async function.

    Alias for catching_async with clearer naming.
    """
    return catching_async(awaitable_fn, on_error=on_error)


# ═══════════════════════════════════════════════════════════════════════════════
# Subscription handle
# ═══════════════════════════════════════════════════════════════════════════════


class Subscription:
    """
    Handle returned by every subscribe(); cancel() detaches the listener.

    Note: cancel() is idempotent, so teardown code can call it blindly.
    """

    __slots__ = ("_detach", "_active")

    def __init__(self, detach: Callable[[], None]) -> None:
        self._detach = detach
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        if self._active:
            self._active = False
            self._detach()


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "Result",
    "Ok",
    "Error",
    "LazyCoroResult",
    "catching_async",
    "Money",
    "Lazy",
    "Listener",
    "from_result",
    "from_awaitable",
    "Subscription",
)

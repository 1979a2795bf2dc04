"""
Idempotency policy: behavior configuration.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import timedelta
from enum import Enum, auto


class OnPending(Enum):
    """
    What to do when a run arrives while another holds the key.

    WAIT: poll until the other run settles, then return its result.
    FAIL: return CONFLICT at once.
    """

    WAIT = auto()
    FAIL = auto()


WAIT = OnPending.WAIT
FAIL = OnPending.FAIL


@dataclass(frozen=True, slots=True)
class Policy:
    """
    Fluent builder pattern: chain methods to configure.

    Example:
        policy = (
            Policy()
            .with_ttl(hours=24)
            .with_on_pending(WAIT)
            .with_wait_timeout(seconds=10)
        )
    """

    result_ttl: timedelta | None = None
    conflict_strategy: OnPending = OnPending.WAIT
    pending_wait_timeout: timedelta = timedelta(seconds=30)
    poll_interval: timedelta = timedelta(milliseconds=50)
    # Failures are not kept by default, so a failed run can be retried.
    persist_failed: bool = False

    def with_ttl(
        self,
        *,
        seconds: float | None = None,
        minutes: float | None = None,
        hours: float | None = None,
    ) -> Policy:
        """After the TTL the operation may run again."""
        total = (seconds or 0) + (minutes or 0) * 60 + (hours or 0) * 3600
        return replace(self, result_ttl=timedelta(seconds=total) if total > 0 else None)

    def with_on_pending(self, strategy: OnPending) -> Policy:
        return replace(self, conflict_strategy=strategy)

    def with_wait_timeout(self, *, seconds: float) -> Policy:
        return replace(self, pending_wait_timeout=timedelta(seconds=seconds))

    def with_poll_interval(self, *, seconds: float) -> Policy:
        return replace(self, poll_interval=timedelta(seconds=seconds))

    def with_store_failed(self, store: bool = True) -> Policy:
        return replace(self, persist_failed=store)


__all__ = ("OnPending", "WAIT", "FAIL", "Policy")

"""
Idempotency types: records, results, errors.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum


class RecordState(Enum):
    """
    Lifecycle:
        PENDING → COMPLETED (success)
                → FAILED (error, only when the policy keeps failures)
                → (expired/deleted)
    """

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class IdempotencyRecord[T]:
    key: str
    state: RecordState
    value: T | None
    error: str | None
    created_at: datetime
    expires_at: datetime | None

    @property
    def is_expired(self) -> bool:
        if self.expires_at is None:
            return False
        return datetime.now(timezone.utc) > self.expires_at


@dataclass(frozen=True, slots=True)
class IdempotencyResult[T]:
    """
    Note: from_cache tells a replayed result from a fresh execution.
    """

    value: T
    from_cache: bool
    key: str


class IdempotencyErrorKind(Enum):
    CONFLICT = "conflict"  # another run holds the key (FAIL policy)
    TIMEOUT = "timeout"  # waited for a pending run too long
    STORE_ERROR = "store_error"  # record storage failed
    EXECUTION = "execution"  # the wrapped operation failed


@dataclass(frozen=True, slots=True)
class IdempotencyError[E]:
    """
    Note: original_error carries the wrapped operation's error on EXECUTION.
    """

    kind: IdempotencyErrorKind
    message: str
    original_error: E | None = None


__all__ = (
    "RecordState",
    "IdempotencyRecord",
    "IdempotencyResult",
    "IdempotencyErrorKind",
    "IdempotencyError",
)

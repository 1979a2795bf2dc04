"""
Error values returned inside `Error(...)`.

Note: Errors are plain frozen dataclasses, not exceptions. Operations return
Result[T, E] and callers match on them. Each kind maps to one way of surfacing
the problem to the shopper.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class ValidationError:
    """User-correctable input. `fields` maps field name → message."""

    message: str
    fields: dict[str, str] = field(default_factory=dict)

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True, slots=True)
class NotFoundError:
    """Missing order / product / promo."""

    entity: str
    id: str

    @property
    def message(self) -> str:
        return f"{self.entity} not found"

    def __str__(self) -> str:
        return f"{self.entity}:{self.id} not found"


@dataclass(frozen=True, slots=True)
class PermissionDeniedError:
    """Ownership or role mismatch. Never retried."""

    message: str

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True, slots=True)
class TransientIOError:
    """Store or network failure. Retried only by an explicit user action."""

    message: str
    cause: Exception | None = None

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True, slots=True)
class PaymentDeclinedError:
    """Gateway-reported decline, carrying the gateway's reason."""

    reason: str

    @property
    def message(self) -> str:
        return self.reason

    def __str__(self) -> str:
        return self.reason


type StorefrontError = (
    ValidationError
    | NotFoundError
    | PermissionDeniedError
    | TransientIOError
    | PaymentDeclinedError
)


__all__ = (
    "ValidationError",
    "NotFoundError",
    "PermissionDeniedError",
    "TransientIOError",
    "PaymentDeclinedError",
    "StorefrontError",
)

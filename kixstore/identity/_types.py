"""
Identity types: who is shopping, and how that changed.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto


class IdentityKind(Enum):
    ANONYMOUS = "anonymous"
    AUTHENTICATED = "authenticated"


@dataclass(frozen=True, slots=True)
class Identity:
    """
    Session identity. `id` is opaque and set only when authenticated.

    Note: email rides along so checkout can stamp it on the order without a
    second profile lookup.
    """

    kind: IdentityKind
    id: str | None = None
    email: str | None = None

    @staticmethod
    def anonymous() -> Identity:
        return ANONYMOUS

    @staticmethod
    def user(user_id: str, email: str | None = None) -> Identity:
        if not user_id:
            raise ValueError("authenticated identity needs a user id")
        return Identity(IdentityKind.AUTHENTICATED, user_id, email)

    @property
    def is_authenticated(self) -> bool:
        return self.kind is IdentityKind.AUTHENTICATED

    def same_user(self, other: Identity) -> bool:
        return self.is_authenticated and other.is_authenticated and self.id == other.id


ANONYMOUS = Identity(IdentityKind.ANONYMOUS)


# ═══════════════════════════════════════════════════════════════════════════════
# Transition: (previous, current) pair
# ═══════════════════════════════════════════════════════════════════════════════


class TransitionKind(Enum):
    """
    Exactly one applies to any auth event.

        ANON → ANON   STAY_ANONYMOUS  (cold start, no-op)
        ANON → USER   LOGIN           (login / signup)
        USER → ANON   LOGOUT
        USER → USER   REHYDRATE       (same user, or account switch)
    """

    STAY_ANONYMOUS = auto()
    LOGIN = auto()
    LOGOUT = auto()
    REHYDRATE = auto()


@dataclass(frozen=True, slots=True)
class Transition:
    previous: Identity
    current: Identity
    # True only for the first authentication this session has ever observed.
    first_authentication: bool = False

    @property
    def kind(self) -> TransitionKind:
        match (self.previous.is_authenticated, self.current.is_authenticated):
            case (False, False):
                return TransitionKind.STAY_ANONYMOUS
            case (False, True):
                return TransitionKind.LOGIN
            case (True, False):
                return TransitionKind.LOGOUT
            case _:
                return TransitionKind.REHYDRATE


__all__ = (
    "IdentityKind",
    "Identity",
    "ANONYMOUS",
    "TransitionKind",
    "Transition",
)

"""
Identity: session identity and transition channel.

    from kixstore import identity as ID

    resolver = ID.IdentityResolver()
    resolver.subscribe(handler)
    await resolver.sign_in("uid-1", "shopper@example.com")
"""

from kixstore.identity._types import (
    IdentityKind,
    Identity,
    ANONYMOUS,
    TransitionKind,
    Transition,
)
from kixstore.identity._resolver import IdentityResolver, TransitionHandler

__all__ = (
    "IdentityKind",
    "Identity",
    "ANONYMOUS",
    "TransitionKind",
    "Transition",
    "IdentityResolver",
    "TransitionHandler",
)

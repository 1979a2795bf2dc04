"""
Identity resolver: the session's single source of "who is shopping".

Auth events come in from the outside (sign-in, sign-out, restore); the
resolver classifies each one and publishes a Transition on its channel.
Cart and favorites subscribe instead of watching a UI lifecycle.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable

from kixstore._logging import get_logger
from kixstore._types import Subscription
from kixstore.identity._types import ANONYMOUS, Identity, Transition

log = get_logger("identity")

type TransitionHandler = Callable[[Transition], Awaitable[None]]


class IdentityResolver:
    """
    Tracks current identity and publishes transitions.

    Example:
        resolver = IdentityResolver()
        resolver.subscribe(cart.handle_transition)

        await resolver.start()                  # ANON → ANON, loads guest cart
        await resolver.sign_in("u1", "a@b.co")  # ANON → USER, merges once
        await resolver.sign_out()               # USER → ANON
    """

    def __init__(self) -> None:
        self._current: Identity = ANONYMOUS
        self._has_authenticated = False
        self._handlers: list[TransitionHandler] = []

    @property
    def current(self) -> Identity:
        return self._current

    @property
    def has_authenticated(self) -> bool:
        """Whether any authentication was observed since the process started."""
        return self._has_authenticated

    def subscribe(self, handler: TransitionHandler) -> Subscription:
        self._handlers.append(handler)

        def detach() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return Subscription(detach)

    async def start(self, restored: Identity | None = None) -> Transition:
        """
        First observation of the session.

        `restored` is a persisted sign-in the auth collaborator brought back;
        it counts as the first authentication event.
        """
        return await self._publish(restored or ANONYMOUS)

    async def sign_in(self, user_id: str, email: str | None = None) -> Transition:
        return await self._publish(Identity.user(user_id, email))

    async def sign_out(self) -> Transition:
        return await self._publish(ANONYMOUS)

    async def _publish(self, current: Identity) -> Transition:
        first = current.is_authenticated and not self._has_authenticated
        transition = Transition(self._current, current, first_authentication=first)

        self._current = current
        if current.is_authenticated:
            self._has_authenticated = True

        log.info(
            "identity_changed",
            kind=transition.kind.name,
            previous=transition.previous.id,
            current=current.id,
            first_authentication=first,
        )

        # Handlers run in subscription order; each sees the same transition.
        for handler in list(self._handlers):
            await handler(transition)
        return transition


__all__ = ("IdentityResolver", "TransitionHandler")

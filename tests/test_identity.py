"""Tests for the identity resolver and transition classification."""

import pytest

from kixstore.identity import ANONYMOUS, Identity, IdentityResolver, Transition, TransitionKind


class TestTransition:
    """Exactly one kind per (previous, current) pair."""

    def test_kinds(self):
        alice = Identity.user("alice")
        bob = Identity.user("bob")

        assert Transition(ANONYMOUS, ANONYMOUS).kind is TransitionKind.STAY_ANONYMOUS
        assert Transition(ANONYMOUS, alice).kind is TransitionKind.LOGIN
        assert Transition(alice, ANONYMOUS).kind is TransitionKind.LOGOUT
        assert Transition(alice, alice).kind is TransitionKind.REHYDRATE
        assert Transition(alice, bob).kind is TransitionKind.REHYDRATE

    def test_user_needs_id(self):
        with pytest.raises(ValueError):
            Identity.user("")

    def test_same_user(self):
        assert Identity.user("a").same_user(Identity.user("a", "a@x.io"))
        assert not Identity.user("a").same_user(Identity.user("b"))
        assert not ANONYMOUS.same_user(ANONYMOUS)


class TestIdentityResolver:
    """Tests for IdentityResolver publishing."""

    async def test_first_authentication_only_once(self):
        resolver = IdentityResolver()
        seen: list[Transition] = []

        async def record(transition: Transition) -> None:
            seen.append(transition)

        resolver.subscribe(record)

        await resolver.start()
        await resolver.sign_in("u1")
        await resolver.sign_out()
        await resolver.sign_in("u1")

        assert [t.kind for t in seen] == [
            TransitionKind.STAY_ANONYMOUS,
            TransitionKind.LOGIN,
            TransitionKind.LOGOUT,
            TransitionKind.LOGIN,
        ]
        assert [t.first_authentication for t in seen] == [False, True, False, False]
        assert resolver.has_authenticated

    async def test_restored_session_counts_as_first(self):
        resolver = IdentityResolver()

        transition = await resolver.start(Identity.user("u1", "u1@example.com"))

        assert transition.kind is TransitionKind.LOGIN
        assert transition.first_authentication
        assert resolver.current.email == "u1@example.com"

    async def test_cancelled_subscription_stops_delivery(self):
        resolver = IdentityResolver()
        calls: list[TransitionKind] = []

        async def record(transition: Transition) -> None:
            calls.append(transition.kind)

        subscription = resolver.subscribe(record)
        await resolver.start()
        subscription.cancel()
        subscription.cancel()
        await resolver.sign_in("u1")

        assert calls == [TransitionKind.STAY_ANONYMOUS]
        assert not subscription.active

    async def test_handlers_run_in_subscription_order(self):
        resolver = IdentityResolver()
        order: list[str] = []

        async def first(_: Transition) -> None:
            order.append("first")

        async def second(_: Transition) -> None:
            order.append("second")

        resolver.subscribe(first)
        resolver.subscribe(second)
        await resolver.sign_in("u1")

        assert order == ["first", "second"]

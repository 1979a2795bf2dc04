"""Tests for the gateway sandbox, payment confirmation and card payments."""

import asyncio
from decimal import Decimal

import pytest
from kungfu import Error, Ok

from kixstore.errors import NotFoundError, PaymentDeclinedError, PermissionDeniedError, ValidationError
from kixstore.orders import OrderRepository, PaymentStatus
from kixstore.payment import (
    AUTHENTICATION_FAILED_MESSAGE,
    DECLINE_MESSAGE,
    TEST_CARD_DECLINE,
    TEST_CARD_REQUIRES_AUTH,
    TEST_CARD_SUCCESS,
    Card,
    ChargeOutcome,
    PaymentConfirmationHandler,
    PaymentProcessor,
    PendingOrder,
    SandboxGateway,
    read_handoff,
    stage_handoff,
    validate_card,
)
from kixstore.storage import CARTS, PENDING_ORDER_DATA_KEY, PENDING_ORDER_ID_KEY


def card(number: str = TEST_CARD_SUCCESS) -> Card:
    return Card(number, "12/34", "123")


class RecordingNotifier:
    def __init__(self) -> None:
        self.paid: list[str] = []

    async def order_paid(self, order) -> None:
        self.paid.append(order.order_id)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def confirmations(orders, cart, session, notifier) -> PaymentConfirmationHandler:
    return PaymentConfirmationHandler(orders, cart, session, notifier)


@pytest.fixture
def gateway() -> SandboxGateway:
    return SandboxGateway()


@pytest.fixture
def processor(gateway, orders, confirmations) -> PaymentProcessor:
    return PaymentProcessor(gateway, orders, confirmations)


@pytest.fixture
async def placed(orders, make_order, cart, identity, product):
    """A pending order for u1, who is signed in with one cart line."""
    await identity.sign_in("u1", "u1@example.com")
    cart.add_item(product, 9, 2)
    order = make_order("u1")
    await orders.create(order)
    return order


class TestValidateCard:
    def test_valid_card_with_spaces(self):
        assert isinstance(validate_card(Card("4242 4242 4242 4242", "12/34", "123")), Ok)

    def test_every_field_reported(self):
        match validate_card(Card("4242", "1234", "1")):
            case Error(ValidationError(message=message, fields=fields)):
                assert message == "Please enter a valid 16-digit card number"
                assert set(fields) == {"number", "expiry", "cvc"}
            case other:
                pytest.fail(f"expected validation error, got {other}")

    def test_last4(self):
        assert card().last4 == "4242"


class TestSandboxGateway:
    async def test_session_amount_in_cents(self, gateway):
        session = (await gateway.initialize_session("ord_1", Decimal("53.20"), "usd")).unwrap()

        assert session.session_id.startswith("cs_test_")
        assert session.amount_minor == 5320
        assert gateway.sessions == {session.session_id: session}

    async def test_negative_amount_rejected(self, gateway):
        assert isinstance(await gateway.initialize_session("ord_1", Decimal("-1"), "usd"), Error)

    async def test_test_cards(self, gateway):
        ok_session = (await gateway.initialize_session("ord_1", Decimal("10"), "usd")).unwrap()
        declined_session = (await gateway.initialize_session("ord_2", Decimal("10"), "usd")).unwrap()
        auth_session = (await gateway.initialize_session("ord_3", Decimal("10"), "usd")).unwrap()

        receipt = (await gateway.confirm_payment(ok_session.session_id, card())).unwrap()
        declined = await gateway.confirm_payment(declined_session.session_id, card(TEST_CARD_DECLINE))
        authenticated = (await gateway.confirm_payment(auth_session.session_id, card(TEST_CARD_REQUIRES_AUTH))).unwrap()

        assert receipt.reference.startswith("pi_test_")
        assert receipt.outcome is ChargeOutcome.SUCCEEDED
        assert declined == Error(PaymentDeclinedError(DECLINE_MESSAGE))
        assert authenticated.outcome is ChargeOutcome.AUTHENTICATED

    async def test_failed_challenge_declines(self):
        async def refuse(_session):
            return False

        gateway = SandboxGateway(challenge=refuse)
        session = (await gateway.initialize_session("ord_1", Decimal("10"), "usd")).unwrap()

        result = await gateway.confirm_payment(session.session_id, card(TEST_CARD_REQUIRES_AUTH))

        assert result == Error(PaymentDeclinedError(AUTHENTICATION_FAILED_MESSAGE))

    async def test_repeat_charge_returns_same_receipt(self, gateway):
        session = (await gateway.initialize_session("ord_1", Decimal("10"), "usd")).unwrap()

        first = await gateway.confirm_payment(session.session_id, card())
        second = await gateway.confirm_payment(session.session_id, card())

        assert first == second

    async def test_unknown_session(self, gateway):
        assert await gateway.confirm_payment("cs_nope", card()) == Error(NotFoundError("Payment session", "cs_nope"))


class TestHandoff:
    def test_stage_read_clear(self, session):
        pending = PendingOrder("ord_1", Decimal("108.00"), ({"product_id": "p1", "quantity": 2},), "a@b.co")

        stage_handoff(session, pending)

        assert session.read(PENDING_ORDER_ID_KEY) == "ord_1"
        assert read_handoff(session) == pending

    def test_corrupt_handoff_reads_as_none(self, session):
        session.write(PENDING_ORDER_DATA_KEY, "{}")

        assert read_handoff(session) is None


class TestPaymentConfirmationHandler:
    """Exactly one pending → paid transition per order."""

    async def test_confirming_twice_pays_once(self, confirmations, placed, orders, cart, store, notifier):
        first = (await confirmations.confirm(placed.order_id, "u1", "pi_1")).unwrap()
        second = (await confirmations.confirm(placed.order_id, "u1", "pi_1")).unwrap()
        await cart.flush()

        assert (first.newly_paid, second.newly_paid) == (True, False)
        assert second.order.is_paid
        assert notifier.paid == [placed.order_id]
        assert cart.item_count() == 0
        assert (await store.get(CARTS, "u1")).unwrap()["items"] == []
        stored = (await orders.get(placed.order_id)).unwrap()
        assert stored.payment_status is PaymentStatus.PAID
        assert stored.payment_reference == "pi_1"

    async def test_concurrent_confirmations(self, confirmations, placed, notifier):
        results = await asyncio.gather(
            *[confirmations.confirm(placed.order_id, "u1", "pi_1") for _ in range(3)]
        )

        assert [r.unwrap().newly_paid for r in results].count(True) == 1
        assert notifier.paid == [placed.order_id]

    async def test_winner_clears_handoff(self, confirmations, placed, session):
        stage_handoff(session, PendingOrder(placed.order_id, placed.total, (), None))

        await confirmations.confirm(placed.order_id, "u1", "pi_1")

        assert read_handoff(session) is None
        assert session.read(PENDING_ORDER_ID_KEY) is None

    async def test_other_user_cannot_confirm(self, confirmations, placed, notifier):
        match await confirmations.confirm(placed.order_id, "u2", "pi_1"):
            case Error(PermissionDeniedError()):
                pass
            case other:
                pytest.fail(f"expected permission error, got {other}")
        assert notifier.paid == []

    async def test_missing_order(self, confirmations):
        assert await confirmations.confirm("ord_x", "u1", "pi_1") == Error(NotFoundError("Order", "ord_x"))

    async def test_losing_the_write_reports_success_without_side_effects(
        self, store, profiles, cart, session, notifier, placed
    ):
        class StaleOrders(OrderRepository):
            """Hands out the order as it was before another tab paid it."""

            async def get_for_user(self, order_id, user_id):
                return Ok(placed)

        orders = StaleOrders(store, profiles)
        await orders.mark_paid(placed.order_id, method="card", reference="pi_other", paid_at=placed.order_date)

        result = await PaymentConfirmationHandler(orders, cart, session, notifier).confirm(
            placed.order_id, "u1", "pi_1"
        )

        confirmation = result.unwrap()
        assert confirmation.newly_paid is False
        assert confirmation.order.payment_reference == "pi_other"
        assert notifier.paid == []
        assert cart.item_count() == 2


class TestPaymentProcessor:
    async def _session(self, gateway, order):
        return (await gateway.initialize_session(order.order_id, order.total, "usd")).unwrap()

    async def test_successful_payment(self, processor, gateway, placed, orders, notifier):
        session = await self._session(gateway, placed)

        confirmation = (await processor.pay(placed.order_id, "u1", session.session_id, card())).unwrap()

        assert confirmation.newly_paid
        assert confirmation.order.payment_reference.startswith("pi_test_")
        assert (await orders.get(placed.order_id)).unwrap().is_paid
        assert notifier.paid == [placed.order_id]

    async def test_decline_marks_failed_and_allows_retry(self, processor, gateway, placed, orders, cart):
        session = await self._session(gateway, placed)

        declined = await processor.pay(placed.order_id, "u1", session.session_id, card(TEST_CARD_DECLINE))

        assert declined == Error(PaymentDeclinedError(DECLINE_MESSAGE))
        assert (await orders.get(placed.order_id)).unwrap().payment_status is PaymentStatus.FAILED
        assert cart.item_count() == 2

        retried = await processor.pay(placed.order_id, "u1", session.session_id, card())

        assert retried.unwrap().newly_paid
        assert (await orders.get(placed.order_id)).unwrap().payment_status is PaymentStatus.PAID

    async def test_invalid_card_never_reaches_gateway(self, processor, placed):
        match await processor.pay(placed.order_id, "u1", "cs_unused", Card("1234", "12/34", "123")):
            case Error(ValidationError(fields=fields)):
                assert list(fields) == ["number"]
            case other:
                pytest.fail(f"expected validation error, got {other}")

    async def test_session_for_another_order(self, processor, gateway, placed):
        other = await gateway.initialize_session("ord_other", Decimal("5"), "usd")

        result = await processor.pay(placed.order_id, "u1", other.unwrap().session_id, card())

        match result:
            case Error(PermissionDeniedError()):
                pass
            case _:
                pytest.fail(f"expected permission error, got {result}")

    async def test_paid_order_short_circuits(self, processor, gateway, placed, confirmations, notifier):
        await confirmations.confirm(placed.order_id, "u1", "pi_1")

        result = await processor.pay(placed.order_id, "u1", "cs_unused", card())

        assert result.unwrap().newly_paid is False
        assert notifier.paid == [placed.order_id]

    async def test_stranger_is_denied(self, processor, gateway, placed):
        session = await self._session(gateway, placed)

        match await processor.pay(placed.order_id, "u2", session.session_id, card()):
            case Error(PermissionDeniedError()):
                pass
            case other:
                pytest.fail(f"expected permission error, got {other}")
        assert gateway.sessions[session.session_id].order_id == placed.order_id

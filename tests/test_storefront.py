"""End-to-end tests through the composition root."""

from decimal import Decimal

import pytest
from kungfu import Error

from kixstore import Settings, Storefront
from kixstore.checkout import CheckoutStage
from kixstore.identity import Identity
from kixstore.orders import PaymentStatus
from kixstore.payment import TEST_CARD_SUCCESS, Card
from kixstore.errors import TransientIOError
from kixstore.storage import CARTS, MemoryDocumentStore, UnavailableDocumentStore


@pytest.fixture
async def shop():
    async with await Storefront.open(Settings()) as storefront:
        yield storefront


class TestStorefront:
    async def test_guest_to_paid_order(self, shop, address_form):
        await shop.start()
        product = await shop.catalog.find("9")
        shop.cart.add_item(product, 10)
        shop.favorites.add(product.id)

        await shop.sign_up("u1", "u1@example.com", "Una")

        assert shop.cart.item_count() == 1
        assert shop.favorites.ids == ("9",)

        attempt = shop.checkout.begin().unwrap()
        shop.checkout.submit_address(attempt, address_form)
        handoff = (await shop.checkout.proceed_to_payment(attempt)).unwrap()
        confirmation = (await shop.checkout.pay(attempt, Card(TEST_CARD_SUCCESS, "12/34", "123"))).unwrap()
        await shop.cart.flush()

        assert handoff.total == Decimal("172.80")
        assert attempt.stage is CheckoutStage.PAYMENT_SUCCEEDED
        assert confirmation.order.payment_status is PaymentStatus.PAID
        assert shop.cart.item_count() == 0
        assert (await shop.store.get(CARTS, "u1")).unwrap()["items"] == []
        orders = (await shop.orders.list_for_user("u1")).unwrap()
        assert [o.order_id for o in orders] == [handoff.order_id]

    async def test_sign_out_keeps_account_cart(self, shop):
        await shop.start(Identity.user("u1", "u1@example.com"))
        shop.cart.add_item(await shop.catalog.find("1"), 9)

        await shop.sign_out()
        assert shop.cart.item_count() == 0

        await shop.sign_in("u1")
        assert shop.cart.item_count() == 1

    async def test_guest_cart_persists_on_disk(self, tmp_path):
        settings = Settings().with_local_storage_dir(tmp_path / "device")

        async with await Storefront.open(settings) as first:
            await first.start()
            first.cart.add_item(await first.catalog.find("2"), 8, 3)

        async with await Storefront.open(settings) as second:
            await second.start()
            assert second.cart.item_count() == 3

    async def test_injected_store_is_left_open(self):
        store = MemoryDocumentStore()

        async with await Storefront.open(store=store) as shop:
            await shop.sign_in("u1")
            shop.cart.add_item(await shop.catalog.find("3"), 7)

        # Pending saves are drained on close.
        assert len((await store.get(CARTS, "u1")).unwrap()["items"]) == 1

    async def test_failed_sign_up_stays_signed_out(self):
        async with await Storefront.open(store=UnavailableDocumentStore()) as shop:
            await shop.start()

            result = await shop.sign_up("u1", "u1@example.com")

            assert isinstance(result, Error)
            assert isinstance(result.error, TransientIOError)
            assert not shop.identity.current.is_authenticated
            assert shop.cart.owner is None

"""Tests for guest/durable reconciliation across identity transitions."""

import asyncio
import json

from structlog.testing import capture_logs

from kixstore.cart import CART_RESOURCE, CartLine, CartService
from kixstore.favorites import FavoritesService
from kixstore.identity import Identity, IdentityResolver
from kixstore.storage import (
    CARTS,
    FAVORITES,
    GUEST_CART_KEY,
    GUEST_FAVORITES_KEY,
    MemoryDocumentStore,
    MemoryLocalStorage,
    UnavailableDocumentStore,
    WriteQueue,
)
from kixstore.sync import SyncBinding


def keys(cart: CartService) -> list[tuple[str, float, int]]:
    return [(l.product_id, l.size, l.quantity) for l in cart.lines]


class TestLoginMerge:
    """Guest cart merging on the first authentication of a session."""

    async def test_guest_cart_merges_into_new_account(self, cart, identity, store, local, product):
        await identity.start()
        cart.add_item(product, 9)

        await identity.sign_in("u1")
        await cart.flush()

        assert keys(cart) == [("p1", 9.0, 1)]
        assert local.read(GUEST_CART_KEY) is None
        doc = (await store.get(CARTS, "u1")).unwrap()
        assert [(i["product_id"], i["quantity"]) for i in doc["items"]] == [("p1", 1)]

    async def test_merge_sums_with_existing_durable_cart(self, cart, identity, store, make_product):
        a, b = make_product("A"), make_product("B")
        await store.set(CARTS, "u1", {"items": [CartLine.from_product(a, 9, 1).to_doc()]})
        await identity.start()
        cart.add_item(a, 9, 2)
        cart.add_item(b, 10)

        await identity.sign_in("u1")

        assert keys(cart) == [("A", 9.0, 3), ("B", 10.0, 1)]

    async def test_only_first_login_merges(self, cart, identity, store, local, make_product):
        a, b = make_product("A"), make_product("B")
        await identity.start()
        cart.add_item(a, 9)
        await identity.sign_in("u1")

        await identity.sign_out()
        cart.add_item(b, 8)
        await identity.sign_in("u1")
        await cart.flush()

        assert keys(cart) == [("A", 9.0, 1)]
        doc = (await store.get(CARTS, "u1")).unwrap()
        assert [i["product_id"] for i in doc["items"]] == ["A"]
        # Guest item stays on the device.
        assert [i["product_id"] for i in json.loads(local.read(GUEST_CART_KEY))] == ["B"]

    async def test_restored_session_counts_as_first_authentication(self, cart, identity, local, product):
        local.write(GUEST_CART_KEY, CART_RESOURCE.encode_local([CartLine.from_product(product, 9)]))

        await identity.start(Identity.user("u1"))

        assert keys(cart) == [("p1", 9.0, 1)]
        assert local.read(GUEST_CART_KEY) is None

    async def test_empty_guest_cart_loads_durable_verbatim(self, cart, identity, store, product):
        await store.set(CARTS, "u1", {"items": [CartLine.from_product(product, 9, 4).to_doc()]})
        await identity.start()

        await identity.sign_in("u1")

        assert keys(cart) == [("p1", 9.0, 4)]


class TestOtherTransitions:
    async def test_logout_shows_guest_view_and_keeps_durable(self, cart, identity, store, product):
        await identity.sign_in("u1")
        cart.add_item(product, 9)
        await cart.flush()

        await identity.sign_out()

        assert cart.item_count() == 0
        assert cart.owner is None
        assert len((await store.get(CARTS, "u1")).unwrap()["items"]) == 1

    async def test_account_switch_never_merges(self, cart, identity, store, local, make_product):
        a, b = make_product("A"), make_product("B")
        await store.set(CARTS, "u2", {"items": [CartLine.from_product(b, 8).to_doc()]})
        await identity.sign_in("u1")
        cart.add_item(a, 9)
        local.write(GUEST_CART_KEY, CART_RESOURCE.encode_local([CartLine.from_product(a, 7)]))

        await identity.sign_in("u2")

        assert cart.owner == "u2"
        assert keys(cart) == [("B", 8.0, 1)]
        assert local.read(GUEST_CART_KEY) is not None

    async def test_pending_save_lands_before_rehydrate(self, cart, identity, store, product):
        await identity.sign_in("u1")
        cart.add_item(product, 9, 3)

        # Same user again: the queued save must be visible to the reload.
        await identity.sign_in("u1")

        assert keys(cart) == [("p1", 9.0, 3)]

    async def test_cold_start_defaults_to_empty(self, cart, identity):
        await identity.start()

        assert cart.lines == ()


class TestFailures:
    """Storage failures degrade to the best available view and get logged."""

    async def test_unreachable_store_keeps_guest_cart(self, product):
        local = MemoryLocalStorage()
        queue = WriteQueue()
        cart = CartService(UnavailableDocumentStore(), local, queue)
        identity = IdentityResolver()
        identity.subscribe(cart.handle_transition)
        await identity.start()
        cart.add_item(product, 9)

        with capture_logs() as logs:
            await identity.sign_in("u1")

        events = [e["event"] for e in logs]
        assert "remote_read_failed" in events
        assert "merge_save_failed" in events
        assert keys(cart) == [("p1", 9.0, 1)]
        # Not cleared: the merge never reached the durable store.
        assert local.read(GUEST_CART_KEY) is not None

    async def test_corrupt_guest_blob_reads_as_empty(self, cart, identity, local):
        local.write(GUEST_CART_KEY, "{not json")

        with capture_logs() as logs:
            await identity.start()

        assert cart.lines == ()
        assert "local_state_corrupt" in [e["event"] for e in logs]

    async def test_corrupt_durable_document_reads_as_empty(self, store, local, queue):
        await store.set(CARTS, "u1", {"items": [{"size": 9}]})
        binding = SyncBinding(CART_RESOURCE, store, local, queue)
        identity = IdentityResolver()

        with capture_logs() as logs:
            transition = await identity.sign_in("u1")
            lines = await binding.load(transition)

        assert lines == []
        assert "remote_state_corrupt" in [e["event"] for e in logs]


class SlowReadStore(MemoryDocumentStore):
    """Holds every document read until `release` is set."""

    def __init__(self) -> None:
        super().__init__()
        self.reading = asyncio.Event()
        self.release = asyncio.Event()

    async def get(self, collection, doc_id):
        self.reading.set()
        await self.release.wait()
        return await super().get(collection, doc_id)


class TestMutationsDuringLoad:
    """Shopper actions taken while an identity change is still loading."""

    @staticmethod
    def _wire(service):
        identity = IdentityResolver()
        identity.subscribe(service.handle_transition)
        return identity

    async def test_item_added_while_signing_in_is_kept(self, make_product):
        durable, guest, late = make_product("R"), make_product("G"), make_product("N")
        store, local = SlowReadStore(), MemoryLocalStorage()
        await store.set(CARTS, "u1", {"items": [CartLine.from_product(durable, 9).to_doc()]})
        cart = CartService(store, local, WriteQueue())
        identity = self._wire(cart)
        await identity.start()
        cart.add_item(guest, 9)

        signing_in = asyncio.create_task(identity.sign_in("u1"))
        await store.reading.wait()
        cart.add_item(late, 10)
        assert cart.owner is None
        store.release.set()
        await signing_in
        await cart.flush()

        assert keys(cart) == [("R", 9.0, 1), ("G", 9.0, 1), ("N", 10.0, 1)]
        doc = (await store.get(CARTS, "u1")).unwrap()
        assert [i["product_id"] for i in doc["items"]] == ["R", "G", "N"]
        assert local.read(GUEST_CART_KEY) is None

    async def test_quantity_change_while_signing_in_is_replayed(self, make_product):
        guest = make_product("G")
        store, local = SlowReadStore(), MemoryLocalStorage()
        cart = CartService(store, local, WriteQueue())
        identity = self._wire(cart)
        await identity.start()
        cart.add_item(guest, 9)

        signing_in = asyncio.create_task(identity.sign_in("u1"))
        await store.reading.wait()
        cart.set_quantity("G", 9, 4)
        store.release.set()
        await signing_in
        await cart.flush()

        assert keys(cart) == [("G", 9.0, 4)]
        doc = (await store.get(CARTS, "u1")).unwrap()
        assert [i["quantity"] for i in doc["items"]] == [4]

    async def test_favorite_toggled_while_signing_in_is_kept(self):
        store, local = SlowReadStore(), MemoryLocalStorage()
        await store.set(FAVORITES, "u1", {"product_ids": ["1"]})
        favorites = FavoritesService(store, local, WriteQueue())
        identity = self._wire(favorites)
        await identity.start()
        favorites.add("2")

        signing_in = asyncio.create_task(identity.sign_in("u1"))
        await store.reading.wait()
        assert favorites.toggle("3") is True
        store.release.set()
        await signing_in
        await favorites.flush()

        assert favorites.ids == ("1", "2", "3")
        doc = (await store.get(FAVORITES, "u1")).unwrap()
        assert doc["product_ids"] == ["1", "2", "3"]
        assert local.read(GUEST_FAVORITES_KEY) is None

"""Tests for SQLAlchemyDocumentStore on in-memory SQLite."""

import asyncio
from types import SimpleNamespace

import pytest
from kungfu import Error, Ok
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from kixstore.storage import ALL, DELETE_FIELD, Query, SQLAlchemyDocumentStore


@pytest.fixture
async def sql_store():
    store = await SQLAlchemyDocumentStore.connect("sqlite+aiosqlite:///:memory:")
    yield store
    await store.close()


class TestSQLAlchemyDocumentStore:
    """Tests for the SQL-backed store."""

    async def test_set_get_merge(self, sql_store):
        await sql_store.set("carts", "u1", {"items": [{"product_id": "1"}], "note": "x"})
        await sql_store.set("carts", "u1", {"note": "y"}, merge=True)

        assert await sql_store.get("carts", "u1") == Ok({"items": [{"product_id": "1"}], "note": "y"})
        assert await sql_store.get("carts", "u2") == Ok(None)

    async def test_replace_drops_old_fields(self, sql_store):
        await sql_store.set("carts", "u1", {"a": 1, "b": 2})
        await sql_store.set("carts", "u1", {"a": 3})

        assert await sql_store.get("carts", "u1") == Ok({"a": 3})

    async def test_create_add_update_delete(self, sql_store):
        assert await sql_store.create("users", "u1", {"role": "user"}) == Ok(True)
        assert await sql_store.create("users", "u1", {"role": "admin"}) == Ok(False)

        assert await sql_store.update("users", "u1", {"role": DELETE_FIELD, "email": "a@b.co"}) == Ok(True)
        assert await sql_store.get("users", "u1") == Ok({"email": "a@b.co"})
        assert await sql_store.update("users", "ghost", {"x": 1}) == Ok(False)

        match await sql_store.add("reviews", {"rating": 5}):
            case Ok(review_id):
                assert await sql_store.get("reviews", review_id) == Ok({"rating": 5})
            case Error(err):
                pytest.fail(err.message)

        assert await sql_store.delete("users", "u1") == Ok(True)
        assert await sql_store.delete("users", "u1") == Ok(False)

    async def test_compare_and_set_single_winner(self, sql_store):
        await sql_store.set("orders", "o1", {"payment_status": "pending"})
        payable = lambda doc: doc["payment_status"] in ("pending", "failed")  # noqa: E731

        results = await asyncio.gather(
            *[
                sql_store.compare_and_set("orders", "o1", payable, {"payment_status": "paid"})
                for _ in range(4)
            ]
        )

        assert [r.unwrap() for r in results].count(True) == 1
        assert await sql_store.get("orders", "o1") == Ok({"payment_status": "paid"})

    async def test_set_many_and_query(self, sql_store):
        assert await sql_store.set_many(
            "products",
            {"1": {"category": "mens", "price": 100}, "2": {"category": "kids", "price": 60}},
        ) == Ok(2)
        await sql_store.set_many("products", {"1": {"category": "mens", "price": 90}})

        match await sql_store.query("products", Query().where("category", "mens")):
            case Ok(snapshots):
                assert [(s.id, s.data["price"]) for s in snapshots] == [("1", 90)]
            case Error(err):
                pytest.fail(err.message)

    async def test_subscribe_sees_writes_until_cancelled(self, sql_store):
        seen: list[int] = []

        match await sql_store.subscribe("products", ALL, lambda snaps: seen.append(len(snaps))):
            case Ok(subscription):
                pass

        await sql_store.set("products", "1", {"name": "a"})
        await sql_store.set("products", "2", {"name": "b"})
        subscription.cancel()
        await sql_store.set("products", "3", {"name": "c"})

        assert seen == [0, 1, 2]


class TestBackends:
    """Upsert statements follow the engine's dialect."""

    @staticmethod
    def _engine(dialect: str):
        return SimpleNamespace(dialect=SimpleNamespace(name=dialect))

    def test_sqlite_and_postgresql_are_supported(self):
        assert SQLAlchemyDocumentStore(None, self._engine("sqlite"))._insert is sqlite_insert
        assert SQLAlchemyDocumentStore(None, self._engine("postgresql"))._insert is postgresql_insert

    def test_other_backends_are_rejected(self):
        with pytest.raises(ValueError, match="mysql"):
            SQLAlchemyDocumentStore(None, self._engine("mysql"))

    async def test_connected_store_uses_sqlite_upserts(self, sql_store):
        assert sql_store._insert is sqlite_insert
        assert await sql_store.set_many("products", {"1": {"n": 1}, "2": {"n": 2}}) == Ok(2)
        assert await sql_store.set_many("products", {"1": {"n": 3}}) == Ok(1)
        assert await sql_store.get("products", "1") == Ok({"n": 3})

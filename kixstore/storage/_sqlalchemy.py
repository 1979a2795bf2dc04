"""
SQLAlchemy document store: one `documents` table, JSON payloads.

Usage:
    store = await SQLAlchemyDocumentStore.connect("sqlite+aiosqlite:///kix.db")
    await store.set(CARTS, uid, {"items": [...]})
    ...
    await store.close()

Every single-document write is an optimistic read-modify-write guarded by
the row's `version` column; a lost race is retried from a fresh read.

Backends: SQLite (aiosqlite) and PostgreSQL (asyncpg, installed separately).
Upserts use the dialect's own INSERT ... ON CONFLICT.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from typing import Any, cast

from kungfu import Result, Ok, Error
from sqlalchemy import DateTime, Integer, String, Text, delete, select, update
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import CursorResult
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.pool import StaticPool

from kixstore._logging import get_logger
from kixstore._types import Subscription
from kixstore.storage._document import new_id, notify
from kixstore.storage._types import (
    ALL,
    Document,
    Predicate,
    Query,
    Snapshot,
    SnapshotListener,
    StoreError,
    Watchers,
    apply_changes,
)

log = get_logger("storage")

MAX_WRITE_ATTEMPTS = 5


# ═══════════════════════════════════════════════════════════════════════════════
# Table
# ═══════════════════════════════════════════════════════════════════════════════


class Base(DeclarativeBase):
    pass


class DocumentRow(Base):
    __tablename__ = "documents"

    collection: Mapped[str] = mapped_column(String(64), primary_key=True)
    doc_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    data: Mapped[str] = mapped_column(Text, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


def _dump(data: Document) -> str:
    return json.dumps(data, separators=(",", ":"), default=str)


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ═══════════════════════════════════════════════════════════════════════════════
# Store
# ═══════════════════════════════════════════════════════════════════════════════

type Mutation = Callable[[Document | None], Document | None]
"""Current document (or None) → new document, or None to skip the write."""

# Dialect name → INSERT construct with on_conflict_do_nothing/do_update.
UPSERT_INSERTS: dict[str, Callable[..., Any]] = {
    "sqlite": sqlite_insert,
    "postgresql": postgresql_insert,
}


class SQLAlchemyDocumentStore:
    """
    Document store over an async SQLAlchemy engine.

    Note: Queries load the collection and filter in Python; the catalog-sized
    collections this serves do not need indexes on document fields.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        engine: AsyncEngine | None = None,
    ) -> None:
        dialect = engine.dialect.name if engine is not None else "sqlite"
        if dialect not in UPSERT_INSERTS:
            raise ValueError(f"Unsupported database backend: {dialect}")
        self._session_factory = session_factory
        self._engine = engine
        self._insert = UPSERT_INSERTS[dialect]
        self._watchers = Watchers()
        # One session at a time: in-memory SQLite shares a single connection.
        self._lock = asyncio.Lock()

    @classmethod
    async def connect(cls, url: str) -> SQLAlchemyDocumentStore:
        """Create the engine and the table; in-memory SQLite shares one connection."""
        if ":memory:" in url:
            engine = create_async_engine(
                url,
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
            )
        else:
            engine = create_async_engine(url)

        if engine.dialect.name not in UPSERT_INSERTS:
            await engine.dispose()
            raise ValueError(f"Unsupported database backend: {engine.dialect.name}")

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        return cls(async_sessionmaker(engine, expire_on_commit=False), engine)

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()

    # ─── internals ────────────────────────────────────────────────────────────

    async def _snapshots(self, collection: str) -> list[Snapshot]:
        async with self._lock, self._session_factory() as session:
            rows = await session.execute(
                select(DocumentRow.doc_id, DocumentRow.data).where(
                    DocumentRow.collection == collection
                )
            )
            return [Snapshot(doc_id, json.loads(data)) for doc_id, data in rows.all()]

    async def _changed(self, collection: str) -> None:
        if not self._watchers.for_collection(collection):
            return
        try:
            snapshots = await self._snapshots(collection)
        except Exception as exc:
            log.warning("watch_refresh_failed", collection=collection, error=str(exc))
            return
        notify(self._watchers, collection, snapshots)

    async def _mutate(
        self,
        collection: str,
        doc_id: str,
        mutation: Mutation,
    ) -> Result[bool, StoreError]:
        """Optimistic read-modify-write. Ok(True) if a write landed."""
        try:
            for _ in range(MAX_WRITE_ATTEMPTS):
                async with self._lock, self._session_factory() as session:
                    found = (
                        await session.execute(
                            select(DocumentRow.data, DocumentRow.version).where(
                                DocumentRow.collection == collection,
                                DocumentRow.doc_id == doc_id,
                            )
                        )
                    ).first()

                    current = json.loads(found.data) if found is not None else None
                    changed = mutation(current)
                    if changed is None:
                        return Ok(False)

                    if found is None:
                        stmt: Any = (
                            self._insert(DocumentRow)
                            .values(
                                collection=collection,
                                doc_id=doc_id,
                                data=_dump(changed),
                                version=1,
                                updated_at=_now(),
                            )
                            .on_conflict_do_nothing(index_elements=["collection", "doc_id"])
                        )
                    else:
                        stmt = (
                            update(DocumentRow)
                            .where(
                                DocumentRow.collection == collection,
                                DocumentRow.doc_id == doc_id,
                                DocumentRow.version == found.version,
                            )
                            .values(
                                data=_dump(changed),
                                version=found.version + 1,
                                updated_at=_now(),
                            )
                            .execution_options(synchronize_session=False)
                        )

                    cursor = cast(CursorResult[Any], await session.execute(stmt))
                    await session.commit()

                if cursor.rowcount > 0:
                    await self._changed(collection)
                    return Ok(True)

            return Error(StoreError(f"Write conflict on {collection}/{doc_id}"))

        except Exception as e:
            return Error(StoreError(f"Failed to write {collection}/{doc_id}: {e}", e))

    # ─── protocol ─────────────────────────────────────────────────────────────

    async def get(self, collection: str, doc_id: str) -> Result[Document | None, StoreError]:
        try:
            async with self._lock, self._session_factory() as session:
                data = (
                    await session.execute(
                        select(DocumentRow.data).where(
                            DocumentRow.collection == collection,
                            DocumentRow.doc_id == doc_id,
                        )
                    )
                ).scalar_one_or_none()
                return Ok(json.loads(data) if data is not None else None)
        except Exception as e:
            return Error(StoreError(f"Failed to get {collection}/{doc_id}: {e}", e))

    async def set(
        self,
        collection: str,
        doc_id: str,
        data: Document,
        *,
        merge: bool = False,
    ) -> Result[None, StoreError]:
        def mutation(current: Document | None) -> Document:
            base = current if merge and current is not None else {}
            return apply_changes(base, data)

        match await self._mutate(collection, doc_id, mutation):
            case Ok(_):
                return Ok(None)
            case Error(err):
                return Error(err)

    async def create(self, collection: str, doc_id: str, data: Document) -> Result[bool, StoreError]:
        return await self._mutate(
            collection,
            doc_id,
            lambda current: apply_changes({}, data) if current is None else None,
        )

    async def add(self, collection: str, data: Document) -> Result[str, StoreError]:
        doc_id = new_id()
        match await self.create(collection, doc_id, data):
            case Ok(True):
                return Ok(doc_id)
            case Ok(False):
                return Error(StoreError(f"Generated id collided: {collection}/{doc_id}"))
            case Error(err):
                return Error(err)

    async def update(self, collection: str, doc_id: str, changes: Document) -> Result[bool, StoreError]:
        return await self._mutate(
            collection,
            doc_id,
            lambda current: apply_changes(current, changes) if current is not None else None,
        )

    async def delete(self, collection: str, doc_id: str) -> Result[bool, StoreError]:
        try:
            async with self._lock, self._session_factory() as session:
                cursor = cast(
                    CursorResult[Any],
                    await session.execute(
                        delete(DocumentRow)
                        .where(
                            DocumentRow.collection == collection,
                            DocumentRow.doc_id == doc_id,
                        )
                        .execution_options(synchronize_session=False)
                    ),
                )
                await session.commit()
        except Exception as e:
            return Error(StoreError(f"Failed to delete {collection}/{doc_id}: {e}", e))

        if cursor.rowcount > 0:
            await self._changed(collection)
            return Ok(True)
        return Ok(False)

    async def query(self, collection: str, query: Query = ALL) -> Result[list[Snapshot], StoreError]:
        try:
            return Ok(query.apply(await self._snapshots(collection)))
        except Exception as e:
            return Error(StoreError(f"Failed to query {collection}: {e}", e))

    async def compare_and_set(
        self,
        collection: str,
        doc_id: str,
        predicate: Predicate,
        changes: Document,
    ) -> Result[bool, StoreError]:
        def mutation(current: Document | None) -> Document | None:
            if current is None or not predicate(current):
                return None
            return apply_changes(current, changes)

        return await self._mutate(collection, doc_id, mutation)

    async def set_many(self, collection: str, docs: Mapping[str, Document]) -> Result[int, StoreError]:
        if not docs:
            return Ok(0)
        try:
            async with self._lock, self._session_factory() as session:
                now = _now()
                stmt = self._insert(DocumentRow).values(
                    [
                        {
                            "collection": collection,
                            "doc_id": doc_id,
                            "data": _dump(data),
                            "version": 1,
                            "updated_at": now,
                        }
                        for doc_id, data in docs.items()
                    ]
                )
                stmt = stmt.on_conflict_do_update(
                    index_elements=["collection", "doc_id"],
                    set_={
                        "data": stmt.excluded.data,
                        "version": DocumentRow.version + 1,
                        "updated_at": stmt.excluded.updated_at,
                    },
                )
                await session.execute(stmt)
                await session.commit()
        except Exception as e:
            return Error(StoreError(f"Failed to write batch to {collection}: {e}", e))

        await self._changed(collection)
        return Ok(len(docs))

    async def subscribe(
        self,
        collection: str,
        query: Query,
        listener: SnapshotListener,
    ) -> Result[Subscription, StoreError]:
        match await self.query(collection, query):
            case Ok(initial):
                pass
            case Error(err):
                return Error(err)

        watch = self._watchers.add(collection, query, listener)
        listener(initial)
        return Ok(Subscription(lambda: self._watchers.remove(watch)))


__all__ = ("Base", "DocumentRow", "SQLAlchemyDocumentStore", "MAX_WRITE_ATTEMPTS", "UPSERT_INSERTS")

"""
Document store: typed, Result-based protocol over the remote collaborator.

All methods return Result for explicit error handling. Every write to a
single document is atomic; nothing spans documents.
"""

from __future__ import annotations

import asyncio
import copy
import uuid
from collections.abc import Mapping
from typing import Protocol

from kungfu import Result, Ok, Error

from kixstore._logging import get_logger
from kixstore._types import Subscription
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


# ═══════════════════════════════════════════════════════════════════════════════
# Store Protocol
# ═══════════════════════════════════════════════════════════════════════════════


class DocumentStore(Protocol):
    """
    Remote document store protocol.

    Example:
        match await store.get(ORDERS, order_id):
            case Ok(None):
                ...  # missing
            case Ok(doc):
                ...
            case Error(err):
                log.warning("read_failed", error=err.message)
    """

    async def get(self, collection: str, doc_id: str) -> Result[Document | None, StoreError]:
        """Read one document. Ok(None) if it does not exist."""
        ...

    async def set(
        self,
        collection: str,
        doc_id: str,
        data: Document,
        *,
        merge: bool = False,
    ) -> Result[None, StoreError]:
        """Replace the document, or shallow-merge into it when merge=True."""
        ...

    async def create(self, collection: str, doc_id: str, data: Document) -> Result[bool, StoreError]:
        """Write only if absent. Ok(False) when the id is taken."""
        ...

    async def add(self, collection: str, data: Document) -> Result[str, StoreError]:
        """Insert under a generated id and return it."""
        ...

    async def update(self, collection: str, doc_id: str, changes: Document) -> Result[bool, StoreError]:
        """Patch an existing document. Ok(False) if it does not exist."""
        ...

    async def delete(self, collection: str, doc_id: str) -> Result[bool, StoreError]:
        """Delete. Ok(True) if it existed."""
        ...

    async def query(self, collection: str, query: Query = ALL) -> Result[list[Snapshot], StoreError]:
        ...

    async def compare_and_set(
        self,
        collection: str,
        doc_id: str,
        predicate: Predicate,
        changes: Document,
    ) -> Result[bool, StoreError]:
        """
        Atomically apply `changes` if the current document satisfies
        `predicate`. Ok(False) when missing or the predicate fails.
        """
        ...

    async def set_many(self, collection: str, docs: Mapping[str, Document]) -> Result[int, StoreError]:
        """Replace several documents in one write."""
        ...

    async def subscribe(
        self,
        collection: str,
        query: Query,
        listener: SnapshotListener,
    ) -> Result[Subscription, StoreError]:
        """
        Live query: listener gets the current result now and again after
        every write to the collection.
        """
        ...


def new_id() -> str:
    return uuid.uuid4().hex[:20]


def notify(watchers: Watchers, collection: str, snapshots: list[Snapshot]) -> None:
    """Push fresh query results to every watcher of `collection`."""
    for watch in watchers.for_collection(collection):
        try:
            watch.listener(watch.query.apply(snapshots))
        except Exception as exc:
            log.error("listener_failed", collection=collection, error=str(exc))


# ═══════════════════════════════════════════════════════════════════════════════
# Memory Store: for tests and offline runs
# ═══════════════════════════════════════════════════════════════════════════════


class MemoryDocumentStore:
    """
    In-memory document store.

    Note: Single process only. Documents are deep-copied on the way in and
    out so callers never share mutable state with the store.
    """

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, Document]] = {}
        self._lock = asyncio.Lock()
        self._watchers = Watchers()

    def _docs(self, collection: str) -> dict[str, Document]:
        return self._collections.setdefault(collection, {})

    def _snapshots(self, collection: str) -> list[Snapshot]:
        return [
            Snapshot(doc_id, copy.deepcopy(data))
            for doc_id, data in self._docs(collection).items()
        ]

    async def _changed(self, collection: str) -> None:
        async with self._lock:
            snapshots = self._snapshots(collection)
        notify(self._watchers, collection, snapshots)

    async def get(self, collection: str, doc_id: str) -> Result[Document | None, StoreError]:
        async with self._lock:
            data = self._docs(collection).get(doc_id)
            return Ok(copy.deepcopy(data) if data is not None else None)

    async def set(
        self,
        collection: str,
        doc_id: str,
        data: Document,
        *,
        merge: bool = False,
    ) -> Result[None, StoreError]:
        async with self._lock:
            docs = self._docs(collection)
            if merge and doc_id in docs:
                docs[doc_id] = apply_changes(docs[doc_id], copy.deepcopy(data))
            else:
                docs[doc_id] = apply_changes({}, copy.deepcopy(data))
        await self._changed(collection)
        return Ok(None)

    async def create(self, collection: str, doc_id: str, data: Document) -> Result[bool, StoreError]:
        async with self._lock:
            docs = self._docs(collection)
            if doc_id in docs:
                return Ok(False)
            docs[doc_id] = copy.deepcopy(data)
        await self._changed(collection)
        return Ok(True)

    async def add(self, collection: str, data: Document) -> Result[str, StoreError]:
        doc_id = new_id()
        async with self._lock:
            self._docs(collection)[doc_id] = copy.deepcopy(data)
        await self._changed(collection)
        return Ok(doc_id)

    async def update(self, collection: str, doc_id: str, changes: Document) -> Result[bool, StoreError]:
        async with self._lock:
            docs = self._docs(collection)
            if doc_id not in docs:
                return Ok(False)
            docs[doc_id] = apply_changes(docs[doc_id], copy.deepcopy(changes))
        await self._changed(collection)
        return Ok(True)

    async def delete(self, collection: str, doc_id: str) -> Result[bool, StoreError]:
        async with self._lock:
            existed = self._docs(collection).pop(doc_id, None) is not None
        if existed:
            await self._changed(collection)
        return Ok(existed)

    async def query(self, collection: str, query: Query = ALL) -> Result[list[Snapshot], StoreError]:
        async with self._lock:
            return Ok(query.apply(self._snapshots(collection)))

    async def compare_and_set(
        self,
        collection: str,
        doc_id: str,
        predicate: Predicate,
        changes: Document,
    ) -> Result[bool, StoreError]:
        async with self._lock:
            docs = self._docs(collection)
            current = docs.get(doc_id)
            if current is None or not predicate(copy.deepcopy(current)):
                return Ok(False)
            docs[doc_id] = apply_changes(current, copy.deepcopy(changes))
        await self._changed(collection)
        return Ok(True)

    async def set_many(self, collection: str, docs: Mapping[str, Document]) -> Result[int, StoreError]:
        async with self._lock:
            target = self._docs(collection)
            for doc_id, data in docs.items():
                target[doc_id] = copy.deepcopy(data)
        await self._changed(collection)
        return Ok(len(docs))

    async def subscribe(
        self,
        collection: str,
        query: Query,
        listener: SnapshotListener,
    ) -> Result[Subscription, StoreError]:
        watch = self._watchers.add(collection, query, listener)
        async with self._lock:
            initial = query.apply(self._snapshots(collection))
        listener(initial)
        return Ok(Subscription(lambda: self._watchers.remove(watch)))

    @property
    def watcher_count(self) -> int:
        return len(self._watchers)


# ═══════════════════════════════════════════════════════════════════════════════
# Failing Store: every call errors
# ═══════════════════════════════════════════════════════════════════════════════


class UnavailableDocumentStore:
    """
    Store whose every operation returns StoreError.

    Stands in for an unreachable backend: offline mode, outage drills.
    """

    def __init__(self, message: str = "document store unavailable") -> None:
        self._error = StoreError(message)

    async def get(self, collection: str, doc_id: str) -> Result[Document | None, StoreError]:
        return Error(self._error)

    async def set(
        self,
        collection: str,
        doc_id: str,
        data: Document,
        *,
        merge: bool = False,
    ) -> Result[None, StoreError]:
        return Error(self._error)

    async def create(self, collection: str, doc_id: str, data: Document) -> Result[bool, StoreError]:
        return Error(self._error)

    async def add(self, collection: str, data: Document) -> Result[str, StoreError]:
        return Error(self._error)

    async def update(self, collection: str, doc_id: str, changes: Document) -> Result[bool, StoreError]:
        return Error(self._error)

    async def delete(self, collection: str, doc_id: str) -> Result[bool, StoreError]:
        return Error(self._error)

    async def query(self, collection: str, query: Query = ALL) -> Result[list[Snapshot], StoreError]:
        return Error(self._error)

    async def compare_and_set(
        self,
        collection: str,
        doc_id: str,
        predicate: Predicate,
        changes: Document,
    ) -> Result[bool, StoreError]:
        return Error(self._error)

    async def set_many(self, collection: str, docs: Mapping[str, Document]) -> Result[int, StoreError]:
        return Error(self._error)

    async def subscribe(
        self,
        collection: str,
        query: Query,
        listener: SnapshotListener,
    ) -> Result[Subscription, StoreError]:
        return Error(self._error)


__all__ = (
    "DocumentStore",
    "MemoryDocumentStore",
    "UnavailableDocumentStore",
    "new_id",
    "notify",
)

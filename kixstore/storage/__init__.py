"""
Storage: remote document store, device-local blobs, ordered background saves.

    from kixstore import storage as S

    store = S.MemoryDocumentStore()
    await store.set(S.CARTS, "u1", {"items": []})

    sql = await S.SQLAlchemyDocumentStore.connect("sqlite+aiosqlite:///:memory:")
"""

from kixstore.storage._types import (
    Document,
    Predicate,
    SnapshotListener,
    USERS,
    CARTS,
    FAVORITES,
    PRODUCTS,
    REVIEWS,
    ORDERS,
    PROMO_CODES,
    CHECKOUT_ATTEMPTS,
    StoreError,
    DELETE_FIELD,
    apply_changes,
    Snapshot,
    Query,
    ALL,
)
from kixstore.storage._document import (
    DocumentStore,
    MemoryDocumentStore,
    UnavailableDocumentStore,
)
from kixstore.storage._sqlalchemy import SQLAlchemyDocumentStore
from kixstore.storage._local import (
    GUEST_CART_KEY,
    GUEST_FAVORITES_KEY,
    PENDING_ORDER_ID_KEY,
    PENDING_ORDER_DATA_KEY,
    LocalStorage,
    MemoryLocalStorage,
    SessionStorage,
    FileLocalStorage,
)
from kixstore.storage._queue import WriteQueue

__all__ = (
    # Types
    "Document",
    "Predicate",
    "SnapshotListener",
    "StoreError",
    "DELETE_FIELD",
    "apply_changes",
    "Snapshot",
    "Query",
    "ALL",
    # Collections
    "USERS",
    "CARTS",
    "FAVORITES",
    "PRODUCTS",
    "REVIEWS",
    "ORDERS",
    "PROMO_CODES",
    "CHECKOUT_ATTEMPTS",
    # Remote
    "DocumentStore",
    "MemoryDocumentStore",
    "UnavailableDocumentStore",
    "SQLAlchemyDocumentStore",
    # Local
    "GUEST_CART_KEY",
    "GUEST_FAVORITES_KEY",
    "PENDING_ORDER_ID_KEY",
    "PENDING_ORDER_DATA_KEY",
    "LocalStorage",
    "MemoryLocalStorage",
    "SessionStorage",
    "FileLocalStorage",
    # Queue
    "WriteQueue",
)

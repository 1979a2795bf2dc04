"""
Document store types.

A document is a JSON-safe dict. Collections hold documents keyed by id;
queries are equality filters plus one optional ordering field.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field, replace
from typing import Any

type Document = dict[str, Any]
type Predicate = Callable[[Document], bool]
type SnapshotListener = Callable[[list["Snapshot"]], None]


# ═══════════════════════════════════════════════════════════════════════════════
# Collections
# ═══════════════════════════════════════════════════════════════════════════════

USERS = "users"
CARTS = "carts"
FAVORITES = "favorites"
PRODUCTS = "products"
REVIEWS = "reviews"
ORDERS = "orders"
PROMO_CODES = "promoCodes"
CHECKOUT_ATTEMPTS = "checkoutAttempts"


# ═══════════════════════════════════════════════════════════════════════════════
# Errors and sentinels
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class StoreError:
    """Storage operation error."""

    message: str
    cause: Exception | None = None


class _DeleteField:
    """Marker value: remove this field in update()."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "DELETE_FIELD"

    # Stores copy incoming changes; the marker must stay the one instance.
    def __copy__(self) -> _DeleteField:
        return self

    def __deepcopy__(self, memo: dict[int, Any]) -> _DeleteField:
        return self

    def __reduce__(self) -> str:
        return "DELETE_FIELD"


DELETE_FIELD: Any = _DeleteField()


def apply_changes(data: Document, changes: Document) -> Document:
    """Shallow-merge `changes` into a copy of `data`, honoring DELETE_FIELD."""
    merged = dict(data)
    for name, value in changes.items():
        if value is DELETE_FIELD:
            merged.pop(name, None)
        else:
            merged[name] = value
    return merged


# ═══════════════════════════════════════════════════════════════════════════════
# Snapshot & Query
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Snapshot:
    """One document as read: id plus data."""

    id: str
    data: Document


def _missing_first(value: Any) -> tuple[bool, Any]:
    return (False, 0) if value is None else (True, value)


@dataclass(frozen=True, slots=True)
class Query:
    """
    Equality filters, one ordering field, optional limit.

    Immutable, fluent:
        Query().where("category", "mens").order_by("created_at", descending=True)
    """

    filters: tuple[tuple[str, Any], ...] = ()
    order_field: str | None = None
    descending: bool = False
    max_results: int | None = None

    def where(self, name: str, value: Any) -> Query:
        return replace(self, filters=(*self.filters, (name, value)))

    def order_by(self, name: str, *, descending: bool = False) -> Query:
        return replace(self, order_field=name, descending=descending)

    def limit(self, n: int) -> Query:
        return replace(self, max_results=n)

    def matches(self, data: Document) -> bool:
        return all(data.get(name) == value for name, value in self.filters)

    def apply(self, snapshots: Iterable[Snapshot]) -> list[Snapshot]:
        """Filter, order and limit already-loaded snapshots."""
        selected = [s for s in snapshots if self.matches(s.data)]
        if self.order_field is not None:
            name = self.order_field
            # Missing values sort first ascending, last descending.
            selected.sort(
                key=lambda s: _missing_first(s.data.get(name)),
                reverse=self.descending,
            )
        if self.max_results is not None:
            selected = selected[: self.max_results]
        return selected


ALL = Query()


# ═══════════════════════════════════════════════════════════════════════════════
# Listener registry
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(slots=True)
class _Watch:
    collection: str
    query: Query
    listener: SnapshotListener


@dataclass(slots=True)
class Watchers:
    """Live queries registered on a store, grouped by collection."""

    _watches: list[_Watch] = field(default_factory=list)

    def add(self, collection: str, query: Query, listener: SnapshotListener) -> _Watch:
        watch = _Watch(collection, query, listener)
        self._watches.append(watch)
        return watch

    def remove(self, watch: _Watch) -> None:
        if watch in self._watches:
            self._watches.remove(watch)

    def for_collection(self, collection: str) -> list[_Watch]:
        return [w for w in self._watches if w.collection == collection]

    def __len__(self) -> int:
        return len(self._watches)


__all__ = (
    "Document",
    "Predicate",
    "SnapshotListener",
    "USERS",
    "CARTS",
    "FAVORITES",
    "PRODUCTS",
    "REVIEWS",
    "ORDERS",
    "PROMO_CODES",
    "CHECKOUT_ATTEMPTS",
    "StoreError",
    "DELETE_FIELD",
    "apply_changes",
    "Snapshot",
    "Query",
    "ALL",
    "Watchers",
)

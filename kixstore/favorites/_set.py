"""Favorites set: unique product ids, insertion order kept for display."""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from kixstore._types import Listener


class FavoritesSet:
    def __init__(
        self,
        ids: Iterable[str] = (),
        on_change: Listener[tuple[str, ...]] | None = None,
    ) -> None:
        self._ids: dict[str, None] = dict.fromkeys(ids)
        self._on_change = on_change

    def _emit(self) -> None:
        if self._on_change is not None:
            self._on_change(self.ids)

    @property
    def ids(self) -> tuple[str, ...]:
        return tuple(self._ids)

    def contains(self, product_id: str) -> bool:
        return product_id in self._ids

    def count(self) -> int:
        return len(self._ids)

    def __len__(self) -> int:
        return len(self._ids)

    def __iter__(self) -> Iterator[str]:
        return iter(tuple(self._ids))

    def add(self, product_id: str) -> bool:
        if product_id in self._ids:
            return False
        self._ids[product_id] = None
        self._emit()
        return True

    def remove(self, product_id: str) -> bool:
        if product_id not in self._ids:
            return False
        del self._ids[product_id]
        self._emit()
        return True

    def toggle(self, product_id: str) -> bool:
        """Flip membership. Returns True when the id is now a favorite."""
        if self.remove(product_id):
            return False
        self.add(product_id)
        return True

    def clear(self) -> None:
        self._ids = {}
        self._emit()

    def replace(self, ids: Iterable[str]) -> None:
        self._ids = dict.fromkeys(ids)


__all__ = ("FavoritesSet",)

"""
Favorites service: a FavoritesSet bound to guest/durable storage.
"""

from __future__ import annotations

from collections.abc import Callable

from kixstore._logging import get_logger
from kixstore.catalog import Catalog, Product
from kixstore.favorites._set import FavoritesSet
from kixstore.identity import Transition
from kixstore.storage import (
    FAVORITES,
    GUEST_FAVORITES_KEY,
    DocumentStore,
    LocalStorage,
    WriteQueue,
)
from kixstore.sync import SyncBinding, SyncedResource, merge_union

log = get_logger("favorites")

FAVORITES_RESOURCE: SyncedResource[str] = SyncedResource(
    name="favorites",
    collection=FAVORITES,
    local_key=GUEST_FAVORITES_KEY,
    field="product_ids",
    merge=merge_union,
    to_item=str,
    from_item=str,
)


class FavoritesService:
    def __init__(self, store: DocumentStore, local: LocalStorage, queue: WriteQueue) -> None:
        self._binding = SyncBinding(FAVORITES_RESOURCE, store, local, queue)
        self._set = FavoritesSet(on_change=self._binding.save)
        self._deferred: list[Callable[[FavoritesSet], object]] = []

    @property
    def ids(self) -> tuple[str, ...]:
        return self._set.ids

    @property
    def owner(self) -> str | None:
        return self._binding.owner

    async def handle_transition(self, transition: Transition) -> None:
        ids = await self._binding.load(transition)
        deferred, self._deferred = self._deferred, []
        self._set.replace(ids)
        for op in deferred:
            op(self._set)
        log.info(
            "favorites_loaded",
            kind=transition.kind.name,
            owner=self._binding.owner,
            count=len(self._set),
            replayed=len(deferred),
        )

    def _apply(self, op: Callable[[FavoritesSet], bool]) -> bool:
        changed = op(self._set)
        if self._binding.loading:
            self._deferred.append(op)
        return changed

    def add(self, product_id: str) -> bool:
        return self._apply(lambda favorites: favorites.add(product_id))

    def remove(self, product_id: str) -> bool:
        return self._apply(lambda favorites: favorites.remove(product_id))

    def toggle(self, product_id: str) -> bool:
        # Replayed as the add or remove it turned into.
        if self.contains(product_id):
            self.remove(product_id)
            return False
        self.add(product_id)
        return True

    def contains(self, product_id: str) -> bool:
        return self._set.contains(product_id)

    def count(self) -> int:
        return self._set.count()

    def clear(self) -> None:
        self._set.clear()
        if self._binding.loading:
            self._deferred.append(FavoritesSet.clear)

    async def products(self, catalog: Catalog) -> list[Product]:
        """Favorites resolved to catalog products; unknown ids are skipped."""
        resolved: list[Product] = []
        for product_id in self._set:
            product = await catalog.find(product_id)
            if product is not None:
                resolved.append(product)
        return resolved

    async def flush(self) -> None:
        await self._binding.flush()


__all__ = ("FavoritesService", "FAVORITES_RESOURCE")

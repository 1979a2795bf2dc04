"""
Cart service: ledger + sync binding, subscribed to identity transitions.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from decimal import Decimal

from kixstore._logging import get_logger
from kixstore.cart._ledger import CartLedger
from kixstore.cart._types import CartLine
from kixstore.catalog._types import Product
from kixstore.identity import Transition
from kixstore.storage import (
    CARTS,
    GUEST_CART_KEY,
    DocumentStore,
    LocalStorage,
    WriteQueue,
)
from kixstore.sync import SyncBinding, SyncedResource, merge_keyed

log = get_logger("cart")


def merge_cart_lines(remote: Sequence[CartLine], local: Sequence[CartLine]) -> list[CartLine]:
    """Same (product, size) on both sides: quantities add up."""
    return merge_keyed(
        remote,
        local,
        key=lambda line: line.key,
        combine=lambda kept, extra: kept.with_quantity(kept.quantity + extra.quantity),
    )


CART_RESOURCE: SyncedResource[CartLine] = SyncedResource(
    name="cart",
    collection=CARTS,
    local_key=GUEST_CART_KEY,
    field="items",
    merge=merge_cart_lines,
    to_item=CartLine.to_doc,
    from_item=CartLine.from_doc,
)


class CartService:
    """
    The shopper's cart.

    Every mutation is visible immediately; the save behind it is scheduled
    to whoever owned the cart at mutation time. Mutations made while an
    identity change is loading are replayed onto the loaded cart.
    Tests await flush().
    """

    def __init__(self, store: DocumentStore, local: LocalStorage, queue: WriteQueue) -> None:
        self._binding = SyncBinding(CART_RESOURCE, store, local, queue)
        self._ledger = CartLedger(on_change=self._binding.save)
        self._deferred: list[Callable[[CartLedger], object]] = []

    @property
    def ledger(self) -> CartLedger:
        return self._ledger

    @property
    def owner(self) -> str | None:
        return self._binding.owner

    @property
    def lines(self) -> tuple[CartLine, ...]:
        return self._ledger.lines

    async def handle_transition(self, transition: Transition) -> None:
        lines = await self._binding.load(transition)
        deferred, self._deferred = self._deferred, []
        self._ledger.replace(lines)
        for op in deferred:
            op(self._ledger)
        log.info(
            "cart_loaded",
            kind=transition.kind.name,
            owner=self._binding.owner,
            lines=len(self._ledger),
            items=self._ledger.item_count(),
            replayed=len(deferred),
        )

    def _apply[R](self, op: Callable[[CartLedger], R]) -> R:
        result = op(self._ledger)
        if self._binding.loading:
            self._deferred.append(op)
        return result

    def add_item(self, product: Product, size: float, quantity: int = 1) -> CartLine:
        return self._apply(lambda ledger: ledger.add_item(product, size, quantity))

    def remove_item(self, product_id: str, size: float) -> bool:
        return self._apply(lambda ledger: ledger.remove_item(product_id, size))

    def set_quantity(self, product_id: str, size: float, quantity: int) -> bool:
        return self._apply(lambda ledger: ledger.set_quantity(product_id, size, quantity))

    def clear(self) -> None:
        self._apply(CartLedger.clear)

    def total(self) -> Decimal:
        return self._ledger.total()

    def item_count(self) -> int:
        return self._ledger.item_count()

    def contains(self, product_id: str, size: float) -> bool:
        return self._ledger.contains(product_id, size)

    async def clear_for(self, user_id: str) -> None:
        """Empty `user_id`'s cart, whether or not it is the active one."""
        if self._binding.owner == user_id:
            self._ledger.clear()
        else:
            self._binding.save_for(user_id, [])
        log.info("cart_cleared", user_id=user_id)

    async def flush(self) -> None:
        await self._binding.flush()


__all__ = ("CartService", "CART_RESOURCE", "merge_cart_lines")

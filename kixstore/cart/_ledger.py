"""
Cart ledger: the in-memory line items and their derived totals.

Pure state. Mutations update synchronously and then report the new lines
through `on_change`; persistence is somebody else's job.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from decimal import Decimal

from kixstore._money import ZERO
from kixstore._types import Listener
from kixstore.cart._types import CartLine, LineKey
from kixstore.catalog._types import Product


class CartLedger:
    """
    Invariants:
        - no two lines share a (product_id, size) key
        - every quantity is >= 1
        - item_count() == sum of quantities

    Example:
        ledger = CartLedger(on_change=save)
        ledger.add_item(product, 9)
        ledger.add_item(product, 9)          # same key → quantity 2
        ledger.set_quantity(product.id, 9, 0)  # ignored
    """

    def __init__(
        self,
        lines: Iterable[CartLine] = (),
        on_change: Listener[tuple[CartLine, ...]] | None = None,
    ) -> None:
        self._lines: list[CartLine] = []
        self._on_change = on_change
        self._load(lines)

    def _load(self, lines: Iterable[CartLine]) -> None:
        # Loaded data is folded by key, so duplicates never survive a load.
        merged: dict[LineKey, CartLine] = {}
        for line in lines:
            if line.key in merged:
                existing = merged[line.key]
                merged[line.key] = existing.with_quantity(existing.quantity + line.quantity)
            else:
                merged[line.key] = line
        self._lines = list(merged.values())

    def _index(self, product_id: str, size: float) -> int | None:
        key = (product_id, float(size))
        for i, line in enumerate(self._lines):
            if line.key == key:
                return i
        return None

    def _emit(self) -> None:
        if self._on_change is not None:
            self._on_change(self.lines)

    # ─── reads ───────────────────────────────────────────────────────────────

    @property
    def lines(self) -> tuple[CartLine, ...]:
        return tuple(self._lines)

    def find(self, product_id: str, size: float) -> CartLine | None:
        i = self._index(product_id, size)
        return self._lines[i] if i is not None else None

    def contains(self, product_id: str, size: float) -> bool:
        return self._index(product_id, size) is not None

    def total(self) -> Decimal:
        return sum((line.line_total for line in self._lines), ZERO)

    def item_count(self) -> int:
        return sum(line.quantity for line in self._lines)

    def __len__(self) -> int:
        return len(self._lines)

    def __iter__(self) -> Iterator[CartLine]:
        return iter(tuple(self._lines))

    # ─── mutations ───────────────────────────────────────────────────────────

    def add_item(self, product: Product, size: float, quantity: int = 1) -> CartLine:
        if quantity < 1:
            raise ValueError("quantity must be >= 1")

        i = self._index(product.id, size)
        if i is None:
            line = CartLine.from_product(product, size, quantity)
            self._lines.append(line)
        else:
            line = self._lines[i].with_quantity(self._lines[i].quantity + quantity)
            self._lines[i] = line

        self._emit()
        return line

    def remove_item(self, product_id: str, size: float) -> bool:
        i = self._index(product_id, size)
        if i is None:
            return False
        del self._lines[i]
        self._emit()
        return True

    def set_quantity(self, product_id: str, size: float, quantity: int) -> bool:
        """Below 1 or unknown key: silently ignored, returns False."""
        if quantity < 1:
            return False
        i = self._index(product_id, size)
        if i is None:
            return False
        if self._lines[i].quantity != quantity:
            self._lines[i] = self._lines[i].with_quantity(quantity)
            self._emit()
        return True

    def clear(self) -> None:
        self._lines = []
        self._emit()

    def replace(self, lines: Iterable[CartLine]) -> None:
        """Swap in a loaded view. Not a mutation: on_change does not fire."""
        self._load(lines)


__all__ = ("CartLedger",)

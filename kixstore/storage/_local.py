"""
Device-local storage: whole JSON blobs under fixed keys.

Mirrors browser storage semantics: synchronous, string in, string out,
no partial updates.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Protocol

GUEST_CART_KEY = "kix-cart-guest"
GUEST_FAVORITES_KEY = "kix-favorites-guest"

PENDING_ORDER_ID_KEY = "pendingOrderId"
PENDING_ORDER_DATA_KEY = "pendingOrderData"


class LocalStorage(Protocol):
    """Key → blob store. Implementations raise OSError on IO failure."""

    def read(self, key: str) -> str | None: ...

    def write(self, key: str, blob: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryLocalStorage:
    """Process-lifetime storage."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._blobs: dict[str, str] = dict(initial or {})

    def read(self, key: str) -> str | None:
        return self._blobs.get(key)

    def write(self, key: str, blob: str) -> None:
        self._blobs[key] = blob

    def remove(self, key: str) -> None:
        self._blobs.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._blobs)


class SessionStorage(MemoryLocalStorage):
    """
    Session-scoped storage: gone when the session ends.

    Holds the checkout handoff between "proceed to payment" and the
    payment confirmation.
    """


class FileLocalStorage:
    """
    One file per key under `directory`.

    Writes go to a temp file first and are renamed into place, so a reader
    never sees half a blob.
    """

    def __init__(self, directory: Path) -> None:
        self._directory = directory
        self._directory.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self._directory / f"{key}.json"

    def read(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def write(self, key: str, blob: str) -> None:
        path = self._path(key)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(blob, encoding="utf-8")
        os.replace(tmp, path)

    def remove(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


__all__ = (
    "GUEST_CART_KEY",
    "GUEST_FAVORITES_KEY",
    "PENDING_ORDER_ID_KEY",
    "PENDING_ORDER_DATA_KEY",
    "LocalStorage",
    "MemoryLocalStorage",
    "SessionStorage",
    "FileLocalStorage",
)

"""
Synced resource description: how one collection moves between guest and
durable storage.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from kixstore.storage import Document


@dataclass(frozen=True, slots=True)
class SyncedResource[T]:
    """
    Everything the reconciler needs to know about one resource.

    `to_item` / `from_item` translate one element to and from its JSON form;
    the whole collection is stored under `field` in the remote document and
    as a bare JSON list in the local blob.
    """

    name: str
    collection: str
    local_key: str
    field: str
    merge: Callable[[Sequence[T], Sequence[T]], list[T]]
    to_item: Callable[[T], Any]
    from_item: Callable[[Any], T]

    def encode_document(self, items: Sequence[T]) -> Document:
        return {
            self.field: [self.to_item(i) for i in items],
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }

    def decode_document(self, doc: Document | None) -> list[T]:
        if doc is None:
            return []
        return [self.from_item(raw) for raw in doc.get(self.field, [])]

    def encode_local(self, items: Sequence[T]) -> str:
        return json.dumps([self.to_item(i) for i in items])

    def decode_local(self, blob: str | None) -> list[T]:
        """Raises ValueError/TypeError/KeyError on a corrupt blob."""
        if not blob:
            return []
        raw = json.loads(blob)
        if not isinstance(raw, list):
            raise ValueError(f"{self.name}: expected a JSON list")
        return [self.from_item(item) for item in raw]


__all__ = ("SyncedResource",)

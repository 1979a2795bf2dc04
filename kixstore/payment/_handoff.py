"""
Session-scoped checkout handoff: what the payment page needs to find the
pending order after the checkout page is gone.

    pendingOrderId     order id
    pendingOrderData   {"order_id", "total", "items", "customer_email"}
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from kixstore._logging import get_logger
from kixstore.storage import PENDING_ORDER_DATA_KEY, PENDING_ORDER_ID_KEY, LocalStorage

log = get_logger("payment")


@dataclass(frozen=True, slots=True)
class PendingOrder:
    order_id: str
    total: Decimal
    items: tuple[dict[str, Any], ...]
    customer_email: str | None

    def to_blob(self) -> str:
        return json.dumps(
            {
                "order_id": self.order_id,
                "total": str(self.total),
                "items": list(self.items),
                "customer_email": self.customer_email,
            }
        )

    @staticmethod
    def from_blob(blob: str) -> PendingOrder:
        raw = json.loads(blob)
        return PendingOrder(
            order_id=raw["order_id"],
            total=Decimal(raw["total"]),
            items=tuple(raw.get("items", ())),
            customer_email=raw.get("customer_email"),
        )


def stage_handoff(session: LocalStorage, pending: PendingOrder) -> None:
    """Raises OSError like the storage it writes to."""
    session.write(PENDING_ORDER_ID_KEY, pending.order_id)
    session.write(PENDING_ORDER_DATA_KEY, pending.to_blob())


def read_handoff(session: LocalStorage) -> PendingOrder | None:
    try:
        blob = session.read(PENDING_ORDER_DATA_KEY)
    except OSError as exc:
        log.warning("handoff_read_failed", error=str(exc))
        return None
    if blob is None:
        return None
    try:
        return PendingOrder.from_blob(blob)
    except (ValueError, KeyError, TypeError) as exc:
        log.warning("handoff_corrupt", error=str(exc))
        return None


def clear_handoff(session: LocalStorage) -> None:
    """Best effort; a failure is logged."""
    for key in (PENDING_ORDER_ID_KEY, PENDING_ORDER_DATA_KEY):
        try:
            session.remove(key)
        except OSError as exc:
            log.warning("handoff_clear_failed", key=key, error=str(exc))


__all__ = ("PendingOrder", "stage_handoff", "read_handoff", "clear_handoff")

"""
Cart: line items keyed by (product, size), synced across sign-in.

    from kixstore import cart as CT

    service = CT.CartService(store, local, queue)
    resolver.subscribe(service.handle_transition)
    service.add_item(product, 9)
"""

from kixstore.cart._types import LineKey, CartLine
from kixstore.cart._ledger import CartLedger
from kixstore.cart._service import CartService, CART_RESOURCE, merge_cart_lines

__all__ = (
    "LineKey",
    "CartLine",
    "CartLedger",
    "CartService",
    "CART_RESOURCE",
    "merge_cart_lines",
)

"""
kixstore: storefront core for a shoe retailer.

    from kixstore import Storefront, Settings

    shop = await Storefront.open(Settings.from_env())
    await shop.start()

    from kixstore import cart as CT        # Cart ledger + sync
    from kixstore import checkout as CO    # Checkout attempts, handoff
    from kixstore import idempotency as I  # At-most-once execution
"""

from kixstore import cart
from kixstore import catalog
from kixstore import checkout
from kixstore import favorites
from kixstore import idempotency
from kixstore import identity
from kixstore import orders
from kixstore import payment
from kixstore import pricing
from kixstore import profiles
from kixstore import promo
from kixstore import storage
from kixstore import sync
from kixstore._logging import configure_logging
from kixstore._types import Lazy, Listener, Money, Subscription
from kixstore.config import Settings
from kixstore.errors import (
    ValidationError,
    NotFoundError,
    PermissionDeniedError,
    TransientIOError,
    PaymentDeclinedError,
    StorefrontError,
)
from kixstore.storefront import Storefront

__version__ = "0.1.0"

__all__ = (
    "cart",
    "catalog",
    "checkout",
    "favorites",
    "idempotency",
    "identity",
    "orders",
    "payment",
    "pricing",
    "profiles",
    "promo",
    "storage",
    "sync",
    "configure_logging",
    "Lazy",
    "Listener",
    "Money",
    "Subscription",
    "Settings",
    "ValidationError",
    "NotFoundError",
    "PermissionDeniedError",
    "TransientIOError",
    "PaymentDeclinedError",
    "StorefrontError",
    "Storefront",
)

"""Pytest fixtures for kixstore tests."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from kixstore.address import validate_address
from kixstore.cart import CartLine, CartService
from kixstore.catalog import Category, Product
from kixstore.favorites import FavoritesService
from kixstore.identity import IdentityResolver
from kixstore.orders import Order, OrderRepository
from kixstore.pricing import price
from kixstore.profiles import ProfileService, Role
from kixstore.storage import MemoryDocumentStore, MemoryLocalStorage, SessionStorage, WriteQueue

ORDER_DATE = datetime(2024, 6, 1, 12, tzinfo=timezone.utc)

ADDRESS_FORM = {
    "full_name": "Sam Rivera",
    "email": "sam@example.com",
    "phone": "555-123-4567",
    "street": "1 Main St",
    "apartment": "",
    "city": "Portland",
    "state": "OR",
    "zip": "97201",
    "country": "US",
}


@pytest.fixture
def make_product():
    """Factory for catalog products."""

    def _make(
        product_id: str = "p1",
        price: str = "50",
        *,
        name: str | None = None,
        category: Category = Category.MENS,
        **fields,
    ) -> Product:
        return Product(
            id=product_id,
            name=name or f"Shoe {product_id}",
            brand="Nike",
            price=Decimal(price),
            category=category,
            **fields,
        )

    return _make


@pytest.fixture
def product(make_product) -> Product:
    return make_product("p1", "50")


@pytest.fixture
def store() -> MemoryDocumentStore:
    return MemoryDocumentStore()


@pytest.fixture
def local() -> MemoryLocalStorage:
    return MemoryLocalStorage()


@pytest.fixture
def queue() -> WriteQueue:
    return WriteQueue()


@pytest.fixture
def identity() -> IdentityResolver:
    return IdentityResolver()


@pytest.fixture
def cart(store, local, queue, identity) -> CartService:
    """Cart subscribed to the identity channel."""
    service = CartService(store, local, queue)
    identity.subscribe(service.handle_transition)
    return service


@pytest.fixture
def favorites(store, local, queue, identity) -> FavoritesService:
    service = FavoritesService(store, local, queue)
    identity.subscribe(service.handle_transition)
    return service


@pytest.fixture
def profiles(store) -> ProfileService:
    return ProfileService(store)


@pytest.fixture
async def admin_id(profiles) -> str:
    """An administrator account."""
    await profiles.create("admin", "admin@example.com", "Admin")
    await profiles.set_role("admin", Role.ADMIN)
    return "admin"


@pytest.fixture
def address_form() -> dict[str, str]:
    return dict(ADDRESS_FORM)


@pytest.fixture
def session() -> SessionStorage:
    return SessionStorage()


@pytest.fixture
def orders(store, profiles) -> OrderRepository:
    return OrderRepository(store, profiles)


@pytest.fixture
def make_order(product, address_form):
    """Factory for order snapshots: two of `product` in size 9, $100 subtotal."""

    def _make(user_id: str = "u1", **fields) -> Order:
        fields.setdefault("order_date", ORDER_DATE)
        subtotal = product.price * 2
        return Order.snapshot(
            user_id=user_id,
            user_email=f"{user_id}@example.com",
            lines=(CartLine.from_product(product, 9, 2),),
            address=validate_address(address_form).unwrap(),
            quote=price(subtotal),
            promo_code=None,
            **fields,
        )

    return _make

"""
Product catalog.

Reads degrade gracefully: an empty or unreachable store serves the seed
catalog instead of failing the page. Admin writes are gated on the admin
role and invalidate cached lookups.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from typing import Any

from kungfu import LazyCoroResult, Result, Ok, Error
from pydantic import ValidationError as PydanticValidationError

from kixstore._logging import get_logger
from kixstore._types import Subscription
from kixstore.catalog._cache import CacheExecutor, LocalTier, Tier, cache
from kixstore.catalog._seed import SEED_PRODUCTS
from kixstore.catalog._types import Category, Product
from kixstore.errors import (
    NotFoundError,
    PermissionDeniedError,
    TransientIOError,
    ValidationError,
)
from kixstore.profiles import ProfileService
from kixstore.storage import ALL, DELETE_FIELD, PRODUCTS, DocumentStore, Query, Snapshot

log = get_logger("catalog")

NEW_ARRIVALS_LIMIT = 8
TRENDING_LIMIT = 3
REMOVABLE_FIELDS = frozenset({"original_price", "discount_percent", "on_sale"})

type AdminError = PermissionDeniedError | ValidationError | NotFoundError | TransientIOError


def _validation_error(exc: PydanticValidationError) -> ValidationError:
    fields = {str(e["loc"][0]) if e["loc"] else "__root__": e["msg"] for e in exc.errors()}
    return ValidationError("Invalid product data", fields)


class Catalog:
    """
    Example:
        catalog = Catalog(store, profiles)
        trending = await catalog.trending()
        match await catalog.by_id("1"):
            case Ok(product): ...
            case Error(NotFoundError()): ...
    """

    def __init__(
        self,
        store: DocumentStore,
        profiles: ProfileService,
        tier: Tier[Product] | None = None,
        seed: Iterable[Product] = SEED_PRODUCTS,
    ) -> None:
        self._store = store
        self._profiles = profiles
        self._seed = tuple(seed)
        self._lookup: CacheExecutor[str, Product, NotFoundError | TransientIOError] = (
            cache(lambda product_id: f"product:{product_id}", self._fetch)
            .tier(tier if tier is not None else LocalTier(max_size=256))
            .build()
        )

    # ─── reads ───────────────────────────────────────────────────────────────

    def _decode(self, snapshots: list[Snapshot]) -> list[Product]:
        products = []
        for snapshot in snapshots:
            try:
                products.append(Product.from_doc(snapshot.id, snapshot.data))
            except PydanticValidationError as exc:
                log.error("product_corrupt", product_id=snapshot.id, error=str(exc))
        return products

    def _fetch(self, product_id: str) -> LazyCoroResult[Product, NotFoundError | TransientIOError]:
        async def run() -> Result[Product, NotFoundError | TransientIOError]:
            match await self._store.get(PRODUCTS, product_id):
                case Ok(None):
                    return Error(NotFoundError("Product", product_id))
                case Ok(doc):
                    try:
                        return Ok(Product.from_doc(product_id, doc))
                    except PydanticValidationError as exc:
                        log.error("product_corrupt", product_id=product_id, error=str(exc))
                        return Error(NotFoundError("Product", product_id))
                case Error(err):
                    return Error(TransientIOError("Could not load product", err.cause))

        return LazyCoroResult(run)

    async def _query(self, query: Query, fallback: Callable[[Product], bool]) -> list[Product]:
        match await self._store.query(PRODUCTS, query):
            case Ok(snapshots) if snapshots:
                return self._decode(snapshots)
            case Ok(_) if await self.has_products():
                # Filter matched nothing in a stocked catalog.
                return []
            case Ok(_):
                log.debug("catalog_seed_fallback", reason="empty")
            case Error(err):
                log.warning("catalog_seed_fallback", reason="store_error", error=err.message)
        return [p for p in self._seed if fallback(p)]

    async def all(self) -> list[Product]:
        return await self._query(ALL, lambda _: True)

    async def by_id(self, product_id: str) -> Result[Product, NotFoundError]:
        """Cached lookup; seed products answer when the store cannot."""
        match await self._lookup.get(product_id):
            case Ok(cached):
                return Ok(cached.value)
            case Error(err):
                if isinstance(err, TransientIOError):
                    log.warning("product_read_failed", product_id=product_id, error=err.message)
        for product in self._seed:
            if product.id == product_id:
                return Ok(product)
        return Error(NotFoundError("Product", product_id))

    async def find(self, product_id: str) -> Product | None:
        match await self.by_id(product_id):
            case Ok(product):
                return product
            case _:
                return None

    async def by_category(self, category: Category) -> list[Product]:
        return await self._query(
            Query().where("category", category.value),
            lambda p: p.category is category,
        )

    async def new_arrivals(self) -> list[Product]:
        products = await self._query(
            Query().where("is_new_arrival", True),
            lambda p: p.is_new_arrival,
        )
        return products[:NEW_ARRIVALS_LIMIT]

    async def trending(self, limit: int = TRENDING_LIMIT) -> list[Product]:
        """Most reviewed first, rating breaks ties."""
        products = await self.all()
        products.sort(key=lambda p: (p.review_count, p.rating), reverse=True)
        return products[:limit]

    async def trending_with_rank(self) -> list[tuple[int, Product]]:
        return list(enumerate(await self.trending(), start=1))

    async def on_sale(self) -> list[Product]:
        return [p for p in await self.all() if p.on_sale]

    async def has_products(self) -> bool:
        match await self._store.query(PRODUCTS, ALL.limit(1)):
            case Ok(snapshots):
                return bool(snapshots)
            case Error(err):
                log.warning("catalog_check_failed", error=err.message)
                return False

    async def watch(self, listener: Callable[[list[Product]], None]) -> Result[Subscription, TransientIOError]:
        """Live catalog. Cancel the subscription on teardown."""

        def deliver(snapshots: list[Snapshot]) -> None:
            listener(self._decode(snapshots) if snapshots else list(self._seed))

        match await self._store.subscribe(PRODUCTS, ALL, deliver):
            case Ok(subscription):
                return Ok(subscription)
            case Error(err):
                return Error(TransientIOError("Could not watch catalog", err.cause))

    # ─── admin ───────────────────────────────────────────────────────────────

    async def _admin(self, actor_id: str | None) -> Result[None, PermissionDeniedError | TransientIOError]:
        match await self._profiles.require_admin(actor_id):
            case Ok(_):
                return Ok(None)
            case Error(err):
                return Error(err)

    async def add_product(self, actor_id: str | None, data: Mapping[str, Any]) -> Result[Product, AdminError]:
        match await self._admin(actor_id):
            case Error(err):
                return Error(err)
            case Ok(_):
                pass
        try:
            draft = Product.model_validate({**data, "id": "draft"})
        except PydanticValidationError as exc:
            return Error(_validation_error(exc))

        match await self._store.add(PRODUCTS, draft.to_doc()):
            case Ok(product_id):
                log.info("product_added", product_id=product_id, actor=actor_id)
                return Ok(draft.model_copy(update={"id": product_id}))
            case Error(err):
                return Error(TransientIOError("Could not add product", err.cause))

    async def update_product(
        self,
        actor_id: str | None,
        product_id: str,
        changes: Mapping[str, Any],
    ) -> Result[Product, AdminError]:
        """Patch fields; None values are skipped (use remove_fields to drop)."""
        match await self._admin(actor_id):
            case Error(err):
                return Error(err)
            case Ok(_):
                pass

        clean = {k: v for k, v in changes.items() if v is not None and k != "id"}
        match await self._store.get(PRODUCTS, product_id):
            case Ok(None):
                return Error(NotFoundError("Product", product_id))
            case Ok(doc):
                pass
            case Error(err):
                return Error(TransientIOError("Could not load product", err.cause))

        try:
            updated = Product.from_doc(product_id, {**doc, **clean})
        except PydanticValidationError as exc:
            return Error(_validation_error(exc))

        stored = updated.to_doc()
        match await self._store.update(PRODUCTS, product_id, {k: stored[k] for k in clean if k in stored}):
            case Ok(True):
                await self._lookup.invalidate(product_id)
                log.info("product_updated", product_id=product_id, fields=sorted(clean), actor=actor_id)
                return Ok(updated)
            case Ok(_):
                return Error(NotFoundError("Product", product_id))
            case Error(err):
                return Error(TransientIOError("Could not update product", err.cause))

    async def remove_fields(
        self,
        actor_id: str | None,
        product_id: str,
        fields: Iterable[str],
    ) -> Result[None, AdminError]:
        """Drop optional sale fields, e.g. when a sale ends."""
        match await self._admin(actor_id):
            case Error(err):
                return Error(err)
            case Ok(_):
                pass

        names = set(fields)
        if unknown := names - REMOVABLE_FIELDS:
            return Error(
                ValidationError(
                    "Only sale fields can be removed",
                    {name: "cannot be removed" for name in sorted(unknown)},
                )
            )

        match await self._store.update(PRODUCTS, product_id, {name: DELETE_FIELD for name in names}):
            case Ok(True):
                await self._lookup.invalidate(product_id)
                log.info("product_fields_removed", product_id=product_id, fields=sorted(names))
                return Ok(None)
            case Ok(_):
                return Error(NotFoundError("Product", product_id))
            case Error(err):
                return Error(TransientIOError("Could not update product", err.cause))

    async def delete_product(self, actor_id: str | None, product_id: str) -> Result[bool, AdminError]:
        match await self._admin(actor_id):
            case Error(err):
                return Error(err)
            case Ok(_):
                pass

        match await self._store.delete(PRODUCTS, product_id):
            case Ok(existed):
                await self._lookup.invalidate(product_id)
                log.info("product_deleted", product_id=product_id, existed=existed)
                return Ok(existed)
            case Error(err):
                return Error(TransientIOError("Could not delete product", err.cause))

    async def import_seed(self, actor_id: str | None) -> Result[int, AdminError]:
        """One batch write of the seed catalog under its own ids."""
        match await self._admin(actor_id):
            case Error(err):
                return Error(err)
            case Ok(_):
                pass

        match await self._store.set_many(PRODUCTS, {p.id: p.to_doc() for p in self._seed}):
            case Ok(count):
                await self._lookup.invalidate_pattern("product:*")
                log.info("catalog_imported", count=count)
                return Ok(count)
            case Error(err):
                return Error(TransientIOError("Could not import catalog", err.cause))


__all__ = ("Catalog", "AdminError", "NEW_ARRIVALS_LIMIT", "TRENDING_LIMIT", "REMOVABLE_FIELDS")

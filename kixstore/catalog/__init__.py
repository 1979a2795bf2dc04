"""
Product catalog: products, reviews and the lookup cache.

    catalog = Catalog(store, profiles)
    await catalog.trending()            # top 3 by review count
    await catalog.by_category(Category.KIDS)

    reviews = ReviewStore(store)
    await reviews.average_rating("1")
"""

from kixstore.catalog._types import (
    Category,
    STANDARD_SIZES,
    KIDS_SIZES,
    Product,
    Review,
)
from kixstore.catalog._cache import (
    Tier,
    LocalTier,
    CacheResult,
    Cache,
    CacheExecutor,
    cache,
)
from kixstore.catalog._seed import SEED_PRODUCTS, seed_by_id
from kixstore.catalog._service import (
    Catalog,
    AdminError,
    NEW_ARRIVALS_LIMIT,
    TRENDING_LIMIT,
    REMOVABLE_FIELDS,
)
from kixstore.catalog._reviews import ReviewStore

__all__ = (
    # Models
    "Category",
    "STANDARD_SIZES",
    "KIDS_SIZES",
    "Product",
    "Review",
    # Cache
    "Tier",
    "LocalTier",
    "CacheResult",
    "Cache",
    "CacheExecutor",
    "cache",
    # Seed
    "SEED_PRODUCTS",
    "seed_by_id",
    # Services
    "Catalog",
    "AdminError",
    "NEW_ARRIVALS_LIMIT",
    "TRENDING_LIMIT",
    "REMOVABLE_FIELDS",
    "ReviewStore",
)

"""
Seed catalog: served when the store is empty or unreachable, and imported
by an admin to populate a fresh store.
"""

from __future__ import annotations

from decimal import Decimal

from kixstore.catalog._types import KIDS_SIZES, STANDARD_SIZES, Category, Product


def _product(
    id: str,
    name: str,
    price: int,
    category: Category,
    rating: float,
    review_count: int,
    *,
    original_price: int | None = None,
    discount_percent: int | None = None,
    new: bool = False,
    trending: bool = False,
    description: str = "",
) -> Product:
    slug = name.lower().replace(" ", "-")
    image = f"/images/shoes/{slug}.png"
    sizes = KIDS_SIZES if category is Category.KIDS else STANDARD_SIZES
    return Product(
        id=id,
        name=name,
        brand="Nike",
        price=Decimal(price),
        original_price=Decimal(original_price) if original_price is not None else None,
        discount_percent=discount_percent,
        on_sale=original_price is not None,
        category=category,
        image_url=image,
        images=[image, image, image],
        rating=rating,
        review_count=review_count,
        is_new_arrival=new,
        is_trending=trending,
        description=description,
        features=["Cushioned midsole", "Breathable upper", "Rubber outsole"],
        sizes=list(sizes),
    )


M, W, K = Category.MENS, Category.WOMENS, Category.KIDS

SEED_PRODUCTS: tuple[Product, ...] = (
    _product("1", "Air Max 90 FlyEase", 160, M, 5, 67, new=True,
             description="Easy-entry Air Max with a padded collar."),
    _product("2", "Cosmic Unity", 80, M, 5, 94, original_price=100, discount_percent=20, new=True,
             description="Court shoe built partly from recycled material."),
    _product("3", "Air Zoom Maroon", 125, W, 4, 43, original_price=165, discount_percent=24, new=True,
             description="Responsive Zoom cushioning in a deep maroon."),
    _product("4", "Air Zoom Pegasus 37", 960, M, 4, 56, original_price=1160, discount_percent=35,
             new=True, trending=True, description="Everyday trainer with a springy forefoot."),
    _product("5", "Air Max 90 Essential", 165, W, 4, 78, new=True,
             description="The classic waffle sole and visible Air unit."),
    _product("6", "Cosmic Unity 2", 960, M, 5, 51, original_price=1160, discount_percent=35,
             new=True, trending=True, description="Second take on the sustainable court shoe."),
    _product("7", "Junior Air Max", 165, K, 4, 29, new=True,
             description="Air Max comfort sized for kids."),
    _product("8", "Pegasus Trail", 960, W, 4, 38, original_price=1160, discount_percent=35,
             new=True, trending=True, description="Road-to-trail runner with a grippy outsole."),
    _product("9", "Air Max 90 Retro", 160, M, 5, 127, trending=True,
             description="Original colorways, original shape."),
    _product("10", "Cosmic Unity Pro", 75, M, 5, 89, original_price=100, discount_percent=25,
             trending=True, description="Lighter build for faster cuts."),
    _product("11", "Air Zoom Elite", 165, W, 4, 34, trending=True,
             description="Race-day Zoom with a snug fit."),
    _product("12", "Pegasus Shield", 960, M, 4, 47, original_price=1160, discount_percent=35,
             trending=True, description="Weather-ready Pegasus for wet miles."),
    _product("13", "Air Max 90 Premium", 165, W, 4, 63, trending=True,
             description="Premium leather overlays on the 90 silhouette."),
    _product("14", "Cosmic Unity Kids", 960, K, 5, 22, original_price=1160, discount_percent=35,
             trending=True, description="Eco-minded court shoe for young players."),
    _product("15", "Air Zoom Junior", 165, K, 4, 31, trending=True,
             description="Zoom cushioning for playground sprints."),
    _product("16", "Pegasus Junior", 960, K, 4, 18, original_price=1160, discount_percent=35,
             trending=True, description="Pegasus ride in kids sizes."),
    _product("17", "Air Max Plus", 145, M, 4, 52,
             description="Tuned Air with a wavy upper."),
    _product("18", "Cosmic Unity Women", 185, W, 5, 156,
             description="Cosmic Unity on a women's last."),
    _product("19", "Air Max Kids", 75, K, 4, 24,
             description="Everyday Air Max for kids."),
)


def seed_by_id(product_id: str) -> Product | None:
    for product in SEED_PRODUCTS:
        if product.id == product_id:
            return product
    return None


__all__ = ("SEED_PRODUCTS", "seed_by_id")

"""
Favorites: an ordered set of product ids, synced across sign-in.
"""

from kixstore.favorites._set import FavoritesSet
from kixstore.favorites._service import FavoritesService, FAVORITES_RESOURCE

__all__ = ("FavoritesSet", "FavoritesService", "FAVORITES_RESOURCE")

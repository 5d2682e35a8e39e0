"""
Catalog Service

Read-only lookups of restaurants, menu categories and menu items.
"""

import logging
from typing import List, Optional

from storefront.core.errors import NotFoundError
from storefront.schemas import MenuCategory, MenuItem, MenuSection, Restaurant
from storefront.services.storage.base import StorageBackend

logger = logging.getLogger(__name__)


class CatalogService:
    """Restaurant and menu browsing on top of the storage collaborator."""

    def __init__(self, storage: StorageBackend):
        self.storage = storage

    async def list_restaurants(
        self,
        search: Optional[str] = None,
        min_rating: Optional[float] = None,
    ) -> List[Restaurant]:
        """
        List restaurants, optionally filtered.

        Args:
            search: Case-insensitive substring of the name or cuisines
            min_rating: Keep restaurants rated at least this much

        Returns:
            Matching restaurants in id order
        """
        restaurants = sorted(await self.storage.list_restaurants(), key=lambda r: r.id)

        needle = (search or "").strip().casefold()
        if needle:
            restaurants = [
                r for r in restaurants
                if needle in r.name.casefold() or needle in r.cuisines.casefold()
            ]
        if min_rating is not None:
            restaurants = [r for r in restaurants if r.rating >= min_rating]

        logger.debug(f"Listed {len(restaurants)} restaurants (search={search!r}, min_rating={min_rating})")
        return restaurants

    async def get_restaurant(self, restaurant_id: int) -> Restaurant:
        restaurant = await self.storage.get_restaurant(restaurant_id)
        if restaurant is None:
            raise NotFoundError(f"Restaurant #{restaurant_id} not found")
        return restaurant

    async def list_categories(self, restaurant_id: int) -> List[MenuCategory]:
        await self.get_restaurant(restaurant_id)
        return await self.storage.list_menu_categories(restaurant_id)

    async def list_menu_items(
        self,
        restaurant_id: int,
        category_id: Optional[int] = None,
        veg_only: bool = False,
    ) -> List[MenuItem]:
        await self.get_restaurant(restaurant_id)

        if category_id is not None:
            items = await self.storage.list_menu_items_by_category(category_id)
            items = [i for i in items if i.restaurant_id == restaurant_id]
        else:
            items = await self.storage.list_menu_items_by_restaurant(restaurant_id)

        if veg_only:
            items = [i for i in items if i.is_veg]
        return items

    async def get_menu(self, restaurant_id: int) -> List[MenuSection]:
        """Categories of the restaurant, each with its items."""
        categories = await self.list_categories(restaurant_id)
        items = await self.storage.list_menu_items_by_restaurant(restaurant_id)
        return [
            MenuSection(
                category=category,
                items=[i for i in items if i.category_id == category.id],
            )
            for category in categories
        ]

    async def get_menu_item(self, menu_item_id: int) -> MenuItem:
        item = await self.storage.get_menu_item(menu_item_id)
        if item is None:
            raise NotFoundError(f"Menu item #{menu_item_id} not found")
        return item

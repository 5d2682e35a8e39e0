"""
In-Memory Storage Implementation

Map-based tables with sequential integer ids, held for the lifetime of the
process. Used in development mode (ENV_MODE=development) and by the test
suite to:
    - Run the storefront without a database server
    - Exercise the cart and order engines quickly and deterministically

Behavior:
    - Ids start at 1 per table and are never reused
    - Merges on a cart are serialized by a per-cart asyncio.Lock
    - Starting, replacing and deleting carts and creating orders hold a
      store-wide lock

Author: Your Name
Version: 3.0.0
"""

import asyncio
import itertools
import logging
from collections import defaultdict
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from storefront.core.errors import NotFoundError
from storefront.schemas import (
    Cart,
    CartCreate,
    CartItem,
    CartItemCreate,
    CartItemWithMenuItem,
    CartWithItems,
    MenuCategory,
    MenuCategoryCreate,
    MenuItem,
    MenuItemCreate,
    Order,
    OrderCreate,
    OrderItem,
    OrderItemCreate,
    Restaurant,
    RestaurantCreate,
)

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class MemoryStorage:
    """
    In-process implementation of the storage collaborator.

    Attributes:
        clock: Callable returning the timestamp stamped on new carts/orders

    Example:
        >>> storage = MemoryStorage()
        >>> restaurant = await storage.create_restaurant(
        ...     RestaurantCreate(name="Urban Cafe", delivery_fee="₹25")
        ... )
        >>> print(restaurant.id)
        1
    """

    def __init__(self, clock: Callable[[], datetime] = _utc_now):
        self.clock = clock

        self._restaurants: Dict[int, Restaurant] = {}
        self._menu_categories: Dict[int, MenuCategory] = {}
        self._menu_items: Dict[int, MenuItem] = {}
        self._carts: Dict[int, Cart] = {}
        self._cart_items: Dict[int, CartItem] = {}
        self._orders: Dict[int, Order] = {}
        self._order_items: Dict[int, OrderItem] = {}

        self._ids = defaultdict(lambda: itertools.count(1))

        self._store_lock = asyncio.Lock()
        self._cart_locks: Dict[int, asyncio.Lock] = defaultdict(asyncio.Lock)

        logger.info("MemoryStorage initialized")

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "memory"

    def _next_id(self, table: str) -> int:
        return next(self._ids[table])

    # -------------------------------------------------------------------------
    # Catalog
    # -------------------------------------------------------------------------

    async def create_restaurant(self, data: RestaurantCreate) -> Restaurant:
        restaurant = Restaurant(id=self._next_id("restaurants"), **data.model_dump())
        self._restaurants[restaurant.id] = restaurant
        return restaurant

    async def list_restaurants(self) -> List[Restaurant]:
        return list(self._restaurants.values())

    async def get_restaurant(self, restaurant_id: int) -> Optional[Restaurant]:
        return self._restaurants.get(restaurant_id)

    async def create_menu_category(self, data: MenuCategoryCreate) -> MenuCategory:
        category = MenuCategory(id=self._next_id("menu_categories"), **data.model_dump())
        self._menu_categories[category.id] = category
        return category

    async def list_menu_categories(self, restaurant_id: int) -> List[MenuCategory]:
        return [
            category for category in self._menu_categories.values()
            if category.restaurant_id == restaurant_id
        ]

    async def create_menu_item(self, data: MenuItemCreate) -> MenuItem:
        item = MenuItem(id=self._next_id("menu_items"), **data.model_dump())
        self._menu_items[item.id] = item
        return item

    async def get_menu_item(self, menu_item_id: int) -> Optional[MenuItem]:
        return self._menu_items.get(menu_item_id)

    async def list_menu_items_by_restaurant(self, restaurant_id: int) -> List[MenuItem]:
        return [
            item for item in self._menu_items.values()
            if item.restaurant_id == restaurant_id
        ]

    async def list_menu_items_by_category(self, category_id: int) -> List[MenuItem]:
        return [
            item for item in self._menu_items.values()
            if item.category_id == category_id
        ]

    # -------------------------------------------------------------------------
    # Carts
    # -------------------------------------------------------------------------

    async def get_or_start_cart(self, data: CartCreate) -> Tuple[Cart, bool]:
        async with self._store_lock:
            carts = self._carts_of(data.user_id)
            if carts and carts[0].restaurant_id == data.restaurant_id:
                return carts[0], False

            for stale in carts:
                await self._drop_cart(stale.id)
                logger.info(
                    f"Cart #{stale.id} of {data.user_id} dropped: switching from "
                    f"restaurant #{stale.restaurant_id} to #{data.restaurant_id}"
                )

            cart = Cart(
                id=self._next_id("carts"),
                created_at=self.clock(),
                **data.model_dump(),
            )
            self._carts[cart.id] = cart
        return cart, True

    async def _drop_cart(self, cart_id: int) -> None:
        """Remove a cart and its lines. Caller holds _store_lock."""
        async with self._cart_locks[cart_id]:
            for line_id in [
                i.id for i in self._cart_items.values() if i.cart_id == cart_id
            ]:
                del self._cart_items[line_id]
            del self._carts[cart_id]
        self._cart_locks.pop(cart_id, None)

    def _carts_of(self, user_id: str) -> List[Cart]:
        """Carts of the user, newest first."""
        carts = [cart for cart in self._carts.values() if cart.user_id == user_id]
        return sorted(carts, key=lambda c: (c.created_at, c.id), reverse=True)

    async def get_latest_cart(self, user_id: str) -> Optional[Cart]:
        carts = self._carts_of(user_id)
        return carts[0] if carts else None

    async def get_cart_by_id(self, cart_id: int) -> Optional[Cart]:
        return self._carts.get(cart_id)

    async def get_cart_with_items(self, user_id: str) -> Optional[CartWithItems]:
        cart = await self.get_latest_cart(user_id)
        if cart is None:
            return None

        restaurant = self._restaurants.get(cart.restaurant_id)
        if restaurant is None:
            return None

        items = []
        for line in sorted(self._cart_items.values(), key=lambda i: i.id):
            if line.cart_id != cart.id:
                continue
            menu_item = self._menu_items.get(line.menu_item_id)
            if menu_item is None:
                continue
            items.append(CartItemWithMenuItem(**line.model_dump(), menu_item=menu_item))

        return CartWithItems(**cart.model_dump(), restaurant=restaurant, items=items)

    async def delete_carts_for_user(self, user_id: str) -> int:
        async with self._store_lock:
            carts = self._carts_of(user_id)
            for cart in carts:
                await self._drop_cart(cart.id)
        return len(carts)

    async def delete_cart(self, cart_id: int) -> bool:
        async with self._store_lock:
            if cart_id not in self._carts:
                return False
            await self._drop_cart(cart_id)
        return True

    async def get_cart_item(self, cart_item_id: int) -> Optional[CartItem]:
        return self._cart_items.get(cart_item_id)

    async def add_cart_item(self, data: CartItemCreate) -> CartItem:
        async with self._cart_locks[data.cart_id]:
            if data.cart_id not in self._carts:
                # The cart was dropped while this add waited
                self._cart_locks.pop(data.cart_id, None)
                raise NotFoundError(f"Cart #{data.cart_id} no longer exists")

            existing = next(
                (
                    line for line in self._cart_items.values()
                    if line.cart_id == data.cart_id
                    and line.menu_item_id == data.menu_item_id
                    and line.size == data.size
                    and line.extras == data.extras
                ),
                None,
            )
            if existing is not None:
                merged = existing.model_copy(
                    update={"quantity": existing.quantity + data.quantity}
                )
                self._cart_items[merged.id] = merged
                return merged

            line = CartItem(id=self._next_id("cart_items"), **data.model_dump())
            self._cart_items[line.id] = line
            return line

    async def update_cart_item_quantity(
        self, cart_item_id: int, quantity: int
    ) -> Optional[CartItem]:
        line = self._cart_items.get(cart_item_id)
        if line is None:
            return None
        async with self._cart_locks[line.cart_id]:
            # Re-read under the lock; a concurrent delete may have won
            line = self._cart_items.get(cart_item_id)
            if line is None:
                return None
            updated = line.model_copy(update={"quantity": quantity})
            self._cart_items[cart_item_id] = updated
            return updated

    async def delete_cart_item(self, cart_item_id: int) -> bool:
        line = self._cart_items.get(cart_item_id)
        if line is None:
            return False
        async with self._cart_locks[line.cart_id]:
            return self._cart_items.pop(cart_item_id, None) is not None

    # -------------------------------------------------------------------------
    # Orders
    # -------------------------------------------------------------------------

    async def create_order(
        self, data: OrderCreate, items: Sequence[OrderItemCreate]
    ) -> Order:
        async with self._store_lock:
            # Build every row before touching the tables so a bad item leaves no trace
            order = Order(
                id=self._next_id("orders"),
                created_at=self.clock(),
                **data.model_dump(),
            )
            rows = [
                OrderItem(
                    id=self._next_id("order_items"),
                    order_id=order.id,
                    **item.model_dump(),
                )
                for item in items
            ]
            self._orders[order.id] = order
            for row in rows:
                self._order_items[row.id] = row
        return order

    async def get_order(self, order_id: int) -> Optional[Order]:
        return self._orders.get(order_id)

    async def list_orders_for_user(self, user_id: str) -> List[Order]:
        orders = [order for order in self._orders.values() if order.user_id == user_id]
        return sorted(orders, key=lambda o: (o.created_at, o.id), reverse=True)

    async def list_order_items(self, order_id: int) -> List[OrderItem]:
        return sorted(
            (item for item in self._order_items.values() if item.order_id == order_id),
            key=lambda i: i.id,
        )

    async def health_check(self) -> bool:
        """In-process tables are always reachable."""
        return True

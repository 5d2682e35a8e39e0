"""
Cart Engine

Owns the per-user cart: one cart per user, scoped to one restaurant.

Rules:
    - Adding an item from another restaurant discards the current cart first
    - Adding a selection already in the cart (same menu item, size and
      extras after normalization) increments its quantity
    - A quantity below 1 removes the line; zero is never stored
    - Every mutation returns a fresh read of the joined cart

Normalization of the merge key:
    - size: surrounding whitespace stripped, empty means "regular"
    - extras: split on commas, entries stripped, empty entries dropped,
      re-joined with "," (order and case preserved)

Author: Your Name
Version: 3.0.0
"""

import logging
from typing import Optional

from storefront.core.errors import ForbiddenError, NotFoundError, ValidationError
from storefront.schemas import Cart, CartCreate, CartItem, CartItemCreate, CartWithItems, PriceBreakdown
from storefront.services.catalog import CatalogService
from storefront.services.pricing import price_cart
from storefront.services.storage.base import StorageBackend

logger = logging.getLogger(__name__)

DEFAULT_SIZE = "regular"


def normalize_size(size: Optional[str]) -> str:
    size = (size or "").strip()
    return size or DEFAULT_SIZE


def normalize_extras(extras: Optional[str]) -> str:
    parts = (part.strip() for part in (extras or "").split(","))
    return ",".join(part for part in parts if part)


class CartService:
    """
    Cart operations for a user identity (a real user id or the guest sentinel).

    Example:
        >>> carts = CartService(storage)
        >>> cart = await carts.add_item("guest", menu_item_id=5, restaurant_id=2, quantity=2)
        >>> print(len(cart.items))
        1
    """

    def __init__(self, storage: StorageBackend, catalog: Optional[CatalogService] = None):
        self.storage = storage
        self.catalog = catalog or CatalogService(storage)

    async def get_cart(self, user_id: str) -> Optional[CartWithItems]:
        """Most recent cart of the user with restaurant and menu details, or None."""
        return await self.storage.get_cart_with_items(user_id)

    async def start_or_reuse_cart(self, user_id: str, restaurant_id: int) -> Cart:
        """
        Return the user's cart for restaurant_id, creating it if needed.

        A cart bound to another restaurant is deleted together with its
        line items in the same storage step that creates the new one.

        Raises:
            NotFoundError: If the restaurant does not exist
        """
        await self.catalog.get_restaurant(restaurant_id)

        cart, created = await self.storage.get_or_start_cart(
            CartCreate(user_id=user_id, restaurant_id=restaurant_id)
        )
        if created:
            logger.info(f"Cart #{cart.id} created for {user_id} (restaurant #{restaurant_id})")
        return cart

    async def add_item(
        self,
        user_id: str,
        menu_item_id: int,
        restaurant_id: int,
        quantity: int = 1,
        size: str = DEFAULT_SIZE,
        extras: str = "",
        instructions: str = "",
    ) -> CartWithItems:
        """
        Add a selection to the user's cart, merging with an identical one.

        Raises:
            ValidationError: If quantity < 1 or the item is not on this restaurant's menu
            NotFoundError: If the restaurant or menu item does not exist
        """
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1", detail=f"quantity={quantity}")

        await self.catalog.get_restaurant(restaurant_id)
        menu_item = await self.catalog.get_menu_item(menu_item_id)
        if menu_item.restaurant_id != restaurant_id:
            raise ValidationError(
                f"Menu item #{menu_item_id} is not served by restaurant #{restaurant_id}"
            )

        cart = await self.start_or_reuse_cart(user_id, restaurant_id)
        line = await self.storage.add_cart_item(
            CartItemCreate(
                cart_id=cart.id,
                menu_item_id=menu_item_id,
                quantity=quantity,
                size=normalize_size(size),
                extras=normalize_extras(extras),
                instructions=(instructions or "").strip(),
            )
        )
        logger.info(
            f"Cart #{cart.id}: {menu_item.name} x{quantity} added "
            f"(line #{line.id} now x{line.quantity})"
        )

        return await self.get_cart(user_id)

    async def _check_owner(self, user_id: str, line: CartItem) -> None:
        cart = await self.storage.get_cart_by_id(line.cart_id)
        if cart is not None and cart.user_id != user_id:
            raise ForbiddenError(f"Cart item #{line.id} belongs to another cart")

    async def update_quantity(
        self, user_id: str, line_item_id: int, quantity: int
    ) -> Optional[CartWithItems]:
        """
        Set the quantity of a line item; below 1 removes it.

        Raises:
            NotFoundError: If a quantity >= 1 targets a missing line item
            ForbiddenError: If the line item is in another user's cart
        """
        line = await self.storage.get_cart_item(line_item_id)
        if line is not None:
            await self._check_owner(user_id, line)

        if quantity < 1:
            if line is not None:
                await self.storage.delete_cart_item(line_item_id)
                logger.info(f"Cart item #{line_item_id} removed (quantity {quantity})")
        else:
            if line is None:
                raise NotFoundError(f"Cart item #{line_item_id} not found")
            updated = await self.storage.update_cart_item_quantity(line_item_id, quantity)
            if updated is None:
                raise NotFoundError(f"Cart item #{line_item_id} not found")
            logger.debug(f"Cart item #{line_item_id} quantity set to {quantity}")

        return await self.get_cart(user_id)

    async def remove_item(self, user_id: str, line_item_id: int) -> Optional[CartWithItems]:
        """Delete a line item. Removing a missing item is not an error."""
        line = await self.storage.get_cart_item(line_item_id)
        if line is not None:
            await self._check_owner(user_id, line)
            await self.storage.delete_cart_item(line_item_id)
            logger.info(f"Cart item #{line_item_id} removed")
        return await self.get_cart(user_id)

    async def clear(self, user_id: str) -> None:
        """Delete the user's cart and its line items; no-op without a cart."""
        removed = await self.storage.delete_carts_for_user(user_id)
        if removed:
            logger.info(f"Cart of {user_id} cleared")

    def preview_totals(self, cart: CartWithItems) -> PriceBreakdown:
        """Cart-preview totals (no service fee)."""
        return price_cart(cart, include_service_fee=False)

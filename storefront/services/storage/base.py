"""
Storage Collaborator Interface

Defines the capability set the catalog, cart and order services consume.
MemoryStorage and DatabaseStorage both satisfy it structurally; neither
inherits from it, so a new backend only has to provide the same coroutines.

Atomicity contract:
    - add_cart_item merges or inserts as one serialized step per cart
    - create_order writes the order row and all its items or nothing
    - get_or_start_cart finds, replaces or creates the user's single cart
      as one step, so concurrent callers always end up with the same cart
    - delete_cart and delete_carts_for_user remove carts together with
      their line items

Author: Your Name
Version: 3.0.0
"""

from typing import List, Optional, Protocol, Sequence, Tuple, runtime_checkable

from storefront.schemas import (
    Cart,
    CartCreate,
    CartItem,
    CartItemCreate,
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


@runtime_checkable
class StorageBackend(Protocol):
    """
    Asynchronous CRUD capability set over the storefront tables.

    Read methods return None (single row) or an empty list when nothing
    matches. Implementations report infrastructure failures as
    storefront.core.errors.InternalError.

    Example:
        >>> storage = get_storage()
        >>> cart = await storage.get_cart_with_items("guest")
        >>> if cart is None:
        ...     print("No cart yet")
    """

    @property
    def provider_name(self) -> str:
        """
        Return the name of the storage backend.

        Returns:
            str: Backend name (e.g., "memory", "database")
        """
        ...

    # -------------------------------------------------------------------------
    # Catalog
    # -------------------------------------------------------------------------

    async def create_restaurant(self, data: RestaurantCreate) -> Restaurant: ...

    async def list_restaurants(self) -> List[Restaurant]: ...

    async def get_restaurant(self, restaurant_id: int) -> Optional[Restaurant]: ...

    async def create_menu_category(self, data: MenuCategoryCreate) -> MenuCategory: ...

    async def list_menu_categories(self, restaurant_id: int) -> List[MenuCategory]: ...

    async def create_menu_item(self, data: MenuItemCreate) -> MenuItem: ...

    async def get_menu_item(self, menu_item_id: int) -> Optional[MenuItem]: ...

    async def list_menu_items_by_restaurant(self, restaurant_id: int) -> List[MenuItem]: ...

    async def list_menu_items_by_category(self, category_id: int) -> List[MenuItem]: ...

    # -------------------------------------------------------------------------
    # Carts
    # -------------------------------------------------------------------------

    async def get_or_start_cart(self, data: CartCreate) -> Tuple[Cart, bool]:
        """
        Return the user's cart for data.restaurant_id, creating it if needed.

        A cart the user holds for another restaurant is deleted with its
        line items in the same step. Concurrent calls for one user resolve
        to a single cart.

        Returns:
            Tuple[Cart, bool]: The cart and whether it was just created
        """
        ...

    async def get_latest_cart(self, user_id: str) -> Optional[Cart]:
        """Most recently created cart of the user."""
        ...

    async def get_cart_with_items(self, user_id: str) -> Optional[CartWithItems]:
        """
        Most recent cart of the user joined with its restaurant and each
        line item's menu item, read as one consistent snapshot.
        """
        ...

    async def delete_carts_for_user(self, user_id: str) -> int:
        """
        Delete every cart of the user and their line items.

        Returns:
            int: Number of carts removed
        """
        ...

    async def delete_cart(self, cart_id: int) -> bool:
        """Delete one cart and its line items; False when it did not exist."""
        ...

    async def get_cart_by_id(self, cart_id: int) -> Optional[Cart]: ...

    async def get_cart_item(self, cart_item_id: int) -> Optional[CartItem]: ...

    async def add_cart_item(self, data: CartItemCreate) -> CartItem:
        """
        Insert a line item, or increment the quantity of the existing line
        with the same (cart_id, menu_item_id, size, extras).

        The lookup and the write are serialized per cart so two concurrent
        adds of the same selection never lose an increment.

        Raises:
            NotFoundError: If the cart was deleted before the write
        """
        ...

    async def update_cart_item_quantity(
        self, cart_item_id: int, quantity: int
    ) -> Optional[CartItem]:
        """Set quantity; None when the line item does not exist."""
        ...

    async def delete_cart_item(self, cart_item_id: int) -> bool:
        """Delete a line item; False when it did not exist."""
        ...

    # -------------------------------------------------------------------------
    # Orders
    # -------------------------------------------------------------------------

    async def create_order(
        self, data: OrderCreate, items: Sequence[OrderItemCreate]
    ) -> Order:
        """Persist an order and its line items atomically."""
        ...

    async def get_order(self, order_id: int) -> Optional[Order]: ...

    async def list_orders_for_user(self, user_id: str) -> List[Order]:
        """Orders of the user, newest first."""
        ...

    async def list_order_items(self, order_id: int) -> List[OrderItem]: ...

    async def health_check(self) -> bool:
        """
        Verify the backend is reachable.

        Returns:
            bool: True if the store answers queries
        """
        ...

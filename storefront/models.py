"""
SQLAlchemy Database Models

Relational schema for the storefront:
- Catalog: restaurants, menu categories, menu items
- Carts and their line items (one live cart per user)
- Orders and their point-in-time line items

Author: Your Name
Version: 3.0.0
"""

from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    Integer,
    String,
    Float,
    DateTime,
    Text,
    Boolean,
    ForeignKey,
    UniqueConstraint,
)
from storefront.database import Base


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# CATALOG
# =============================================================================

class Restaurant(Base):
    """Restaurant listing shown on the home page."""
    __tablename__ = "restaurants"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    image = Column(Text, nullable=False, default="")
    cuisines = Column(String(255), nullable=False, default="")
    rating = Column(Float, nullable=False, default=0.0)
    delivery_time = Column(String(50), nullable=False, default="")
    price_range = Column(String(20), nullable=False, default="")
    distance = Column(String(50), nullable=False, default="")

    # "Free" or a currency-prefixed amount such as "₹30"
    delivery_fee = Column(String(20), nullable=False, default="Free")
    promoted = Column(Boolean, nullable=False, default=False)
    offer = Column(String(255), nullable=False, default="")

    def __repr__(self) -> str:
        return f"<Restaurant(id={self.id}, name='{self.name}')>"


class MenuCategory(Base):
    """Menu section within a restaurant."""
    __tablename__ = "menu_categories"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)


class MenuItem(Base):
    """A dish. Read-only to the cart and order engines."""
    __tablename__ = "menu_items"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("menu_categories.id"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=False, default="")
    price = Column(Integer, nullable=False)
    image = Column(Text, nullable=False, default="")
    rating = Column(Float, nullable=False, default=0.0)
    num_ratings = Column(Integer, nullable=False, default=0)
    is_veg = Column(Boolean, nullable=False, default=True)
    is_bestseller = Column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return f"<MenuItem(id={self.id}, name='{self.name}', price={self.price})>"


# =============================================================================
# CART
# =============================================================================

class Cart(Base):
    """
    Pre-checkout basket scoped to one user and one restaurant.

    At most one cart per user: starting a cart for another restaurant
    replaces the row instead of adding a second one.
    """
    __tablename__ = "carts"
    __table_args__ = (
        UniqueConstraint("user_id", name="uq_carts_user_id"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(String(100), nullable=False, default="guest")
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, index=True)


class CartItem(Base):
    """
    One (menu item, size, extras) selection in a cart.

    The unique constraint is the merge key: adding the same selection
    again increments quantity instead of inserting a second row.
    """
    __tablename__ = "cart_items"
    __table_args__ = (
        UniqueConstraint(
            "cart_id", "menu_item_id", "size", "extras",
            name="uq_cart_items_merge_key",
        ),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    cart_id = Column(
        Integer,
        ForeignKey("carts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    menu_item_id = Column(Integer, ForeignKey("menu_items.id"), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    size = Column(String(50), nullable=False, default="regular")
    extras = Column(String(500), nullable=False, default="")
    instructions = Column(Text, nullable=False, default="")


# =============================================================================
# ORDERS
# =============================================================================

class Order(Base):
    """Immutable post-checkout record."""
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(String(100), nullable=False, default="guest", index=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False)
    total = Column(Integer, nullable=False)
    delivery_address = Column(Text, nullable=False)
    payment_method = Column(String(50), nullable=False)
    status = Column(String(50), nullable=False, default="placed")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, index=True)

    def __repr__(self) -> str:
        return f"<Order(id={self.id}, user='{self.user_id}', total={self.total})>"


class OrderItem(Base):
    """Line item captured at checkout; independent of later menu edits."""
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    order_id = Column(
        Integer,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    menu_item_id = Column(Integer, ForeignKey("menu_items.id"), nullable=False)
    name = Column(String(200), nullable=False)
    price = Column(Integer, nullable=False)
    quantity = Column(Integer, nullable=False)
    size = Column(String(50), nullable=False)
    extras = Column(String(500), nullable=False, default="")

"""
Pydantic Schemas for Records, Request and Response Validation

Records returned by both storage backends:
- Catalog (restaurant, category, menu item)
- Cart and line items, joined with restaurant / menu item details
- Orders, captured line items and the virtual tracking block

Author: Your Name
Version: 3.0.0
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List
from datetime import datetime, timezone
from enum import Enum


class _Record(BaseModel):
    """Stored row. Immutable; changes go through the storage backend."""
    model_config = ConfigDict(from_attributes=True, frozen=True)

    @field_validator("created_at", check_fields=False)
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        # SQLite hands back naive datetimes; every timestamp is written in UTC
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


# =============================================================================
# ENUMS
# =============================================================================

class TrackingStage(str, Enum):
    """Virtual delivery progress, in order of elapsed time."""
    RECEIVED = "Order Received"
    PREPARING = "Preparing Your Food"
    OUT_FOR_DELIVERY = "Out for Delivery"
    DELIVERED = "Delivered"


# =============================================================================
# CATALOG
# =============================================================================

class RestaurantCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200, examples=["Spice Junction"])
    image: str = ""
    cuisines: str = Field(default="", examples=["Indian, North Indian"])
    rating: float = Field(default=0.0, ge=0, le=5)
    delivery_time: str = Field(default="", examples=["15-25 min"])
    price_range: str = Field(default="", examples=["$$"])
    distance: str = Field(default="", examples=["1.3 km away"])
    delivery_fee: str = Field(default="Free", examples=["₹20", "Free"])
    promoted: bool = False
    offer: str = ""


class Restaurant(_Record, RestaurantCreate):
    id: int


class MenuCategoryCreate(BaseModel):
    restaurant_id: int
    name: str = Field(..., min_length=1, max_length=100)


class MenuCategory(_Record, MenuCategoryCreate):
    id: int


class MenuItemCreate(BaseModel):
    restaurant_id: int
    category_id: int
    name: str = Field(..., min_length=1, max_length=200, examples=["Butter Chicken"])
    description: str = ""
    price: int = Field(..., ge=0, examples=[299])
    image: str = ""
    rating: float = Field(default=0.0, ge=0, le=5)
    num_ratings: int = Field(default=0, ge=0)
    is_veg: bool = True
    is_bestseller: bool = False


class MenuItem(_Record, MenuItemCreate):
    id: int


class MenuSection(BaseModel):
    """One category of a restaurant menu with its items."""
    category: MenuCategory
    items: List[MenuItem]


# =============================================================================
# CART
# =============================================================================

class CartCreate(BaseModel):
    user_id: str
    restaurant_id: int


class Cart(_Record, CartCreate):
    id: int
    created_at: datetime


class CartItemCreate(BaseModel):
    cart_id: int
    menu_item_id: int
    quantity: int = Field(default=1, ge=1)
    size: str = "regular"
    extras: str = ""
    instructions: str = ""


class CartItem(_Record, CartItemCreate):
    id: int


class CartItemWithMenuItem(CartItem):
    menu_item: MenuItem


class CartWithItems(Cart):
    restaurant: Restaurant
    items: List[CartItemWithMenuItem]


# =============================================================================
# ORDERS
# =============================================================================

class OrderCreate(BaseModel):
    user_id: str
    restaurant_id: int
    total: int = Field(..., ge=0)
    delivery_address: str
    payment_method: str
    status: str = "placed"


class Order(_Record, OrderCreate):
    id: int
    created_at: datetime


class OrderItemCreate(BaseModel):
    """Point-in-time copy of a cart line, taken at checkout."""
    menu_item_id: int
    name: str
    price: int
    quantity: int = Field(..., ge=1)
    size: str = "regular"
    extras: str = ""


class OrderItem(_Record, OrderItemCreate):
    id: int
    order_id: int


class OrderWithRestaurantAndCode(Order):
    restaurant: Optional[Restaurant] = None
    order_code: str = Field(..., examples=["ORD00000007"])


class TrackingInfo(BaseModel):
    status: TrackingStage
    updated_at: datetime
    estimated_delivery_time: datetime


class OrderWithTracking(OrderWithRestaurantAndCode):
    items: List[OrderItem]
    tracking: TrackingInfo


# =============================================================================
# PRICING
# =============================================================================

class PriceBreakdown(BaseModel):
    """Derived totals, in whole currency units."""
    subtotal: int
    delivery_fee: int
    service_fee: int = 0
    tax: int
    total: int


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class CartStartRequest(BaseModel):
    restaurant_id: int = Field(..., examples=[2])


class AddToCartRequest(BaseModel):
    """Request schema for adding a menu item to the caller's cart."""
    menu_item_id: int = Field(..., examples=[5])
    restaurant_id: int = Field(..., examples=[2])
    quantity: int = Field(default=1, ge=1, le=99, examples=[2])
    size: str = Field(default="regular", max_length=50, examples=["regular", "large"])
    extras: str = Field(default="", max_length=500, examples=["extra cheese,olives"])
    instructions: str = Field(default="", max_length=500)


class UpdateQuantityRequest(BaseModel):
    """Quantities below 1 remove the line item."""
    quantity: int = Field(..., examples=[3])


class PlaceOrderRequest(BaseModel):
    """Request schema for checking out the caller's cart."""
    delivery_address: str = Field(..., min_length=1, max_length=500, examples=["12 MG Road, Bengaluru"])
    payment_method: str = Field(..., min_length=1, max_length=50, examples=["card", "cash", "upi"])

    @field_validator("delivery_address", "payment_method")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Must not be blank")
        return v.strip()


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class CartView(BaseModel):
    """Cart with preview totals; both empty when the caller has no cart."""
    cart: Optional[CartWithItems] = None
    totals: Optional[PriceBreakdown] = None


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    storage: str
    storage_backend: str
    timestamp: datetime

"""
Order Engine

Turns the caller's cart into an immutable order, serves order history and
reports a tracking status.

Tracking is simulated: the status is computed from the time elapsed since
the order was placed and is never stored.

    elapsed < 5 min   → Order Received
    elapsed < 15 min  → Preparing Your Food
    elapsed < 30 min  → Out for Delivery
    otherwise         → Delivered

Author: Your Name
Version: 3.0.0
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

from storefront.core.config import get_settings
from storefront.core.errors import (
    EmptyCartError,
    ForbiddenError,
    InternalError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from storefront.schemas import (
    Order,
    OrderCreate,
    OrderItemCreate,
    OrderWithRestaurantAndCode,
    OrderWithTracking,
    Restaurant,
    TrackingInfo,
    TrackingStage,
)
from storefront.services.cart import CartService
from storefront.services.pricing import PricedLine, calculate_totals, format_price
from storefront.services.storage.base import StorageBackend

logger = logging.getLogger(__name__)

ORDER_CODE_PREFIX = "ORD"

# Upper bounds of each stage, in order; past the last one the order is delivered
TRACKING_SCHEDULE = (
    (timedelta(minutes=5), TrackingStage.RECEIVED),
    (timedelta(minutes=15), TrackingStage.PREPARING),
    (timedelta(minutes=30), TrackingStage.OUT_FOR_DELIVERY),
)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_order_code(order_id: int) -> str:
    """Human-facing order code, e.g. 7 → "ORD00000007"."""
    return f"{ORDER_CODE_PREFIX}{order_id:08d}"


def tracking_status(created_at: datetime, now: datetime) -> TrackingStage:
    """Stage reached by an order placed at created_at, as seen at now."""
    elapsed = now - created_at
    for limit, stage in TRACKING_SCHEDULE:
        if elapsed < limit:
            return stage
    return TrackingStage.DELIVERED


class OrderService:
    """
    Checkout, order history and order tracking.

    Attributes:
        clock: Callable returning "now" for tracking (injectable for tests)

    Example:
        >>> orders = OrderService(storage)
        >>> order = await orders.place_order("42", "12 MG Road", "card")
        >>> print(order.order_code)
        'ORD00000001'
    """

    def __init__(
        self,
        storage: StorageBackend,
        carts: Optional[CartService] = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.storage = storage
        self.carts = carts or CartService(storage)
        self.clock = clock

    def _require_identity(self, user_id: Optional[str]) -> str:
        if not user_id or user_id == get_settings().guest_user_id:
            raise UnauthorizedError("You must be logged in to view orders")
        return user_id

    async def place_order(
        self,
        user_id: str,
        delivery_address: str,
        payment_method: str,
    ) -> OrderWithRestaurantAndCode:
        """
        Check out the user's cart.

        The order and its line items are written in one storage call; the
        cart is cleared only once that write has succeeded. Retrying after
        an InternalError may duplicate the order, so check history first.

        Raises:
            ValidationError: If the address or payment method is blank
            EmptyCartError: If the user has no cart or it has no items
        """
        if not (delivery_address or "").strip():
            raise ValidationError("Delivery address is required")
        if not (payment_method or "").strip():
            raise ValidationError("Payment method is required")

        cart = await self.carts.get_cart(user_id)
        if cart is None or not cart.items:
            raise EmptyCartError("Cart is empty")

        # Copy name and price now so later menu edits leave the order untouched
        items = [
            OrderItemCreate(
                menu_item_id=line.menu_item_id,
                name=line.menu_item.name,
                price=line.menu_item.price,
                quantity=line.quantity,
                size=line.size,
                extras=line.extras,
            )
            for line in cart.items
        ]
        totals = calculate_totals(
            (PricedLine(item.price, item.quantity) for item in items),
            cart.restaurant.delivery_fee,
            include_service_fee=True,
        )

        order = await self.storage.create_order(
            OrderCreate(
                user_id=user_id,
                restaurant_id=cart.restaurant_id,
                total=totals.total,
                delivery_address=delivery_address.strip(),
                payment_method=payment_method.strip(),
            ),
            items,
        )
        code = format_order_code(order.id)
        logger.info(
            f"Order {code} placed by {user_id}: {len(items)} lines, "
            f"total {format_price(order.total)}"
        )

        try:
            # Only the snapshotted cart; a cart started since then stays
            await self.storage.delete_cart(cart.id)
        except InternalError:
            # The order is committed; a leftover cart only risks a second checkout
            logger.exception(f"Order {code} placed but cart of {user_id} was not cleared")

        return OrderWithRestaurantAndCode(
            **order.model_dump(),
            restaurant=cart.restaurant,
            order_code=code,
        )

    async def list_orders(self, user_id: Optional[str]) -> List[OrderWithRestaurantAndCode]:
        """
        Orders of the user, newest first.

        Raises:
            UnauthorizedError: For anonymous callers
        """
        user_id = self._require_identity(user_id)
        orders = await self.storage.list_orders_for_user(user_id)

        restaurants: Dict[int, Optional[Restaurant]] = {}
        enriched = []
        for order in orders:
            if order.restaurant_id not in restaurants:
                restaurants[order.restaurant_id] = await self.storage.get_restaurant(
                    order.restaurant_id
                )
            enriched.append(self._with_code(order, restaurants[order.restaurant_id]))
        return enriched

    async def get_order(self, order_id: int, caller_id: Optional[str]) -> OrderWithTracking:
        """
        One order with its line items and simulated tracking.

        Raises:
            UnauthorizedError: For anonymous callers
            NotFoundError: If the order does not exist
            ForbiddenError: If the order belongs to someone else
        """
        caller_id = self._require_identity(caller_id)

        order = await self.storage.get_order(order_id)
        if order is None:
            raise NotFoundError(f"Order #{order_id} not found")
        if order.user_id != caller_id:
            raise ForbiddenError("You don't have permission to view this order")

        restaurant = await self.storage.get_restaurant(order.restaurant_id)
        items = await self.storage.list_order_items(order.id)
        now = self.clock()

        return OrderWithTracking(
            **self._with_code(order, restaurant).model_dump(),
            items=items,
            tracking=TrackingInfo(
                status=tracking_status(order.created_at, now),
                updated_at=now,
                estimated_delivery_time=order.created_at
                + timedelta(minutes=get_settings().estimated_delivery_minutes),
            ),
        )

    @staticmethod
    def _with_code(order: Order, restaurant: Optional[Restaurant]) -> OrderWithRestaurantAndCode:
        return OrderWithRestaurantAndCode(
            **order.model_dump(),
            restaurant=restaurant,
            order_code=format_order_code(order.id),
        )

from datetime import datetime, timedelta, timezone

import pytest

from storefront.core.errors import (
    EmptyCartError,
    ForbiddenError,
    InternalError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from storefront.schemas import TrackingStage
from storefront.services.cart import CartService
from storefront.services.orders import OrderService, format_order_code, tracking_status

pytestmark = pytest.mark.anyio


async def _fill_cart(carts, catalog, user_id="u1"):
    await carts.add_item(user_id, catalog.paneer.id, catalog.spice.id, quantity=2, size="large")
    return await carts.add_item(user_id, catalog.dal.id, catalog.spice.id, extras="butter")


async def test_place_order_snapshots_cart_and_clears_it(orders, carts, catalog, storage):
    cart = await _fill_cart(carts, catalog)

    order = await orders.place_order("u1", "12 MG Road", "card")

    assert order.user_id == "u1"
    assert order.restaurant_id == catalog.spice.id
    assert order.restaurant.name == "Spice Junction"
    assert order.status == "placed"
    assert order.delivery_address == "12 MG Road"
    assert order.payment_method == "card"
    assert order.order_code == format_order_code(order.id)

    items = await storage.list_order_items(order.id)
    assert len(items) == len(cart.items)
    assert [(i.name, i.price, i.quantity, i.size, i.extras) for i in items] == [
        ("Paneer Tikka", 150, 2, "large", ""),
        ("Dal Makhani", 90, 1, "regular", "butter"),
    ]

    assert await carts.get_cart("u1") is None


async def test_order_total_includes_service_fee(orders, carts, catalog):
    await _fill_cart(carts, catalog)

    order = await orders.place_order("u1", "12 MG Road", "upi")

    # 390 subtotal + 30 delivery + 20 service + 39 tax
    assert order.total == 479


async def test_free_delivery_restaurant(orders, carts, catalog):
    await carts.add_item("u1", catalog.cappuccino.id, catalog.cafe.id, quantity=2)

    order = await orders.place_order("u1", "Flat 4", "cash")

    # 240 subtotal + 0 delivery + 12 service + 24 tax
    assert order.total == 276


async def test_snapshot_ignores_later_menu_changes(memory_storage, clock):
    from tests.conftest import build_catalog

    catalog = await build_catalog(memory_storage)
    carts = CartService(memory_storage)
    orders = OrderService(memory_storage, carts=carts, clock=clock)
    await carts.add_item("u1", catalog.paneer.id, catalog.spice.id)
    order = await orders.place_order("u1", "12 MG Road", "card")

    memory_storage._menu_items[catalog.paneer.id] = catalog.paneer.model_copy(
        update={"name": "Paneer Tikka Deluxe", "price": 400}
    )

    detail = await orders.get_order(order.id, "u1")
    assert [(i.name, i.price) for i in detail.items] == [("Paneer Tikka", 150)]
    assert detail.total == order.total


@pytest.mark.parametrize("user_id", ["u1", "guest"])
async def test_empty_cart_is_rejected(orders, carts, catalog, storage, user_id):
    with pytest.raises(EmptyCartError):
        await orders.place_order(user_id, "12 MG Road", "card")

    await carts.start_or_reuse_cart(user_id, catalog.spice.id)
    with pytest.raises(EmptyCartError):
        await orders.place_order(user_id, "12 MG Road", "card")

    assert await storage.list_orders_for_user(user_id) == []


async def test_cart_emptied_by_removal_is_rejected(orders, carts, catalog):
    cart = await carts.add_item("u1", catalog.paneer.id, catalog.spice.id)
    await carts.remove_item("u1", cart.items[0].id)

    with pytest.raises(EmptyCartError):
        await orders.place_order("u1", "12 MG Road", "card")


@pytest.mark.parametrize(
    "address, payment",
    [("", "card"), ("   ", "card"), ("12 MG Road", ""), ("12 MG Road", None)],
)
async def test_blank_checkout_fields_fail_before_mutation(orders, carts, catalog, address, payment):
    await _fill_cart(carts, catalog)

    with pytest.raises(ValidationError):
        await orders.place_order("u1", address, payment)

    cart = await carts.get_cart("u1")
    assert len(cart.items) == 2


async def test_guest_can_check_out_but_not_list(orders, carts, catalog):
    await carts.add_item("guest", catalog.paneer.id, catalog.spice.id)

    order = await orders.place_order("guest", "12 MG Road", "cash")

    assert order.user_id == "guest"
    with pytest.raises(UnauthorizedError):
        await orders.list_orders("guest")


async def test_cart_clear_failure_does_not_fail_checkout(
    orders, carts, catalog, storage, monkeypatch
):
    await _fill_cart(carts, catalog)

    async def broken_delete_cart(cart_id):
        raise InternalError("storage unavailable")

    monkeypatch.setattr(storage, "delete_cart", broken_delete_cart)

    order = await orders.place_order("u1", "12 MG Road", "card")

    assert order.total == 479
    assert await carts.get_cart("u1") is not None


async def test_checkout_keeps_cart_started_after_snapshot(
    orders, carts, catalog, storage, monkeypatch
):
    await _fill_cart(carts, catalog)
    create_order = storage.create_order

    async def create_order_then_switch(data, items):
        order = await create_order(data, items)
        await carts.add_item("u1", catalog.cappuccino.id, catalog.cafe.id)
        return order

    monkeypatch.setattr(storage, "create_order", create_order_then_switch)

    await orders.place_order("u1", "12 MG Road", "card")

    cart = await carts.get_cart("u1")
    assert cart.restaurant_id == catalog.cafe.id
    assert [i.menu_item_id for i in cart.items] == [catalog.cappuccino.id]


async def test_list_orders_newest_first(orders, carts, catalog, clock):
    await carts.add_item("u1", catalog.paneer.id, catalog.spice.id)
    first = await orders.place_order("u1", "12 MG Road", "card")
    clock.advance(10)
    await carts.add_item("u1", catalog.cappuccino.id, catalog.cafe.id)
    second = await orders.place_order("u1", "12 MG Road", "card")
    await carts.add_item("u2", catalog.dal.id, catalog.spice.id)
    await orders.place_order("u2", "Flat 4", "cash")

    history = await orders.list_orders("u1")

    assert [o.id for o in history] == [second.id, first.id]
    assert history[0].restaurant.name == "Urban Cafe"
    assert history[1].restaurant.name == "Spice Junction"
    assert history[0].order_code == format_order_code(second.id)


async def test_list_orders_without_history(orders):
    assert await orders.list_orders("u1") == []


@pytest.mark.parametrize("user_id", [None, "", "guest"])
async def test_anonymous_callers_are_unauthorized(orders, user_id):
    with pytest.raises(UnauthorizedError):
        await orders.list_orders(user_id)
    with pytest.raises(UnauthorizedError):
        await orders.get_order(1, user_id)


async def test_get_order_of_someone_else_is_forbidden(orders, carts, catalog):
    await _fill_cart(carts, catalog)
    order = await orders.place_order("u1", "12 MG Road", "card")

    with pytest.raises(ForbiddenError):
        await orders.get_order(order.id, "u2")


async def test_get_missing_order(orders):
    with pytest.raises(NotFoundError):
        await orders.get_order(999, "u1")


async def test_get_order_reports_tracking(orders, carts, catalog, clock):
    await _fill_cart(carts, catalog)
    order = await orders.place_order("u1", "12 MG Road", "card")

    seen = []
    for minutes in (0, 6, 16, 31, 120):
        clock.now = order.created_at + timedelta(minutes=minutes)
        detail = await orders.get_order(order.id, "u1")
        seen.append(detail.tracking.status)
        assert detail.tracking.updated_at == clock.now
        assert detail.tracking.estimated_delivery_time == order.created_at + timedelta(minutes=45)

    assert seen == [
        TrackingStage.RECEIVED,
        TrackingStage.PREPARING,
        TrackingStage.OUT_FOR_DELIVERY,
        TrackingStage.DELIVERED,
        TrackingStage.DELIVERED,
    ]
    assert len(detail.items) == 2
    assert detail.order_code == order.order_code


def test_tracking_status_boundaries():
    placed = datetime(2024, 1, 15, 18, 30, tzinfo=timezone.utc)

    def at(minutes):
        return tracking_status(placed, placed + timedelta(minutes=minutes))

    assert at(4.99) == TrackingStage.RECEIVED
    assert at(5) == TrackingStage.PREPARING
    assert at(14.99) == TrackingStage.PREPARING
    assert at(15) == TrackingStage.OUT_FOR_DELIVERY
    assert at(29.99) == TrackingStage.OUT_FOR_DELIVERY
    assert at(30) == TrackingStage.DELIVERED


def test_tracking_status_never_moves_backwards():
    placed = datetime(2024, 1, 15, 18, 30, tzinfo=timezone.utc)
    stages = list(TrackingStage)

    previous = 0
    for minute in range(0, 60):
        stage = tracking_status(placed, placed + timedelta(minutes=minute))
        assert stages.index(stage) >= previous
        previous = stages.index(stage)


def test_tracking_stage_labels():
    assert [stage.value for stage in TrackingStage] == [
        "Order Received",
        "Preparing Your Food",
        "Out for Delivery",
        "Delivered",
    ]


@pytest.mark.parametrize(
    "order_id, code",
    [(1, "ORD00000001"), (7, "ORD00000007"), (12345678, "ORD12345678")],
)
def test_format_order_code(order_id, code):
    assert format_order_code(order_id) == code

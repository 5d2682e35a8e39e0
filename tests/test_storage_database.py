import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from storefront import models
from storefront.core.errors import InternalError
from storefront.database import Base
from storefront.schemas import CartCreate, CartItemCreate, OrderCreate, OrderItemCreate
from storefront.services.storage import StorageBackend
from tests.conftest import build_catalog

pytestmark = pytest.mark.anyio


@pytest.fixture
async def catalog(database_storage):
    return await build_catalog(database_storage)


async def _cart(storage, catalog, user_id="u1"):
    cart, _ = await storage.get_or_start_cart(
        CartCreate(user_id=user_id, restaurant_id=catalog.spice.id)
    )
    return cart


async def test_backends_satisfy_storage_protocol(database_storage, memory_storage):
    assert isinstance(database_storage, StorageBackend)
    assert isinstance(memory_storage, StorageBackend)


async def test_health_check(database_storage):
    assert await database_storage.health_check() is True
    assert database_storage.provider_name == "database"


async def test_add_cart_item_increments_existing_row(database_storage, catalog):
    cart = await _cart(database_storage, catalog)
    data = CartItemCreate(cart_id=cart.id, menu_item_id=catalog.paneer.id, quantity=2)

    first = await database_storage.add_cart_item(data)
    second = await database_storage.add_cart_item(data)

    assert second.id == first.id
    assert second.quantity == 4

    async with database_storage.session_maker() as session:
        rows = (await session.execute(select(models.CartItem))).scalars().all()
    assert len(rows) == 1


async def test_merge_key_is_unique_per_cart(database_storage, catalog):
    cart = await _cart(database_storage, catalog)
    await database_storage.add_cart_item(
        CartItemCreate(cart_id=cart.id, menu_item_id=catalog.paneer.id)
    )

    async with database_storage.session_maker() as session:
        session.add(
            models.CartItem(
                cart_id=cart.id, menu_item_id=catalog.paneer.id,
                quantity=1, size="regular", extras="",
            )
        )
        with pytest.raises(IntegrityError):
            await session.commit()


async def test_merge_keeps_original_instructions(database_storage, catalog):
    cart = await _cart(database_storage, catalog)
    await database_storage.add_cart_item(
        CartItemCreate(cart_id=cart.id, menu_item_id=catalog.dal.id, instructions="less spicy")
    )

    merged = await database_storage.add_cart_item(
        CartItemCreate(cart_id=cart.id, menu_item_id=catalog.dal.id, instructions="extra spicy")
    )

    assert merged.quantity == 2
    assert merged.instructions == "less spicy"


async def test_delete_carts_for_user_removes_items(database_storage, catalog):
    cart = await _cart(database_storage, catalog)
    other = await _cart(database_storage, catalog, user_id="u2")
    line = await database_storage.add_cart_item(
        CartItemCreate(cart_id=cart.id, menu_item_id=catalog.paneer.id)
    )
    kept = await database_storage.add_cart_item(
        CartItemCreate(cart_id=other.id, menu_item_id=catalog.paneer.id)
    )

    assert await database_storage.delete_carts_for_user("u1") == 1

    assert await database_storage.get_cart_by_id(cart.id) is None
    assert await database_storage.get_cart_item(line.id) is None
    assert await database_storage.get_cart_item(kept.id) is not None
    assert await database_storage.delete_carts_for_user("u1") == 0


async def test_one_cart_row_per_user(database_storage, catalog):
    cart = await _cart(database_storage, catalog)

    async with database_storage.session_maker() as session:
        session.add(models.Cart(user_id="u1", restaurant_id=catalog.cafe.id))
        with pytest.raises(IntegrityError):
            await session.commit()

    assert (await database_storage.get_latest_cart("u1")).id == cart.id


async def test_get_or_start_cart_retries_after_losing_the_insert(
    database_storage, catalog, monkeypatch
):
    winner = await _cart(database_storage, catalog)
    attempt = database_storage._get_or_start_cart
    calls = []

    async def lose_first_insert(data):
        calls.append(data)
        if len(calls) == 1:
            raise IntegrityError("INSERT INTO carts", {}, Exception("uq_carts_user_id"))
        return await attempt(data)

    monkeypatch.setattr(database_storage, "_get_or_start_cart", lose_first_insert)

    cart, created = await database_storage.get_or_start_cart(
        CartCreate(user_id="u1", restaurant_id=catalog.spice.id)
    )

    assert len(calls) == 2
    assert (cart.id, created) == (winner.id, False)


async def test_update_and_delete_missing_line(database_storage):
    assert await database_storage.update_cart_item_quantity(999, 3) is None
    assert await database_storage.delete_cart_item(999) is False


async def test_create_order_writes_items_with_order(database_storage, catalog):
    order = await database_storage.create_order(
        OrderCreate(
            user_id="u1", restaurant_id=catalog.spice.id, total=479,
            delivery_address="12 MG Road", payment_method="card",
        ),
        [
            OrderItemCreate(menu_item_id=catalog.paneer.id, name="Paneer Tikka", price=150, quantity=2),
            OrderItemCreate(menu_item_id=catalog.dal.id, name="Dal Makhani", price=90, quantity=1),
        ],
    )

    assert order.created_at.tzinfo is not None
    items = await database_storage.list_order_items(order.id)
    assert [(i.order_id, i.name, i.quantity) for i in items] == [
        (order.id, "Paneer Tikka", 2),
        (order.id, "Dal Makhani", 1),
    ]

    stored = await database_storage.get_order(order.id)
    assert stored.total == 479
    assert stored.status == "placed"


async def test_storage_failures_surface_as_internal_error(database_storage):
    async with database_storage.engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    with pytest.raises(InternalError) as exc:
        await database_storage.get_order(1)

    assert exc.value.status_code == 500

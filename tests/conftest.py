from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from storefront.database import create_engine, init_db
from storefront.schemas import MenuCategoryCreate, MenuItemCreate, RestaurantCreate
from storefront.services.cart import CartService
from storefront.services.orders import OrderService
from storefront.services.storage import DatabaseStorage, MemoryStorage


class FakeClock:
    """Manually advanced clock for tracking tests."""

    def __init__(self, start: datetime = None):
        self.now = start or datetime(2024, 1, 15, 18, 30, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, minutes: float) -> None:
        self.now += timedelta(minutes=minutes)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def memory_storage(clock):
    return MemoryStorage(clock=clock)


@pytest.fixture
async def database_storage():
    engine = create_engine("sqlite+aiosqlite://", echo=False)
    await init_db(engine)
    yield DatabaseStorage(engine)
    await engine.dispose()


@pytest.fixture(params=["memory", "database"])
async def storage(request, clock):
    """Every backend the services must behave identically on."""
    if request.param == "memory":
        yield MemoryStorage(clock=clock)
        return

    engine = create_engine("sqlite+aiosqlite://", echo=False)
    await init_db(engine)
    yield DatabaseStorage(engine)
    await engine.dispose()


@pytest.fixture(params=["memory", "database"])
async def concurrent_storage(request, tmp_path):
    """
    Backends for tests that race requests against each other.

    The database runs from a file so every session gets its own
    connection, as it would under a server database.
    """
    if request.param == "memory":
        yield MemoryStorage()
        return

    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'storefront.db'}", echo=False)
    await init_db(engine)
    yield DatabaseStorage(engine)
    await engine.dispose()


async def build_catalog(storage) -> SimpleNamespace:
    """Two restaurants: one with a ₹30 delivery fee, one with free delivery."""
    spice = await storage.create_restaurant(
        RestaurantCreate(
            name="Spice Junction",
            cuisines="Indian, North Indian",
            rating=4.2,
            delivery_fee="₹30",
        )
    )
    cafe = await storage.create_restaurant(
        RestaurantCreate(
            name="Urban Cafe",
            cuisines="Cafe, Beverages",
            rating=3.9,
            delivery_fee="Free",
        )
    )

    starters = await storage.create_menu_category(
        MenuCategoryCreate(restaurant_id=spice.id, name="Starters")
    )
    mains = await storage.create_menu_category(
        MenuCategoryCreate(restaurant_id=spice.id, name="Main Course")
    )
    coffee = await storage.create_menu_category(
        MenuCategoryCreate(restaurant_id=cafe.id, name="Coffee")
    )

    paneer = await storage.create_menu_item(
        MenuItemCreate(
            restaurant_id=spice.id, category_id=starters.id,
            name="Paneer Tikka", price=150, is_veg=True,
        )
    )
    dal = await storage.create_menu_item(
        MenuItemCreate(
            restaurant_id=spice.id, category_id=mains.id,
            name="Dal Makhani", price=90, is_veg=True, is_bestseller=True,
        )
    )
    chicken = await storage.create_menu_item(
        MenuItemCreate(
            restaurant_id=spice.id, category_id=mains.id,
            name="Butter Chicken", price=200, is_veg=False,
        )
    )
    cappuccino = await storage.create_menu_item(
        MenuItemCreate(
            restaurant_id=cafe.id, category_id=coffee.id,
            name="Cappuccino", price=120,
        )
    )

    return SimpleNamespace(
        spice=spice,
        cafe=cafe,
        starters=starters,
        mains=mains,
        coffee=coffee,
        paneer=paneer,
        dal=dal,
        chicken=chicken,
        cappuccino=cappuccino,
    )


@pytest.fixture
async def catalog(storage):
    return await build_catalog(storage)


@pytest.fixture
def carts(storage):
    return CartService(storage)


@pytest.fixture
def orders(storage, carts, clock):
    return OrderService(storage, carts=carts, clock=clock)

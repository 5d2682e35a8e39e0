import pytest

from storefront.core.errors import NotFoundError
from storefront.services.catalog import CatalogService
from storefront.services.seed import DEMO_CATALOG, seed_catalog

pytestmark = pytest.mark.anyio


@pytest.fixture
def service(storage):
    return CatalogService(storage)


async def test_list_restaurants_in_id_order(service, catalog):
    restaurants = await service.list_restaurants()

    assert [r.name for r in restaurants] == ["Spice Junction", "Urban Cafe"]


@pytest.mark.parametrize(
    "search, expected",
    [
        ("spice", ["Spice Junction"]),
        ("  CAFE ", ["Urban Cafe"]),
        ("north indian", ["Spice Junction"]),
        ("sushi", []),
        ("", ["Spice Junction", "Urban Cafe"]),
    ],
)
async def test_search_matches_name_or_cuisines(service, catalog, search, expected):
    restaurants = await service.list_restaurants(search=search)

    assert [r.name for r in restaurants] == expected


async def test_min_rating_filter(service, catalog):
    assert [r.name for r in await service.list_restaurants(min_rating=4.0)] == ["Spice Junction"]
    assert [r.name for r in await service.list_restaurants(min_rating=3.9)] == [
        "Spice Junction",
        "Urban Cafe",
    ]
    assert await service.list_restaurants(search="cafe", min_rating=4.5) == []


async def test_get_restaurant(service, catalog):
    restaurant = await service.get_restaurant(catalog.cafe.id)

    assert restaurant.id == catalog.cafe.id
    assert restaurant.name == "Urban Cafe"
    assert restaurant.delivery_fee == "Free"


async def test_get_missing_restaurant(service, catalog):
    with pytest.raises(NotFoundError) as exc:
        await service.get_restaurant(999)

    assert exc.value.status_code == 404


async def test_list_categories(service, catalog):
    categories = await service.list_categories(catalog.spice.id)

    assert [c.name for c in categories] == ["Starters", "Main Course"]


async def test_list_categories_of_missing_restaurant(service, catalog):
    with pytest.raises(NotFoundError):
        await service.list_categories(999)


async def test_list_menu_items(service, catalog):
    items = await service.list_menu_items(catalog.spice.id)

    assert [i.name for i in items] == ["Paneer Tikka", "Dal Makhani", "Butter Chicken"]


async def test_list_menu_items_by_category(service, catalog):
    items = await service.list_menu_items(catalog.spice.id, category_id=catalog.mains.id)

    assert [i.name for i in items] == ["Dal Makhani", "Butter Chicken"]


async def test_category_of_another_restaurant_yields_nothing(service, catalog):
    assert await service.list_menu_items(catalog.spice.id, category_id=catalog.coffee.id) == []


async def test_veg_only(service, catalog):
    items = await service.list_menu_items(catalog.spice.id, veg_only=True)
    assert [i.name for i in items] == ["Paneer Tikka", "Dal Makhani"]

    items = await service.list_menu_items(
        catalog.spice.id, category_id=catalog.mains.id, veg_only=True
    )
    assert [i.name for i in items] == ["Dal Makhani"]


async def test_get_menu_groups_items_by_category(service, catalog):
    sections = await service.get_menu(catalog.spice.id)

    assert [(s.category.name, [i.name for i in s.items]) for s in sections] == [
        ("Starters", ["Paneer Tikka"]),
        ("Main Course", ["Dal Makhani", "Butter Chicken"]),
    ]


async def test_get_menu_item(service, catalog):
    item = await service.get_menu_item(catalog.dal.id)

    assert item.price == 90
    assert item.is_bestseller


async def test_get_missing_menu_item(service, catalog):
    with pytest.raises(NotFoundError):
        await service.get_menu_item(999)


async def test_seed_catalog_loads_demo_data_once(storage):
    assert await seed_catalog(storage) is True
    assert await seed_catalog(storage) is False

    restaurants = await storage.list_restaurants()
    assert len(restaurants) == len(DEMO_CATALOG)

    service = CatalogService(storage)
    spice = (await service.list_restaurants(search="spice junction"))[0]
    sections = await service.get_menu(spice.id)
    assert sections[0].category.name == "Recommended"
    assert [i.name for i in sections[0].items] == ["Butter Chicken", "Paneer Tikka", "Dal Makhani"]


async def test_seed_catalog_skips_populated_store(storage, catalog):
    assert await seed_catalog(storage) is False
    assert len(await storage.list_restaurants()) == 2

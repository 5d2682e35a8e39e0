"""
Demo Catalog

Restaurants, menu categories and menu items loaded into an empty store so
a fresh development server has something to browse.
"""

import logging

from storefront.schemas import MenuCategoryCreate, MenuItemCreate, RestaurantCreate
from storefront.services.storage.base import StorageBackend

logger = logging.getLogger(__name__)

UNSPLASH = "https://images.unsplash.com/"

# (restaurant, categories, items as (category, name, description, price, image, rating, num_ratings, is_veg, is_bestseller))
DEMO_CATALOG = [
    (
        RestaurantCreate(
            name="The Gourmet Kitchen",
            image=UNSPLASH + "photo-1517248135467-4c7edcad34c4",
            cuisines="Italian, Continental",
            rating=4.5,
            delivery_time="30-40 min",
            price_range="$$$",
            distance="2.1 km away",
            delivery_fee="₹30",
            promoted=True,
            offer="50% off up to ₹100",
        ),
        ["Recommended", "Appetizers", "Pastas", "Mains", "Desserts"],
        [
            ("Recommended", "Truffle Risotto", "Creamy Arborio rice with wild mushrooms and truffle oil",
             449, "photo-1633964913295-ceb43956a0c7", 4.8, 120, True, True),
            ("Recommended", "Lobster Ravioli", "Homemade ravioli filled with fresh lobster in a creamy sauce",
             599, "photo-1551504734-5ee1c4a1479b", 4.9, 85, False, True),
            ("Appetizers", "Bruschetta", "Toasted bread topped with fresh tomatoes, basil and olive oil",
             249, "photo-1572695157366-5e585ab2b69f", 4.5, 65, True, False),
            ("Pastas", "Spaghetti Carbonara", "Classic pasta with eggs, cheese, pancetta and black pepper",
             399, "photo-1588013273468-315fd88ea34c", 4.7, 90, False, False),
        ],
    ),
    (
        RestaurantCreate(
            name="Spice Junction",
            image=UNSPLASH + "photo-1555396273-367ea4eb4db5",
            cuisines="Indian, North Indian",
            rating=4.2,
            delivery_time="15-25 min",
            price_range="$$",
            distance="1.3 km away",
            delivery_fee="₹20",
            offer="Free delivery on orders above ₹199",
        ),
        ["Recommended", "Starters", "Main Course", "Beverages", "Desserts"],
        [
            ("Recommended", "Butter Chicken", "Tender chicken in a creamy tomato sauce",
             299, "photo-1603894584373-5ac82b2ae398", 4.5, 100, False, True),
            ("Recommended", "Paneer Tikka", "Grilled cottage cheese with spices",
             249, "photo-1599487488170-d11ec9c172f0", 4.3, 80, True, False),
            ("Recommended", "Dal Makhani", "Black lentils slow cooked with cream",
             199, "photo-1505253716362-afaea1d3d1af", 4.7, 150, True, True),
            ("Starters", "Chilli Paneer", "Crispy paneer tossed with bell peppers in a spicy sauce",
             229, "photo-1567188040759-fb8a254b3128", 4.2, 65, True, False),
            ("Main Course", "Chicken Biryani", "Fragrant rice cooked with marinated chicken and spices",
             329, "photo-1589302168068-964664d93dc0", 4.8, 200, False, True),
        ],
    ),
    (
        RestaurantCreate(
            name="Golden Dragon",
            image=UNSPLASH + "photo-1514933651103-005eec06c04b",
            cuisines="Chinese, Thai",
            rating=4.7,
            delivery_time="40-50 min",
            price_range="$$$",
            distance="3.5 km away",
            delivery_fee="₹40",
            offer="₹100 off on orders above ₹499",
        ),
        ["Recommended", "Appetizers", "Soups", "Main Course", "Noodles & Rice"],
        [
            ("Recommended", "Kung Pao Chicken", "Stir-fried chicken with peanuts, vegetables and chili peppers",
             349, "photo-1525755662778-989d0524087e", 4.6, 110, False, True),
            ("Recommended", "Dim Sum Platter", "Assorted steamed dumplings with various fillings",
             399, "photo-1563245372-f21724e3856d", 4.7, 95, False, True),
            ("Soups", "Hot and Sour Soup", "Spicy and tangy soup with vegetables and tofu",
             179, "photo-1547592166-23ac45744acd", 4.5, 70, True, False),
        ],
    ),
    (
        RestaurantCreate(
            name="Urban Cafe",
            image=UNSPLASH + "photo-1550966871-3ed3cdb5ed0c",
            cuisines="Cafe, Beverages",
            rating=3.9,
            delivery_time="25-35 min",
            price_range="$$",
            distance="1.8 km away",
            delivery_fee="₹25",
            offer="Buy 1 Get 1 on all beverages",
        ),
        ["Recommended", "Coffee", "Snacks", "Sandwiches", "Desserts"],
        [
            ("Recommended", "Cappuccino", "Espresso with steamed milk and a deep layer of foam",
             159, "photo-1534778101976-62847782c213", 4.4, 85, True, True),
            ("Recommended", "Avocado Toast", "Multigrain toast topped with mashed avocado, cherry tomatoes and feta cheese",
             229, "photo-1603046891744-76035f536b5b", 4.6, 75, True, True),
            ("Sandwiches", "Grilled Chicken Sandwich", "Grilled chicken with lettuce, tomato and mayo on ciabatta bread",
             249, "photo-1554433607-66b5efe9d304", 4.3, 60, False, False),
        ],
    ),
    (
        RestaurantCreate(
            name="Pizza Paradise",
            image=UNSPLASH + "photo-1482049016688-2d3e1b311543",
            cuisines="Pizza, Italian",
            rating=4.3,
            delivery_time="20-30 min",
            price_range="$$",
            distance="2.3 km away",
            delivery_fee="₹35",
            offer="Flat 20% off on all orders",
        ),
        [],
        [],
    ),
    (
        RestaurantCreate(
            name="Burger Bliss",
            image=UNSPLASH + "photo-1565557623262-b51c2513a641",
            cuisines="Burgers, Fast Food",
            rating=4.4,
            delivery_time="35-45 min",
            price_range="$$",
            distance="2.7 km away",
            delivery_fee="₹30",
            promoted=True,
            offer="Free fries on orders above ₹299",
        ),
        [],
        [],
    ),
]


async def seed_catalog(storage: StorageBackend) -> bool:
    """
    Load DEMO_CATALOG when the store has no restaurants yet.

    Returns:
        bool: True if the catalog was loaded
    """
    if await storage.list_restaurants():
        logger.debug("Catalog already present, skipping seed")
        return False

    item_count = 0
    for restaurant_data, category_names, items in DEMO_CATALOG:
        restaurant = await storage.create_restaurant(restaurant_data)

        categories = {}
        for name in category_names:
            category = await storage.create_menu_category(
                MenuCategoryCreate(restaurant_id=restaurant.id, name=name)
            )
            categories[name] = category.id

        for category, name, description, price, image, rating, num_ratings, is_veg, bestseller in items:
            await storage.create_menu_item(
                MenuItemCreate(
                    restaurant_id=restaurant.id,
                    category_id=categories[category],
                    name=name,
                    description=description,
                    price=price,
                    image=UNSPLASH + image,
                    rating=rating,
                    num_ratings=num_ratings,
                    is_veg=is_veg,
                    is_bestseller=bestseller,
                )
            )
            item_count += 1

    logger.info(f"Seeded {len(DEMO_CATALOG)} restaurants and {item_count} menu items")
    return True

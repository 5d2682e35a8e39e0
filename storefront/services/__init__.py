"""
                        Services Module

Contains the storefront business logic. Storage has swappable Memory
(development, tests) and Database (staging, production) implementations.

Services:
    - storage: Storage collaborator and its backends
    - catalog: Restaurant and menu lookups
    - cart: Single-restaurant cart engine
    - orders: Checkout, history and simulated tracking
    - pricing: Subtotal, fees, tax and total
"""

from storefront.services.catalog import CatalogService
from storefront.services.cart import CartService
from storefront.services.orders import OrderService

__all__ = ["CatalogService", "CartService", "OrderService"]

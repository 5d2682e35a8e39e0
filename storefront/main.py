"""
FastAPI Application Entry Point

FoodFusion Storefront - browse restaurants, build a cart, check out and
track orders. Storage runs in memory during development and against the
relational database in staging/production.

Identity:
    The X-User-Id header carries the caller's user id. Without it, cart
    operations and checkout act for the shared "guest" identity, while
    order history and order details answer 401.

Endpoints:
    - GET /api/restaurants: Browse restaurants
    - GET /api/restaurants/{id}/menu: Menu items of a restaurant
    - GET|POST|DELETE /api/cart: Caller's cart
    - POST|PATCH|DELETE /api/cart/items: Cart line items
    - POST /api/orders: Checkout
    - GET /api/orders: Order history
    - GET /api/orders/{id}: Order details with tracking
    - GET /health: System health check

Author: Your Name
Version: 3.0.0
"""

import logging
from datetime import datetime
from typing import List, Optional
from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends, Query, Request, Header, Response
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from storefront.core.config import get_settings, setup_logging
from storefront.core.errors import StorefrontError
from storefront.database import init_db
from storefront.schemas import (
    AddToCartRequest,
    Cart,
    CartStartRequest,
    CartView,
    CartWithItems,
    ErrorResponse,
    HealthResponse,
    MenuCategory,
    MenuItem,
    MenuSection,
    OrderWithRestaurantAndCode,
    OrderWithTracking,
    PlaceOrderRequest,
    Restaurant,
    UpdateQuantityRequest,
)
from storefront.services.cart import CartService
from storefront.services.catalog import CatalogService
from storefront.services.orders import OrderService
from storefront.services.seed import seed_catalog
from storefront.services.storage import DatabaseStorage, StorageBackend, get_storage

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    # Startup
    logger.info("=" * 60)
    logger.info(f"Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    storage = get_storage()
    logger.info(f"Storage: {storage.provider_name}")

    if isinstance(storage, DatabaseStorage):
        await init_db(storage.engine)

    if settings.seed_catalog:
        await seed_catalog(storage)

    logger.info("Application ready!")

    yield  # Application runs

    # Shutdown
    logger.info("Shutting down...")
    if isinstance(storage, DatabaseStorage):
        await storage.engine.dispose()
    logger.info("Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Food-ordering storefront: restaurant catalog, single-restaurant carts, "
        "checkout and simulated order tracking."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# DEPENDENCIES
# =============================================================================

def get_caller_id(
    x_user_id: Optional[str] = Header(None, alias="x-user-id"),
) -> Optional[str]:
    """Authenticated user id, or None for anonymous callers."""
    if x_user_id is None:
        return None
    return x_user_id.strip() or None


def get_cart_owner(caller_id: Optional[str] = Depends(get_caller_id)) -> str:
    """Identity carts are scoped to; anonymous callers share the guest cart."""
    return caller_id or settings.guest_user_id


def get_catalog_service(storage: StorageBackend = Depends(get_storage)) -> CatalogService:
    return CatalogService(storage)


def get_cart_service(storage: StorageBackend = Depends(get_storage)) -> CartService:
    return CartService(storage)


def get_order_service(storage: StorageBackend = Depends(get_storage)) -> OrderService:
    return OrderService(storage)


def cart_view(carts: CartService, cart: Optional[CartWithItems]) -> CartView:
    """Wrap a cart with its preview totals."""
    if cart is None:
        return CartView()
    return CartView(cart=cart, totals=carts.preview_totals(cart))


ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "restaurants": "/api/restaurants",
        "health": "/health",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(
    storage: StorageBackend = Depends(get_storage),
) -> HealthResponse:
    """Verify the storage backend is operational."""
    storage_status = "healthy" if await storage.health_check() else "unhealthy"

    return HealthResponse(
        status="operational" if storage_status == "healthy" else "degraded",
        storage=storage_status,
        storage_backend=storage.provider_name,
        timestamp=datetime.now(),
    )


# =============================================================================
# CATALOG ENDPOINTS
# =============================================================================

@app.get(
    "/api/restaurants",
    response_model=List[Restaurant],
    tags=["Catalog"],
)
async def list_restaurants(
    search: Optional[str] = Query(None, max_length=100),
    min_rating: Optional[float] = Query(None, ge=0, le=5),
    catalog: CatalogService = Depends(get_catalog_service),
) -> List[Restaurant]:
    """List restaurants, optionally filtered by name/cuisine and rating."""
    return await catalog.list_restaurants(search=search, min_rating=min_rating)


@app.get(
    "/api/restaurants/{restaurant_id}",
    response_model=Restaurant,
    responses=ERROR_RESPONSES,
    tags=["Catalog"],
)
async def get_restaurant(
    restaurant_id: int,
    catalog: CatalogService = Depends(get_catalog_service),
) -> Restaurant:
    return await catalog.get_restaurant(restaurant_id)


@app.get(
    "/api/restaurants/{restaurant_id}/categories",
    response_model=List[MenuCategory],
    responses=ERROR_RESPONSES,
    tags=["Catalog"],
)
async def list_categories(
    restaurant_id: int,
    catalog: CatalogService = Depends(get_catalog_service),
) -> List[MenuCategory]:
    return await catalog.list_categories(restaurant_id)


@app.get(
    "/api/restaurants/{restaurant_id}/menu",
    response_model=List[MenuItem],
    responses=ERROR_RESPONSES,
    tags=["Catalog"],
)
async def list_menu_items(
    restaurant_id: int,
    category_id: Optional[int] = Query(None),
    veg_only: bool = Query(False),
    catalog: CatalogService = Depends(get_catalog_service),
) -> List[MenuItem]:
    """Menu items of a restaurant, optionally one category or vegetarian only."""
    return await catalog.list_menu_items(
        restaurant_id, category_id=category_id, veg_only=veg_only
    )


@app.get(
    "/api/restaurants/{restaurant_id}/menu/sections",
    response_model=List[MenuSection],
    responses=ERROR_RESPONSES,
    tags=["Catalog"],
)
async def get_menu(
    restaurant_id: int,
    catalog: CatalogService = Depends(get_catalog_service),
) -> List[MenuSection]:
    """Menu grouped by category."""
    return await catalog.get_menu(restaurant_id)


@app.get(
    "/api/menu-items/{menu_item_id}",
    response_model=MenuItem,
    responses=ERROR_RESPONSES,
    tags=["Catalog"],
)
async def get_menu_item(
    menu_item_id: int,
    catalog: CatalogService = Depends(get_catalog_service),
) -> MenuItem:
    return await catalog.get_menu_item(menu_item_id)


# =============================================================================
# CART ENDPOINTS
# =============================================================================

@app.get(
    "/api/cart",
    response_model=CartView,
    tags=["Cart"],
)
async def get_cart(
    owner: str = Depends(get_cart_owner),
    carts: CartService = Depends(get_cart_service),
) -> CartView:
    """Caller's cart with preview totals (empty when there is no cart)."""
    return cart_view(carts, await carts.get_cart(owner))


@app.post(
    "/api/cart",
    response_model=Cart,
    status_code=201,
    responses=ERROR_RESPONSES,
    tags=["Cart"],
)
async def start_cart(
    body: CartStartRequest,
    owner: str = Depends(get_cart_owner),
    carts: CartService = Depends(get_cart_service),
) -> Cart:
    """Start a cart for a restaurant, replacing a cart for another restaurant."""
    return await carts.start_or_reuse_cart(owner, body.restaurant_id)


@app.delete(
    "/api/cart",
    status_code=204,
    tags=["Cart"],
)
async def clear_cart(
    owner: str = Depends(get_cart_owner),
    carts: CartService = Depends(get_cart_service),
) -> Response:
    await carts.clear(owner)
    return Response(status_code=204)


@app.post(
    "/api/cart/items",
    response_model=CartView,
    status_code=201,
    responses=ERROR_RESPONSES,
    tags=["Cart"],
)
async def add_cart_item(
    body: AddToCartRequest,
    owner: str = Depends(get_cart_owner),
    carts: CartService = Depends(get_cart_service),
) -> CartView:
    """Add a menu item; identical selections are merged."""
    cart = await carts.add_item(
        owner,
        menu_item_id=body.menu_item_id,
        restaurant_id=body.restaurant_id,
        quantity=body.quantity,
        size=body.size,
        extras=body.extras,
        instructions=body.instructions,
    )
    return cart_view(carts, cart)


@app.patch(
    "/api/cart/items/{item_id}",
    response_model=CartView,
    responses=ERROR_RESPONSES,
    tags=["Cart"],
)
async def update_cart_item(
    item_id: int,
    body: UpdateQuantityRequest,
    owner: str = Depends(get_cart_owner),
    carts: CartService = Depends(get_cart_service),
) -> CartView:
    """Change a line item's quantity; below 1 removes it."""
    cart = await carts.update_quantity(owner, item_id, body.quantity)
    return cart_view(carts, cart)


@app.delete(
    "/api/cart/items/{item_id}",
    response_model=CartView,
    responses=ERROR_RESPONSES,
    tags=["Cart"],
)
async def remove_cart_item(
    item_id: int,
    owner: str = Depends(get_cart_owner),
    carts: CartService = Depends(get_cart_service),
) -> CartView:
    cart = await carts.remove_item(owner, item_id)
    return cart_view(carts, cart)


# =============================================================================
# ORDER ENDPOINTS
# =============================================================================

@app.post(
    "/api/orders",
    response_model=OrderWithRestaurantAndCode,
    status_code=201,
    responses=ERROR_RESPONSES,
    tags=["Orders"],
    summary="Checkout",
)
async def create_order(
    body: PlaceOrderRequest,
    owner: str = Depends(get_cart_owner),
    orders: OrderService = Depends(get_order_service),
) -> OrderWithRestaurantAndCode:
    """Turn the caller's cart into an order and empty the cart."""
    logger.info(f"Checkout requested by {owner}")
    return await orders.place_order(owner, body.delivery_address, body.payment_method)


@app.get(
    "/api/orders",
    response_model=List[OrderWithRestaurantAndCode],
    responses=ERROR_RESPONSES,
    tags=["Orders"],
    summary="Order History",
)
async def list_orders(
    caller_id: Optional[str] = Depends(get_caller_id),
    orders: OrderService = Depends(get_order_service),
) -> List[OrderWithRestaurantAndCode]:
    """Caller's orders, newest first."""
    return await orders.list_orders(caller_id)


@app.get(
    "/api/orders/{order_id}",
    response_model=OrderWithTracking,
    responses=ERROR_RESPONSES,
    tags=["Orders"],
    summary="Order Details & Tracking",
)
async def get_order(
    order_id: int,
    caller_id: Optional[str] = Depends(get_caller_id),
    orders: OrderService = Depends(get_order_service),
) -> OrderWithTracking:
    """One order with line items and its simulated tracking status."""
    return await orders.get_order(order_id, caller_id)


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(StorefrontError)
async def storefront_exception_handler(request: Request, exc: StorefrontError) -> JSONResponse:
    """Render expected errors with their own status code."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message} ({exc.detail})")
    else:
        logger.info(f"{request.method} {request.url.path} → {exc.status_code} {exc.error}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal Server Error",
            "detail": str(exc) if settings.debug else "An unexpected error occurred",
        },
    )


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================

def run() -> None:
    """Serve the application with uvicorn."""
    import uvicorn

    uvicorn.run(
        "storefront.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        log_level="debug" if settings.debug else "info",
    )


if __name__ == "__main__":
    run()

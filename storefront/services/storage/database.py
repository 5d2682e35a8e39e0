"""
Relational Storage Implementation

SQLAlchemy async implementation of the storage collaborator. Works with
any async driver SQLAlchemy supports (psycopg for PostgreSQL in
production, aiosqlite for local files and tests).

Behavior:
    - Every capability runs in its own session and transaction
    - get_or_start_cart relies on the one-cart-per-user unique constraint;
      a start that loses a race is retried and finds the winner's cart
    - add_cart_item locks the cart row and relies on the merge-key unique
      constraint; an insert that loses a race is retried as an increment
    - create_order commits the order row and its items together
    - SQLAlchemy errors surface as InternalError

Author: Your Name
Version: 3.0.0
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional, Sequence, Tuple

from sqlalchemy import delete, literal, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from storefront import models, schemas
from storefront.core.errors import InternalError, NotFoundError
from storefront.database import create_session_maker

logger = logging.getLogger(__name__)


class DatabaseStorage:
    """
    Relational implementation of the storage collaborator.

    Attributes:
        engine: Async engine the sessions are bound to
        session_maker: Factory producing one AsyncSession per capability call

    Example:
        >>> engine = create_engine("sqlite+aiosqlite://")
        >>> await init_db(engine)
        >>> storage = DatabaseStorage(engine)
        >>> await storage.health_check()
        True
    """

    # Attempts for a write whose insert collided with a concurrent insert
    MERGE_ATTEMPTS = 3

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self.session_maker: async_sessionmaker[AsyncSession] = create_session_maker(engine)
        logger.info(f"DatabaseStorage initialized ({engine.url.get_backend_name()})")

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "database"

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[AsyncSession]:
        """Session wrapped in a transaction; storage failures become InternalError."""
        try:
            async with self.session_maker() as session:
                async with session.begin():
                    yield session
        except SQLAlchemyError as e:
            logger.exception(f"Storage operation failed: {e}")
            raise InternalError("Storage operation failed", detail=str(e)) from e

    # -------------------------------------------------------------------------
    # Catalog
    # -------------------------------------------------------------------------

    async def create_restaurant(self, data: schemas.RestaurantCreate) -> schemas.Restaurant:
        async with self._transaction() as session:
            row = models.Restaurant(**data.model_dump())
            session.add(row)
            await session.flush()
            return schemas.Restaurant.model_validate(row)

    async def list_restaurants(self) -> List[schemas.Restaurant]:
        async with self._transaction() as session:
            result = await session.execute(
                select(models.Restaurant).order_by(models.Restaurant.id)
            )
            return [schemas.Restaurant.model_validate(r) for r in result.scalars()]

    async def get_restaurant(self, restaurant_id: int) -> Optional[schemas.Restaurant]:
        async with self._transaction() as session:
            row = await session.get(models.Restaurant, restaurant_id)
            return schemas.Restaurant.model_validate(row) if row else None

    async def create_menu_category(
        self, data: schemas.MenuCategoryCreate
    ) -> schemas.MenuCategory:
        async with self._transaction() as session:
            row = models.MenuCategory(**data.model_dump())
            session.add(row)
            await session.flush()
            return schemas.MenuCategory.model_validate(row)

    async def list_menu_categories(self, restaurant_id: int) -> List[schemas.MenuCategory]:
        async with self._transaction() as session:
            result = await session.execute(
                select(models.MenuCategory)
                .where(models.MenuCategory.restaurant_id == restaurant_id)
                .order_by(models.MenuCategory.id)
            )
            return [schemas.MenuCategory.model_validate(r) for r in result.scalars()]

    async def create_menu_item(self, data: schemas.MenuItemCreate) -> schemas.MenuItem:
        async with self._transaction() as session:
            row = models.MenuItem(**data.model_dump())
            session.add(row)
            await session.flush()
            return schemas.MenuItem.model_validate(row)

    async def get_menu_item(self, menu_item_id: int) -> Optional[schemas.MenuItem]:
        async with self._transaction() as session:
            row = await session.get(models.MenuItem, menu_item_id)
            return schemas.MenuItem.model_validate(row) if row else None

    async def list_menu_items_by_restaurant(self, restaurant_id: int) -> List[schemas.MenuItem]:
        async with self._transaction() as session:
            result = await session.execute(
                select(models.MenuItem)
                .where(models.MenuItem.restaurant_id == restaurant_id)
                .order_by(models.MenuItem.id)
            )
            return [schemas.MenuItem.model_validate(r) for r in result.scalars()]

    async def list_menu_items_by_category(self, category_id: int) -> List[schemas.MenuItem]:
        async with self._transaction() as session:
            result = await session.execute(
                select(models.MenuItem)
                .where(models.MenuItem.category_id == category_id)
                .order_by(models.MenuItem.id)
            )
            return [schemas.MenuItem.model_validate(r) for r in result.scalars()]

    # -------------------------------------------------------------------------
    # Carts
    # -------------------------------------------------------------------------

    async def get_or_start_cart(
        self, data: schemas.CartCreate
    ) -> Tuple[schemas.Cart, bool]:
        for attempt in range(1, self.MERGE_ATTEMPTS + 1):
            try:
                return await self._get_or_start_cart(data)
            except IntegrityError:
                # Another request started this user's cart first; read it back
                logger.warning(
                    f"Cart start collision for {data.user_id} "
                    f"(attempt {attempt}/{self.MERGE_ATTEMPTS})"
                )
            except SQLAlchemyError as e:
                logger.exception(f"Failed to start cart for {data.user_id}: {e}")
                raise InternalError("Storage operation failed", detail=str(e)) from e

        raise InternalError(
            "Storage operation failed",
            detail=f"Could not start a cart for {data.user_id}",
        )

    async def _get_or_start_cart(
        self, data: schemas.CartCreate
    ) -> Tuple[schemas.Cart, bool]:
        async with self.session_maker() as session:
            async with session.begin():
                row = await self._latest_cart(session, data.user_id, for_update=True)
                if row is not None and row.restaurant_id == data.restaurant_id:
                    return schemas.Cart.model_validate(row), False

                if row is not None:
                    # Delete by id so a cart started concurrently is never removed
                    await self._delete_cart_rows(session, [row.id])
                    logger.info(
                        f"Cart #{row.id} of {data.user_id} dropped: switching from "
                        f"restaurant #{row.restaurant_id} to #{data.restaurant_id}"
                    )

                # A concurrent insert for the same user fails on uq_carts_user_id
                row = models.Cart(**data.model_dump())
                session.add(row)
                await session.flush()
                return schemas.Cart.model_validate(row), True

    @staticmethod
    async def _latest_cart(
        session: AsyncSession, user_id: str, for_update: bool = False
    ) -> Optional[models.Cart]:
        query = (
            select(models.Cart)
            .where(models.Cart.user_id == user_id)
            .order_by(models.Cart.created_at.desc(), models.Cart.id.desc())
            .limit(1)
        )
        if for_update:
            query = query.with_for_update()
        result = await session.execute(query)
        return result.scalar_one_or_none()

    @staticmethod
    async def _delete_cart_rows(session: AsyncSession, cart_ids: List[int]) -> int:
        await session.execute(
            delete(models.CartItem).where(models.CartItem.cart_id.in_(cart_ids))
        )
        result = await session.execute(
            delete(models.Cart).where(models.Cart.id.in_(cart_ids))
        )
        return result.rowcount

    async def get_latest_cart(self, user_id: str) -> Optional[schemas.Cart]:
        async with self._transaction() as session:
            row = await self._latest_cart(session, user_id)
            return schemas.Cart.model_validate(row) if row else None

    async def get_cart_by_id(self, cart_id: int) -> Optional[schemas.Cart]:
        async with self._transaction() as session:
            row = await session.get(models.Cart, cart_id)
            return schemas.Cart.model_validate(row) if row else None

    async def get_cart_with_items(self, user_id: str) -> Optional[schemas.CartWithItems]:
        async with self._transaction() as session:
            cart = await self._latest_cart(session, user_id)
            if cart is None:
                return None

            restaurant = await session.get(models.Restaurant, cart.restaurant_id)
            if restaurant is None:
                return None

            result = await session.execute(
                select(models.CartItem, models.MenuItem)
                .join(models.MenuItem, models.MenuItem.id == models.CartItem.menu_item_id)
                .where(models.CartItem.cart_id == cart.id)
                .order_by(models.CartItem.id)
            )
            items = [
                schemas.CartItemWithMenuItem(
                    **schemas.CartItem.model_validate(line).model_dump(),
                    menu_item=schemas.MenuItem.model_validate(menu_item),
                )
                for line, menu_item in result.all()
            ]

            return schemas.CartWithItems(
                **schemas.Cart.model_validate(cart).model_dump(),
                restaurant=schemas.Restaurant.model_validate(restaurant),
                items=items,
            )

    async def delete_carts_for_user(self, user_id: str) -> int:
        async with self._transaction() as session:
            result = await session.execute(
                select(models.Cart.id).where(models.Cart.user_id == user_id)
            )
            cart_ids = list(result.scalars())
            if not cart_ids:
                return 0
            return await self._delete_cart_rows(session, cart_ids)

    async def delete_cart(self, cart_id: int) -> bool:
        async with self._transaction() as session:
            return await self._delete_cart_rows(session, [cart_id]) > 0

    async def get_cart_item(self, cart_item_id: int) -> Optional[schemas.CartItem]:
        async with self._transaction() as session:
            row = await session.get(models.CartItem, cart_item_id)
            return schemas.CartItem.model_validate(row) if row else None

    async def add_cart_item(self, data: schemas.CartItemCreate) -> schemas.CartItem:
        for attempt in range(1, self.MERGE_ATTEMPTS + 1):
            try:
                return await self._merge_cart_item(data)
            except IntegrityError:
                # A concurrent insert of the same merge key won; go again as an increment
                logger.warning(
                    f"Merge collision on cart {data.cart_id} "
                    f"(attempt {attempt}/{self.MERGE_ATTEMPTS})"
                )
            except SQLAlchemyError as e:
                logger.exception(f"Failed to add item to cart {data.cart_id}: {e}")
                raise InternalError("Storage operation failed", detail=str(e)) from e

        raise InternalError(
            "Storage operation failed",
            detail=f"Could not merge item into cart {data.cart_id}",
        )

    async def _merge_cart_item(self, data: schemas.CartItemCreate) -> schemas.CartItem:
        async with self.session_maker() as session:
            async with session.begin():
                # Serialize merges on this cart
                cart_id = (
                    await session.execute(
                        select(models.Cart.id)
                        .where(models.Cart.id == data.cart_id)
                        .with_for_update()
                    )
                ).scalar_one_or_none()
                if cart_id is None:
                    raise NotFoundError(f"Cart #{data.cart_id} no longer exists")

                result = await session.execute(
                    select(models.CartItem).where(
                        models.CartItem.cart_id == data.cart_id,
                        models.CartItem.menu_item_id == data.menu_item_id,
                        models.CartItem.size == data.size,
                        models.CartItem.extras == data.extras,
                    )
                )
                row = result.scalar_one_or_none()

                if row is not None:
                    await session.execute(
                        update(models.CartItem)
                        .where(models.CartItem.id == row.id)
                        .values(quantity=models.CartItem.quantity + data.quantity)
                    )
                    await session.refresh(row)
                else:
                    row = models.CartItem(**data.model_dump())
                    session.add(row)
                    await session.flush()

                return schemas.CartItem.model_validate(row)

    async def update_cart_item_quantity(
        self, cart_item_id: int, quantity: int
    ) -> Optional[schemas.CartItem]:
        async with self._transaction() as session:
            row = await session.get(models.CartItem, cart_item_id, with_for_update=True)
            if row is None:
                return None
            row.quantity = quantity
            await session.flush()
            return schemas.CartItem.model_validate(row)

    async def delete_cart_item(self, cart_item_id: int) -> bool:
        async with self._transaction() as session:
            result = await session.execute(
                delete(models.CartItem).where(models.CartItem.id == cart_item_id)
            )
            return result.rowcount > 0

    # -------------------------------------------------------------------------
    # Orders
    # -------------------------------------------------------------------------

    async def create_order(
        self,
        data: schemas.OrderCreate,
        items: Sequence[schemas.OrderItemCreate],
    ) -> schemas.Order:
        async with self._transaction() as session:
            order = models.Order(**data.model_dump())
            session.add(order)
            await session.flush()

            session.add_all(
                models.OrderItem(order_id=order.id, **item.model_dump())
                for item in items
            )
            await session.flush()
            return schemas.Order.model_validate(order)

    async def get_order(self, order_id: int) -> Optional[schemas.Order]:
        async with self._transaction() as session:
            row = await session.get(models.Order, order_id)
            return schemas.Order.model_validate(row) if row else None

    async def list_orders_for_user(self, user_id: str) -> List[schemas.Order]:
        async with self._transaction() as session:
            result = await session.execute(
                select(models.Order)
                .where(models.Order.user_id == user_id)
                .order_by(models.Order.created_at.desc(), models.Order.id.desc())
            )
            return [schemas.Order.model_validate(r) for r in result.scalars()]

    async def list_order_items(self, order_id: int) -> List[schemas.OrderItem]:
        async with self._transaction() as session:
            result = await session.execute(
                select(models.OrderItem)
                .where(models.OrderItem.order_id == order_id)
                .order_by(models.OrderItem.id)
            )
            return [schemas.OrderItem.model_validate(r) for r in result.scalars()]

    async def health_check(self) -> bool:
        """
        Run a trivial query against the database.

        Returns:
            bool: True if the database answered
        """
        try:
            async with self.session_maker() as session:
                await session.execute(select(literal(1)))
            return True
        except SQLAlchemyError as e:
            logger.error(f"Database health check failed: {e}")
            return False

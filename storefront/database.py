"""
Database Connection Module
Builds the SQLAlchemy async engine and session factory used by the
relational storage backend.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool
import logging

from storefront.core.config import get_settings

logger = logging.getLogger(__name__)


# Base class for all our models
class Base(DeclarativeBase):
    pass


def create_engine(database_url: str = None, echo: bool = None) -> AsyncEngine:
    """
    Create the async engine for DATABASE_URL.

    SQLite gets a single shared connection when the database lives in
    memory, otherwise every new connection would see an empty schema.
    SQLite connections enforce foreign keys. Server databases get a small
    connection pool.
    """
    settings = get_settings()
    database_url = database_url or settings.database_url
    echo = settings.database_echo if echo is None else echo

    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        kwargs = {"connect_args": {"check_same_thread": False}}
        if url.database in (None, "", ":memory:"):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs = {
            "pool_size": 5,  # Connection pool size
            "max_overflow": 10,  # Extra connections when pool is full
            "pool_pre_ping": True,
        }

    engine = create_async_engine(database_url, echo=echo, **kwargs)

    if url.get_backend_name() == "sqlite":
        # SQLite leaves foreign keys unenforced unless asked on every connection
        @event.listens_for(engine.sync_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def create_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to engine."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False  # Objects remain accessible after commit
    )


async def init_db(engine: AsyncEngine) -> None:
    """
    Create all tables in database.
    Called once at application startup.
    """
    # Register the tables on Base.metadata
    from storefront import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created")

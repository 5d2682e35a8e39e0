"""
Storage Service Factory

Provides a single entry point for obtaining the storage collaborator.
The factory keeps the catalog, cart and order services agnostic about
which backend is active.

Usage:
    from storefront.services.storage import get_storage

    # Returns MemoryStorage or DatabaseStorage based on STORAGE_BACKEND / ENV_MODE
    storage = get_storage()

    cart = await storage.get_cart_with_items("guest")

Environment Switching:
    - ENV_MODE=development → MemoryStorage (no database needed)
    - ENV_MODE=staging → DatabaseStorage
    - ENV_MODE=production → DatabaseStorage
    - STORAGE_BACKEND=memory|database overrides the above

Author: Your Name
Version: 3.0.0
"""

import logging
from functools import lru_cache

from storefront.core.config import get_settings
from storefront.database import create_engine
from storefront.services.storage.base import StorageBackend
from storefront.services.storage.database import DatabaseStorage
from storefront.services.storage.memory import MemoryStorage

logger = logging.getLogger(__name__)


@lru_cache()
def get_storage() -> StorageBackend:
    """
    Get the configured storage backend instance.

    The instance is cached so every request shares the same in-memory
    tables or the same engine connection pool.

    Returns:
        StorageBackend: Configured storage backend

    Example:
        >>> storage = get_storage()
        >>> print(storage.provider_name)
        'memory'  # In development mode
    """
    settings = get_settings()

    if settings.use_database:
        logger.info(
            f"Storage: Using DatabaseStorage "
            f"({settings.env_mode.value} mode)"
        )
        return DatabaseStorage(create_engine(settings.database_url))

    logger.info("Storage: Using MemoryStorage (development mode)")
    return MemoryStorage()


def reset_storage() -> None:
    """
    Clear the cached storage instance.

    Useful for testing or when configuration changes at runtime.
    The next call to get_storage() will create a new instance.
    """
    get_storage.cache_clear()
    logger.debug("Storage cache cleared")


__all__ = [
    "get_storage",
    "reset_storage",
    "StorageBackend",
    "MemoryStorage",
    "DatabaseStorage",
]

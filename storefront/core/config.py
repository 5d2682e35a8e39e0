"""
Application Configuration Module

Centralizes all configuration using environment variables with Pydantic Settings.
Supports two storage modes:
    - memory: In-process tables with sequential ids (development, tests)
    - database: SQLAlchemy async engine against DATABASE_URL

The ENV_MODE variable picks the default storage backend, so a fresh
checkout runs without any database while staging and production talk to
the relational store.

Usage:
    from storefront.core.config import get_settings

    settings = get_settings()
    if settings.use_database:
        # Relational storage
    else:
        # In-memory storage

Author: Your Name
Version: 3.0.0
"""

import logging
import sys
from enum import Enum
from typing import Optional
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EnvironmentMode(str, Enum):
    """
    Application environment modes.

    Attributes:
        DEVELOPMENT: Local testing with in-memory storage
        PRODUCTION: Live environment backed by the relational store
        STAGING: Pre-production environment backed by the relational store
    """
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    STAGING = "staging"


class StorageBackendName(str, Enum):
    """Available storage collaborator implementations."""
    MEMORY = "memory"
    DATABASE = "database"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables or .env file.

    Attributes:
        env_mode: Current environment (development/production/staging)
        debug: Enable verbose logging and error details

        # Storage
        storage_backend: memory or database (None = pick from env_mode)
        database_url: SQLAlchemy async connection string

        # Business Configuration
        guest_user_id: Identity used for carts of anonymous callers
        tax_rate: Tax applied to the subtotal (decimal)
        service_fee_rate: Service fee applied at checkout (decimal)
        free_delivery_label: Restaurant delivery-fee value meaning "no fee"
        currency_symbol: Prefix used when rendering prices
        estimated_delivery_minutes: Promised delivery window after checkout
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # ENVIRONMENT
    # ==========================================================================

    env_mode: EnvironmentMode = Field(
        default=EnvironmentMode.DEVELOPMENT,
        description="Application environment mode"
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode with verbose logging"
    )

    # ==========================================================================
    # APPLICATION
    # ==========================================================================

    app_name: str = Field(
        default="FoodFusion Storefront",
        description="Application display name"
    )
    app_version: str = Field(
        default="1.0.0",
        description="Application version"
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="API server host"
    )
    api_port: int = Field(
        default=8001,
        description="API server port"
    )

    # ==========================================================================
    # STORAGE
    # ==========================================================================

    storage_backend: Optional[StorageBackendName] = Field(
        default=None,
        description="Storage implementation (memory/database); derived from env_mode when unset"
    )
    database_url: str = Field(
        default="sqlite+aiosqlite:///./storefront.db",
        description="SQLAlchemy async connection URL"
    )
    database_echo: bool = Field(
        default=False,
        description="Log every SQL statement"
    )
    seed_catalog: bool = Field(
        default=True,
        description="Load the demo catalog into an empty store on startup"
    )

    # ==========================================================================
    # BUSINESS CONFIGURATION
    # ==========================================================================

    guest_user_id: str = Field(
        default="guest",
        description="Identity for carts of callers without X-User-Id"
    )
    tax_rate: float = Field(
        default=0.10,
        description="Tax rate as decimal"
    )
    service_fee_rate: float = Field(
        default=0.05,
        description="Service fee rate as decimal, charged at checkout only"
    )
    free_delivery_label: str = Field(
        default="Free",
        description="Delivery-fee descriptor meaning no delivery charge"
    )
    currency_symbol: str = Field(
        default="₹",
        description="Currency symbol prefixed to rendered prices"
    )
    estimated_delivery_minutes: int = Field(
        default=45,
        description="Estimated delivery time after the order is placed"
    )

    # ==========================================================================
    # VALIDATORS
    # ==========================================================================

    @field_validator("env_mode", mode="before")
    @classmethod
    def validate_env_mode(cls, v: str) -> EnvironmentMode:
        """Convert string to EnvironmentMode enum."""
        if isinstance(v, EnvironmentMode):
            return v
        try:
            return EnvironmentMode(v.lower())
        except ValueError:
            valid = [e.value for e in EnvironmentMode]
            raise ValueError(f"Invalid env_mode. Must be one of: {valid}")

    @field_validator("tax_rate", "service_fee_rate")
    @classmethod
    def validate_rate(cls, v: float) -> float:
        if not 0 <= v < 1:
            raise ValueError("Rates must be decimals between 0 and 1")
        return v

    # ==========================================================================
    # COMPUTED PROPERTIES
    # ==========================================================================

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.env_mode == EnvironmentMode.DEVELOPMENT

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.env_mode == EnvironmentMode.PRODUCTION

    @property
    def resolved_storage_backend(self) -> StorageBackendName:
        """Storage backend to instantiate, falling back on env_mode."""
        if self.storage_backend is not None:
            return self.storage_backend
        if self.is_development:
            return StorageBackendName.MEMORY
        return StorageBackendName.DATABASE

    @property
    def use_database(self) -> bool:
        """Check if the relational storage backend is active."""
        return self.resolved_storage_backend == StorageBackendName.DATABASE


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses LRU cache to ensure settings are loaded only once and stay
    consistent across the application lifecycle.

    Returns:
        Settings: Configured application settings

    Example:
        >>> settings = get_settings()
        >>> print(settings.tax_rate)
        0.1
    """
    return Settings()


# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================

def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """
    Configure application-wide logging.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)

    Returns:
        Configured root logger
    """
    settings = get_settings()

    if settings.debug:
        level = logging.DEBUG

    log_format = "%(asctime)s │ %(levelname)-8s │ %(name)-25s │ %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"

    logging.basicConfig(
        level=level,
        format=log_format,
        datefmt=date_format,
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    if not settings.database_echo:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    return logging.getLogger("storefront")

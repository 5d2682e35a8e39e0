"""
Core module initialization.
Exports configuration, logging utilities and the error taxonomy.
"""

from storefront.core.config import get_settings, Settings, EnvironmentMode
from storefront.core.errors import (
    StorefrontError,
    NotFoundError,
    EmptyCartError,
    UnauthorizedError,
    ForbiddenError,
    ValidationError,
    InternalError,
)

__all__ = [
    "get_settings",
    "Settings",
    "EnvironmentMode",
    "StorefrontError",
    "NotFoundError",
    "EmptyCartError",
    "UnauthorizedError",
    "ForbiddenError",
    "ValidationError",
    "InternalError",
]

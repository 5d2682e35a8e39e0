"""
Storefront Error Taxonomy

Every expected failure raised by the catalog, cart and order services
derives from StorefrontError. The HTTP layer renders them with the status
code carried by the class; anything else is treated as an internal error.

Author: Your Name
Version: 3.0.0
"""

from typing import Optional


class StorefrontError(Exception):
    """Base class for all storefront errors. Always safe to catch at the top level."""

    status_code: int = 500
    error: str = "internal_error"

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_dict(self) -> dict:
        """Convert to the ErrorResponse shape."""
        return {
            "success": False,
            "error": self.error,
            "detail": self.detail or self.message,
        }


class NotFoundError(StorefrontError):
    """Raised when a restaurant, menu item, cart line or order does not exist."""
    status_code = 404
    error = "not_found"


class EmptyCartError(StorefrontError):
    """Raised when checkout is attempted without any line items."""
    status_code = 400
    error = "empty_cart"


class UnauthorizedError(StorefrontError):
    """Raised when an operation needs an identity and the caller has none."""
    status_code = 401
    error = "unauthorized"


class ForbiddenError(StorefrontError):
    """Raised when the caller does not own the resource."""
    status_code = 403
    error = "forbidden"


class ValidationError(StorefrontError):
    """Raised for malformed input, before any mutation happens."""
    status_code = 422
    error = "validation_error"


class InternalError(StorefrontError):
    """Raised when the storage layer or other infrastructure fails."""
    status_code = 500
    error = "internal_error"

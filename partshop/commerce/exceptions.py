"""
Commerce Errors

Every failure the cart and order engine reports is a ``CommerceError``. The
five categories map one-to-one to HTTP responses:

- NotFoundError (404): product, user, cart item, order or order item absent
- InvalidInputError (400): bad quantity, status or order payload
- ConflictError (409): duplicate order number, illegal state change
- ResourceExhaustedError (503): connection pool or server connection limit
- InternalError (500): any other database/driver failure

Database exceptions are translated once, at the caller layer, through
``translate_database_error``.
"""

from typing import Any, Dict, Optional

from sqlalchemy import exc as sa_exc


class CommerceError(Exception):
    """Base class for all cart/order engine errors."""

    status_code: int = 500
    code: str = "internal_error"
    default_message: str = "Internal error"

    def __init__(self, message: Optional[str] = None, **details: Any):
        self.message = message or self.default_message
        self.details: Dict[str, Any] = details
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "success": False,
            "error": self.code,
            "message": self.message,
        }
        if self.details:
            payload["details"] = {key: str(value) for key, value in self.details.items()}
        return payload


# =============================================================================
# CATEGORIES
# =============================================================================

class NotFoundError(CommerceError):
    status_code = 404
    code = "not_found"
    default_message = "Resource not found"


class InvalidInputError(CommerceError):
    status_code = 400
    code = "invalid_input"
    default_message = "Invalid input"


class ConflictError(CommerceError):
    status_code = 409
    code = "conflict"
    default_message = "Request conflicts with the current state"


class ResourceExhaustedError(CommerceError):
    """Connection pool exhausted; clients should back off and retry."""

    status_code = 503
    code = "resource_exhausted"
    default_message = "Database connection limit reached, retry later"
    retry_after_seconds = 2


class InternalError(CommerceError):
    status_code = 500
    code = "internal_error"
    default_message = "Internal database error"


# =============================================================================
# NOT FOUND
# =============================================================================

class ProductNotFound(NotFoundError):
    code = "product_not_found"
    default_message = "Product not found"


class UserNotFound(NotFoundError):
    code = "user_not_found"
    default_message = "User not found"


class CartItemNotFound(NotFoundError):
    code = "cart_item_not_found"
    default_message = "Cart item not found"


class OrderNotFound(NotFoundError):
    code = "order_not_found"
    default_message = "Order not found"


class OrderItemNotFound(NotFoundError):
    code = "order_item_not_found"
    default_message = "Item not found in this order"


# =============================================================================
# INVALID INPUT
# =============================================================================

class InvalidQuantity(InvalidInputError):
    code = "invalid_quantity"
    default_message = "Quantity must be at least 1"


class InvalidStatus(InvalidInputError):
    code = "invalid_status"
    default_message = "Unknown order status"


class EmptyOrder(InvalidInputError):
    code = "empty_order"
    default_message = "An order needs at least one item"


class CartEmpty(InvalidInputError):
    code = "cart_empty"
    default_message = "Cart is empty"


class TotalMismatch(InvalidInputError):
    code = "total_mismatch"
    default_message = "Supplied totals do not match the item prices"


# =============================================================================
# CONFLICT
# =============================================================================

class DuplicateOrderNumber(ConflictError):
    code = "duplicate_order_number"
    default_message = "Order number already exists"


class InvalidStatusTransition(ConflictError):
    code = "invalid_status_transition"
    default_message = "Order status cannot change this way"


class OrderAlreadyCompleted(ConflictError):
    code = "order_already_completed"
    default_message = "Order is already completed"


# =============================================================================
# DATABASE ERROR TRANSLATION
# =============================================================================

# PostgreSQL SQLSTATE codes
_TOO_MANY_CONNECTIONS = {"53300", "53400"}
_STALE_PREPARED_STATEMENT = {"26000", "42P05", "0A000"}
_FOREIGN_KEY_VIOLATION = "23503"

_TRANSIENT_DRIVER_ERRORS = {
    "InvalidCachedStatementError",
    "DuplicatePreparedStatementError",
    "InvalidSQLStatementNameError",
}


def _driver_error(error: BaseException) -> Optional[BaseException]:
    orig = getattr(error, "orig", None)
    # asyncpg errors arrive wrapped twice by the async adaptor
    return getattr(orig, "__cause__", None) or orig


def _sqlstate(error: BaseException) -> Optional[str]:
    driver_error = _driver_error(error)
    return getattr(driver_error, "sqlstate", None) or getattr(driver_error, "pgcode", None)


def is_transient_error(error: BaseException) -> bool:
    """
    True for failures worth one retry: an invalidated connection or a
    prepared-statement conflict (typical behind a transaction pooler).
    """
    if isinstance(error, sa_exc.DBAPIError) and error.connection_invalidated:
        return True
    if _sqlstate(error) in _STALE_PREPARED_STATEMENT:
        return True
    driver_error = _driver_error(error)
    return type(driver_error).__name__ in _TRANSIENT_DRIVER_ERRORS


def translate_database_error(error: BaseException) -> CommerceError:
    """Map a SQLAlchemy/driver exception onto the error taxonomy."""
    if isinstance(error, CommerceError):
        return error

    if isinstance(error, sa_exc.TimeoutError):
        return ResourceExhaustedError(reason="connection pool timeout")

    if _sqlstate(error) in _TOO_MANY_CONNECTIONS or type(_driver_error(error)).__name__ == "TooManyConnectionsError":
        return ResourceExhaustedError(reason="database connection limit")

    if isinstance(error, sa_exc.IntegrityError) and "order_number" in str(error.orig):
        return DuplicateOrderNumber()

    if isinstance(error, sa_exc.IntegrityError) and (
        _sqlstate(error) == _FOREIGN_KEY_VIOLATION or "FOREIGN KEY" in str(error.orig)
    ):
        return InvalidInputError("Referenced record does not exist", error_type=type(error).__name__)

    if isinstance(error, (sa_exc.OperationalError, sa_exc.InterfaceError, OSError)):
        return InternalError("Database unavailable", error_type=type(error).__name__)

    return InternalError(error_type=type(error).__name__)

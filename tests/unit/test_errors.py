"""
Unit Tests - Error Translation and Transaction Runner
"""
import pytest
from sqlalchemy import exc as sa_exc
from sqlalchemy import func, select

from partshop.commerce.cart import CartView
from partshop.commerce.exceptions import (
    DuplicateOrderNumber,
    InternalError,
    InvalidInputError,
    OrderNotFound,
    ResourceExhaustedError,
    is_transient_error,
    translate_database_error,
)
from partshop.database.models import CartItem


class _DriverError(Exception):
    def __init__(self, message, sqlstate=None):
        super().__init__(message)
        self.sqlstate = sqlstate


def _operational(sqlstate=None, invalidated=False):
    return sa_exc.OperationalError(
        "SELECT 1", {}, _DriverError("boom", sqlstate), connection_invalidated=invalidated
    )


class TestTranslateDatabaseError:
    """Tests for translate_database_error"""

    def test_pool_timeout(self):
        error = translate_database_error(sa_exc.TimeoutError("QueuePool limit reached"))
        assert isinstance(error, ResourceExhaustedError)
        assert error.status_code == 503

    def test_too_many_connections(self):
        assert isinstance(translate_database_error(_operational("53300")), ResourceExhaustedError)

    def test_duplicate_order_number(self):
        error = sa_exc.IntegrityError(
            "INSERT", {}, _DriverError("UNIQUE constraint failed: orders.order_number")
        )
        assert isinstance(translate_database_error(error), DuplicateOrderNumber)

    def test_foreign_key_violation(self):
        error = sa_exc.IntegrityError(
            "INSERT", {}, _DriverError("insert or update violates foreign key constraint", "23503")
        )
        translated = translate_database_error(error)
        assert isinstance(translated, InvalidInputError)
        assert translated.status_code == 400

    def test_unavailable(self):
        error = translate_database_error(_operational())
        assert isinstance(error, InternalError)
        assert error.message == "Database unavailable"

    def test_domain_error_passes_through(self):
        original = OrderNotFound()
        assert translate_database_error(original) is original

    def test_transient_detection(self):
        assert is_transient_error(_operational(invalidated=True))
        assert is_transient_error(_operational("0A000"))
        assert not is_transient_error(_operational("53300"))

    def test_error_body(self):
        body = OrderNotFound(order_id="abc").to_dict()
        assert body == {
            "success": False,
            "error": "order_not_found",
            "message": "Order not found",
            "details": {"order_id": "abc"},
        }


class TestCommerceRunner:
    """Tests for Commerce.run and Commerce.read"""

    async def test_transient_error_retried_once(self, commerce):
        attempts = []

        async def operation(session):
            attempts.append(1)
            if len(attempts) == 1:
                raise _operational(invalidated=True)
            return "ok"

        assert await commerce.run(operation) == "ok"
        assert len(attempts) == 2

    async def test_second_failure_is_translated(self, commerce):
        attempts = []

        async def operation(session):
            attempts.append(1)
            raise _operational(invalidated=True)

        with pytest.raises(InternalError):
            await commerce.run(operation)
        assert len(attempts) == 2

    async def test_domain_errors_not_retried(self, commerce):
        attempts = []

        async def operation(session):
            attempts.append(1)
            raise OrderNotFound()

        with pytest.raises(OrderNotFound):
            await commerce.run(operation)
        assert len(attempts) == 1

    async def test_failed_operation_rolls_back(self, commerce, retail_user, pump):
        async def operation(session):
            await commerce.cart.add_item(session, retail_user.id, pump.id, 1)
            raise OrderNotFound()

        with pytest.raises(OrderNotFound):
            await commerce.run(operation)

        async def count(session):
            return await session.scalar(select(func.count(CartItem.id)))

        assert await commerce.run(count) == 0

    async def test_read_degrades_to_fallback(self, commerce, retail_user):
        async def operation(session):
            raise sa_exc.TimeoutError("QueuePool limit reached")

        view = await commerce.read(operation, fallback=lambda: CartView(user_id=retail_user.id))

        assert view.items == []
        assert view.user_id == retail_user.id

    async def test_read_keeps_domain_errors(self, commerce):
        async def operation(session):
            raise OrderNotFound()

        with pytest.raises(OrderNotFound):
            await commerce.read(operation, fallback=list)

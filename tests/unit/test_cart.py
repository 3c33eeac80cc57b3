"""
Unit Tests - Cart Store
"""
import uuid
from decimal import Decimal

import pytest
from sqlalchemy import func, select, update

from partshop.commerce.exceptions import (
    CartItemNotFound,
    InvalidQuantity,
    ProductNotFound,
    UserNotFound,
)
from partshop.database.models import CartItem, User


class TestAddItem:
    """Tests for CartStore.add_item"""

    async def test_add_prices_with_sale_price(self, database, commerce, retail_user, pump):
        async with database.session() as session:
            line = await commerce.cart.add_item(session, retail_user.id, pump.id, 2)

        assert line.quantity == 2
        assert line.price == Decimal("180.00")
        assert line.sale_price == Decimal("144.00")
        assert line.total_price == Decimal("360.00")
        assert line.total_sale_price == Decimal("288.00")
        assert line.category_name == "Hydraulics"

    async def test_add_prices_with_discount(self, database, commerce, fleet_user, pump):
        async with database.session() as session:
            line = await commerce.cart.add_item(session, fleet_user.id, pump.id, 1)

        assert line.sale_price == Decimal("162.00")

    async def test_unapproved_user_gets_no_discount(self, database, commerce, unapproved_user, pump):
        async with database.session() as session:
            line = await commerce.cart.add_item(session, unapproved_user.id, pump.id, 1)

        assert line.sale_price == Decimal("144.00")

    async def test_repeated_add_merges_into_one_line(self, database, commerce, retail_user, pump):
        """Adding the same product twice increments a single line"""
        async with database.session() as session:
            first = await commerce.cart.add_item(session, retail_user.id, pump.id, 2)
        async with database.session() as session:
            second = await commerce.cart.add_item(session, retail_user.id, pump.id, 3)

        assert second.id == first.id
        assert second.quantity == 5
        assert second.total_sale_price == Decimal("720.00")

        async with database.session() as session:
            count = await session.scalar(
                select(func.count(CartItem.id)).where(CartItem.user_id == retail_user.id)
            )
        assert count == 1

    @pytest.mark.parametrize("quantity", [0, -1])
    async def test_invalid_quantity(self, database, commerce, retail_user, pump, quantity):
        with pytest.raises(InvalidQuantity):
            async with database.session() as session:
                await commerce.cart.add_item(session, retail_user.id, pump.id, quantity)

    async def test_unknown_user(self, database, commerce, pump):
        with pytest.raises(UserNotFound):
            async with database.session() as session:
                await commerce.cart.add_item(session, uuid.uuid4(), pump.id, 1)

    async def test_unknown_product(self, database, commerce, retail_user):
        with pytest.raises(ProductNotFound):
            async with database.session() as session:
                await commerce.cart.add_item(session, retail_user.id, uuid.uuid4(), 1)


class TestListCart:
    """Tests for CartStore.list_cart"""

    async def test_empty_cart(self, database, commerce, retail_user):
        async with database.session() as session:
            view = await commerce.cart.list_cart(session, retail_user.id)

        assert view.items == []
        assert view.total_items == 0
        assert view.total_price == Decimal("0.00")

    async def test_aggregates(self, database, commerce, retail_user, pump, seal_kit):
        async with database.session() as session:
            await commerce.cart.add_item(session, retail_user.id, pump.id, 2)
            await commerce.cart.add_item(session, retail_user.id, seal_kit.id, 1)

        async with database.session() as session:
            view = await commerce.cart.list_cart(session, retail_user.id)

        assert len(view.items) == 2
        assert view.total_items == 3
        assert view.total_price == Decimal("402.50")
        assert view.total_sale_price == Decimal("330.50")
        assert view.savings == Decimal("72.00")

    async def test_reprices_when_discount_changes(self, database, commerce, retail_user, pump):
        """A discount granted after the add shows up on the next read"""
        async with database.session() as session:
            await commerce.cart.add_item(session, retail_user.id, pump.id, 1)

        async with database.session() as session:
            await session.execute(
                update(User).where(User.id == retail_user.id).values(discount_percentage=10)
            )

        async with database.session() as session:
            view = await commerce.cart.list_cart(session, retail_user.id)

        assert view.items[0].sale_price == Decimal("162.00")
        assert view.total_sale_price == Decimal("162.00")


class TestUpdateAndRemove:
    """Tests for quantity updates and removal"""

    async def test_update_quantity(self, database, commerce, fleet_user, pump):
        async with database.session() as session:
            line = await commerce.cart.add_item(session, fleet_user.id, pump.id, 1)

        async with database.session() as session:
            updated = await commerce.cart.update_quantity(session, line.id, 4)

        assert updated.quantity == 4
        assert updated.total_sale_price == Decimal("648.00")

    async def test_update_to_zero_removes_line(self, database, commerce, retail_user, pump):
        async with database.session() as session:
            line = await commerce.cart.add_item(session, retail_user.id, pump.id, 1)

        async with database.session() as session:
            assert await commerce.cart.update_quantity(session, line.id, 0) is None

        async with database.session() as session:
            view = await commerce.cart.list_cart(session, retail_user.id)
        assert view.items == []

    async def test_update_unknown_line(self, database, commerce):
        with pytest.raises(CartItemNotFound):
            async with database.session() as session:
                await commerce.cart.update_quantity(session, uuid.uuid4(), 2)

    async def test_remove_is_idempotent(self, database, commerce, retail_user, pump):
        async with database.session() as session:
            line = await commerce.cart.add_item(session, retail_user.id, pump.id, 1)

        async with database.session() as session:
            assert await commerce.cart.remove_item(session, line.id) is True
        async with database.session() as session:
            assert await commerce.cart.remove_item(session, line.id) is False

    async def test_clear_cart(self, database, commerce, retail_user, pump, seal_kit):
        async with database.session() as session:
            await commerce.cart.add_item(session, retail_user.id, pump.id, 1)
            await commerce.cart.add_item(session, retail_user.id, seal_kit.id, 1)

        async with database.session() as session:
            assert await commerce.cart.clear_cart(session, retail_user.id) == 2


class TestAllCarts:
    """Tests for the admin cart overview"""

    async def test_groups_by_user(self, database, commerce, retail_user, fleet_user, pump, seal_kit):
        async with database.session() as session:
            await commerce.cart.add_item(session, retail_user.id, pump.id, 1)
            await commerce.cart.add_item(session, retail_user.id, seal_kit.id, 2)
            await commerce.cart.add_item(session, fleet_user.id, pump.id, 1)

        async with database.session() as session:
            carts = await commerce.cart.all_carts(session)

        by_email = {cart.email: cart for cart in carts}
        assert set(by_email) == {"retail@example.com", "fleet@example.com"}
        assert by_email["retail@example.com"].total_items == 3
        assert by_email["retail@example.com"].user_name == "Rauf Aliyev"
        assert by_email["fleet@example.com"].total_sale_price == Decimal("162.00")

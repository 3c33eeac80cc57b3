"""
Unit Tests - Order Snapshotter
"""
import re
import uuid
from decimal import Decimal

import pytest
from sqlalchemy import delete, event, func, select, update
from sqlalchemy import exc as sa_exc

from partshop.commerce.cart import PricedItem
from partshop.commerce.checkout import generate_order_number
from partshop.commerce.exceptions import (
    CartEmpty,
    DuplicateOrderNumber,
    EmptyOrder,
    InternalError,
    InvalidQuantity,
    OrderAlreadyCompleted,
    OrderNotFound,
    ProductNotFound,
    TotalMismatch,
    UserNotFound,
)
from partshop.commerce.orders import get_order, list_user_orders
from partshop.database.models import Order, OrderItem, OrderStatus, Product


def _items(pump, seal_kit):
    return [
        PricedItem(
            product_id=pump.id,
            name=pump.name,
            sku=pump.sku,
            category_name="Hydraulics",
            quantity=2,
            price=Decimal("144.00"),
        ),
        PricedItem(
            product_id=seal_kit.id,
            name=seal_kit.name,
            sku=seal_kit.sku,
            quantity=1,
            price=Decimal("42.50"),
        ),
    ]


def _item_sum(order) -> Decimal:
    return sum((item.total_price for item in order.items), Decimal("0.00"))


class TestCreateOrder:
    """Tests for OrderSnapshotter.create_order"""

    async def test_total_is_sum_of_items(self, database, commerce, retail_user, pump, seal_kit):
        async with database.session() as session:
            order = await commerce.checkout.create_order(
                session, retail_user.id, _items(pump, seal_kit), order_number="ORD-1"
            )

        assert order.status == OrderStatus.PENDING
        assert order.currency == "AZN"
        assert order.total_amount == Decimal("330.50")
        assert order.total_amount == _item_sum(order)

    async def test_generates_order_number(self, database, commerce, retail_user, pump, seal_kit):
        async with database.session() as session:
            order = await commerce.checkout.create_order(session, retail_user.id, _items(pump, seal_kit))

        assert re.fullmatch(r"ORD-\d+-\d{1,4}", order.order_number)

    async def test_snapshot_survives_catalog_changes(self, database, commerce, retail_user, pump, seal_kit):
        """Renaming, repricing or deleting a product leaves the order untouched"""
        async with database.session() as session:
            order = await commerce.checkout.create_order(
                session, retail_user.id, _items(pump, seal_kit), order_number="ORD-SNAP"
            )

        async with database.session() as session:
            await session.execute(
                update(Product)
                .where(Product.id == pump.id)
                .values(name="Renamed Pump", price=Decimal("999.00"))
            )
            await session.execute(delete(Product).where(Product.id == seal_kit.id))

        async with database.session() as session:
            stored = await get_order(session, order.id)

        items = {item.sku: item for item in stored.items}
        assert items["HYD-PMP-001"].name == "Hydraulic Pump 24V"
        assert items["HYD-PMP-001"].price == Decimal("144.00")
        assert items["HYD-SEAL-010"].name == "Lift Cylinder Seal Kit"
        assert items["HYD-SEAL-010"].product_id is None
        assert stored.total_amount == Decimal("330.50")

    async def test_duplicate_order_number(self, database, commerce, retail_user, pump, seal_kit):
        async with database.session() as session:
            await commerce.checkout.create_order(
                session, retail_user.id, _items(pump, seal_kit), order_number="ORD-DUP"
            )

        with pytest.raises(DuplicateOrderNumber):
            async with database.session() as session:
                await commerce.checkout.create_order(
                    session, retail_user.id, _items(pump, seal_kit), order_number="ORD-DUP"
                )

        async with database.session() as session:
            orders = await list_user_orders(session, retail_user.id)
        assert len(orders) == 1

    async def test_unknown_product(self, database, commerce, retail_user, pump):
        items = [
            PricedItem(product_id=pump.id, name=pump.name, quantity=1, price=Decimal("144.00")),
            PricedItem(product_id=uuid.uuid4(), name="Ghost part", quantity=1, price=Decimal("10.00")),
        ]

        with pytest.raises(ProductNotFound) as excinfo:
            async with database.session() as session:
                await commerce.checkout.create_order(session, retail_user.id, items)

        assert excinfo.value.details["item"] == 1
        async with database.session() as session:
            assert await list_user_orders(session, retail_user.id) == []

    async def test_failed_item_insert_leaves_no_order(self, commerce, retail_user, pump, seal_kit):
        """An insert failure on the second item rolls back the order and the first item"""

        def fail_on_seal_kit(mapper, connection, target):
            if target.product_id == seal_kit.id:
                raise sa_exc.IntegrityError("INSERT INTO order_items", {}, Exception("insert rejected"))

        async def operation(session):
            return await commerce.checkout.create_order(
                session, retail_user.id, _items(pump, seal_kit), order_number="ORD-ATOMIC"
            )

        event.listen(OrderItem, "before_insert", fail_on_seal_kit)
        try:
            with pytest.raises(InternalError):
                await commerce.run(operation)
        finally:
            event.remove(OrderItem, "before_insert", fail_on_seal_kit)

        async def counts(session):
            orders = await session.scalar(select(func.count(Order.id)))
            items = await session.scalar(select(func.count(OrderItem.id)))
            return orders, items

        assert await commerce.run(counts) == (0, 0)

    async def test_empty_items(self, database, commerce, retail_user):
        with pytest.raises(EmptyOrder):
            async with database.session() as session:
                await commerce.checkout.create_order(session, retail_user.id, [])

    async def test_zero_quantity_item(self, database, commerce, retail_user):
        items = [PricedItem(product_id=None, name="Bolt", quantity=0, price=Decimal("1.00"))]
        with pytest.raises(InvalidQuantity):
            async with database.session() as session:
                await commerce.checkout.create_order(session, retail_user.id, items)

    async def test_item_total_mismatch(self, database, commerce, retail_user):
        items = [
            PricedItem(
                product_id=None,
                name="Bolt",
                quantity=3,
                price=Decimal("1.00"),
                total_price=Decimal("5.00"),
            )
        ]
        with pytest.raises(TotalMismatch):
            async with database.session() as session:
                await commerce.checkout.create_order(session, retail_user.id, items)

    async def test_order_total_mismatch(self, database, commerce, retail_user, pump, seal_kit):
        with pytest.raises(TotalMismatch):
            async with database.session() as session:
                await commerce.checkout.create_order(
                    session, retail_user.id, _items(pump, seal_kit), expected_total=Decimal("300.00")
                )

    async def test_unknown_user(self, database, commerce, pump, seal_kit):
        with pytest.raises(UserNotFound):
            async with database.session() as session:
                await commerce.checkout.create_order(session, uuid.uuid4(), _items(pump, seal_kit))


class TestCheckoutCart:
    """Tests for creating orders from the cart"""

    async def test_checkout_uses_effective_prices(self, database, commerce, fleet_user, pump, seal_kit):
        async with database.session() as session:
            await commerce.cart.add_item(session, fleet_user.id, pump.id, 2)
            await commerce.cart.add_item(session, fleet_user.id, seal_kit.id, 1)

        async with database.session() as session:
            order = await commerce.checkout.checkout_cart(session, commerce.cart, fleet_user.id)

        prices = {item.sku: item.price for item in order.items}
        # 10% off 180.00 and 42.50 (38.25)
        assert prices == {"HYD-PMP-001": Decimal("162.00"), "HYD-SEAL-010": Decimal("38.25")}
        assert order.total_amount == Decimal("362.25")

        async with database.session() as session:
            view = await commerce.cart.list_cart(session, fleet_user.id)
        assert len(view.items) == 2

    async def test_empty_cart(self, database, commerce, retail_user):
        with pytest.raises(CartEmpty):
            async with database.session() as session:
                await commerce.checkout.checkout_cart(session, commerce.cart, retail_user.id)


class TestCompleteOrder:
    """Tests for OrderSnapshotter.complete_order"""

    async def _order_with_cart(self, database, commerce, user, product):
        async with database.session() as session:
            await commerce.cart.add_item(session, user.id, product.id, 1)
        async with database.session() as session:
            return await commerce.checkout.checkout_cart(session, commerce.cart, user.id)

    async def test_complete_clears_cart(self, database, commerce, retail_user, pump):
        order = await self._order_with_cart(database, commerce, retail_user, pump)

        async with database.session() as session:
            completed = await commerce.checkout.complete_order(session, order.id, retail_user.id)

        assert completed.cart_items_removed == 1
        assert completed.order.completed_at is not None

        async with database.session() as session:
            view = await commerce.cart.list_cart(session, retail_user.id)
        assert view.items == []

    async def test_complete_twice(self, database, commerce, retail_user, pump):
        order = await self._order_with_cart(database, commerce, retail_user, pump)

        async with database.session() as session:
            await commerce.checkout.complete_order(session, order.id, retail_user.id)

        with pytest.raises(OrderAlreadyCompleted):
            async with database.session() as session:
                await commerce.checkout.complete_order(session, order.id, retail_user.id)

    async def test_other_users_order(self, database, commerce, retail_user, fleet_user, pump):
        """Completing someone else's order fails and leaves both carts alone"""
        order = await self._order_with_cart(database, commerce, retail_user, pump)
        async with database.session() as session:
            await commerce.cart.add_item(session, fleet_user.id, pump.id, 1)

        with pytest.raises(OrderNotFound):
            async with database.session() as session:
                await commerce.checkout.complete_order(session, order.id, fleet_user.id)

        async with database.session() as session:
            fleet_cart = await commerce.cart.list_cart(session, fleet_user.id)
        assert len(fleet_cart.items) == 1


def test_generate_order_number_format():
    assert re.fullmatch(r"ORD-\d{13,}-\d{1,4}", generate_order_number())

"""
Order Snapshotter

Turns priced line items into a persisted order. Prices arrive already
resolved (from the cart at checkout time) and are stored as historical
facts; the catalog is not consulted again. Product name, SKU and category are
copied onto each order item for the same reason.

The whole insert runs in the caller's transaction, so a failure part-way
leaves no partial order behind.
"""

import random
import time
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Sequence

import structlog
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from partshop.commerce.cart import CartStore, PricedItem
from partshop.commerce.catalog import Catalog
from partshop.commerce.exceptions import (
    CartEmpty,
    DuplicateOrderNumber,
    EmptyOrder,
    InvalidInputError,
    InvalidQuantity,
    OrderAlreadyCompleted,
    OrderNotFound,
    ProductNotFound,
    TotalMismatch,
    UserNotFound,
)
from partshop.commerce.orders import load_order
from partshop.commerce.pricing import CENT, ZERO, line_total, to_money
from partshop.database.models import CartItem, Order, OrderItem, OrderStatus, Product, utcnow

logger = structlog.get_logger(__name__)


def generate_order_number() -> str:
    """ORD-<epoch milliseconds>-<random 0..9999>"""
    return f"ORD-{int(time.time() * 1000)}-{random.randint(0, 9999)}"


@dataclass
class CompletedOrder:
    order: Order
    cart_items_removed: int


class OrderSnapshotter:
    """
    Creates orders from priced items and completes them.

    Example:
        snapshotter = OrderSnapshotter(catalog, currency="AZN")
        order = await snapshotter.create_order(session, user_id, items)
    """

    def __init__(self, catalog: Catalog, currency: str = "AZN"):
        self.catalog = catalog
        self.currency = currency

    def _validate_items(self, items: Sequence[PricedItem]) -> Decimal:
        if not items:
            raise EmptyOrder()

        total = ZERO
        for index, item in enumerate(items):
            if item.quantity < 1:
                raise InvalidQuantity(item=index, quantity=item.quantity)
            if to_money(item.price) < ZERO:
                raise InvalidInputError("Item price cannot be negative", item=index)
            if not item.name:
                raise InvalidInputError("Item name is required", item=index)

            expected = line_total(item.price, item.quantity)
            if item.total_price is not None and abs(to_money(item.total_price) - expected) > CENT:
                raise TotalMismatch(item=index, total_price=item.total_price, expected=expected)
            total += expected

        return to_money(total)

    async def _check_products(self, session: AsyncSession, items: Sequence[PricedItem]) -> None:
        product_ids = {item.product_id for item in items if item.product_id is not None}
        if not product_ids:
            return

        result = await session.execute(select(Product.id).where(Product.id.in_(product_ids)))
        known = set(result.scalars())
        for index, item in enumerate(items):
            if item.product_id is not None and item.product_id not in known:
                raise ProductNotFound(item=index, product_id=item.product_id)

    async def create_order(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        items: Sequence[PricedItem],
        order_number: Optional[str] = None,
        notes: Optional[str] = None,
        expected_total: Optional[Decimal] = None,
    ) -> Order:
        """
        Persist one order and its items.

        ``total_amount`` is the sum of the item totals; a caller-supplied
        ``expected_total`` must agree with it to the cent.

        Raises:
            EmptyOrder, InvalidQuantity, TotalMismatch: malformed items
            UserNotFound: unknown customer
            ProductNotFound: an item references a product that does not exist
            DuplicateOrderNumber: the order number is taken
        """
        total = self._validate_items(items)
        if expected_total is not None and abs(to_money(expected_total) - total) > CENT:
            raise TotalMismatch(total_amount=expected_total, expected=total)

        user = await self.catalog.get_user(session, user_id)
        if user is None:
            raise UserNotFound(user_id=user_id)

        await self._check_products(session, items)

        order_number = order_number or generate_order_number()
        existing = await session.execute(
            select(Order.id).where(Order.order_number == order_number)
        )
        if existing.first() is not None:
            raise DuplicateOrderNumber(order_number=order_number)

        order = Order(
            order_number=order_number,
            user_id=user_id,
            status=OrderStatus.PENDING,
            total_amount=total,
            currency=self.currency,
            notes=notes,
            items=[
                OrderItem(
                    product_id=item.product_id,
                    name=item.name,
                    sku=item.sku,
                    category_name=item.category_name,
                    quantity=item.quantity,
                    price=to_money(item.price),
                    total_price=line_total(item.price, item.quantity),
                )
                for item in items
            ],
        )
        session.add(order)

        try:
            await session.flush()
        except IntegrityError as e:
            if "order_number" in str(e.orig):
                raise DuplicateOrderNumber(order_number=order_number) from e
            raise

        logger.info(
            "Order created",
            order_id=str(order.id),
            order_number=order_number,
            user_id=str(user_id),
            items=len(order.items),
            total_amount=str(total),
        )
        return order

    async def checkout_cart(
        self,
        session: AsyncSession,
        cart: CartStore,
        user_id: uuid.UUID,
        notes: Optional[str] = None,
        order_number: Optional[str] = None,
    ) -> Order:
        """
        Create an order from the customer's live cart.

        The cart is left untouched; it is cleared by ``complete_order``.

        Raises:
            CartEmpty: nothing to check out
        """
        items = await cart.priced_items(session, user_id)
        if not items:
            raise CartEmpty(user_id=user_id)
        return await self.create_order(session, user_id, items, order_number=order_number, notes=notes)

    async def complete_order(
        self,
        session: AsyncSession,
        order_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> CompletedOrder:
        """
        Mark a customer's order as completed and empty their cart.

        Both happen in one transaction, and only for an order that already
        exists, so the cart is never lost to a failed checkout.

        Raises:
            OrderNotFound: no such order for this customer
            OrderAlreadyCompleted: the order was completed before
        """
        order = await load_order(session, order_id, for_update=True)
        if order.user_id != user_id:
            raise OrderNotFound(order_id=order_id)
        if order.completed_at is not None:
            raise OrderAlreadyCompleted(order_id=order_id)

        order.completed_at = utcnow()
        order.updated_at = order.completed_at

        result = await session.execute(delete(CartItem).where(CartItem.user_id == user_id))
        await session.flush()

        logger.info(
            "Order completed",
            order_id=str(order_id),
            user_id=str(user_id),
            cart_items_removed=result.rowcount,
        )
        return CompletedOrder(order=order, cart_items_removed=result.rowcount)

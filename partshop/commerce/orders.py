"""
Order Queries

Loading, listing and total recalculation shared by checkout and the admin
mutations. Orders are always loaded together with their items.
"""

import uuid
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from partshop.commerce.exceptions import OrderNotFound
from partshop.commerce.pricing import to_money
from partshop.database.models import Order, OrderItem, OrderStatus, utcnow


async def load_order(
    session: AsyncSession,
    order_id: uuid.UUID,
    for_update: bool = False,
) -> Order:
    """
    Load an order with its items.

    With ``for_update`` the order row stays locked until the transaction
    ends, which serializes concurrent edits of the same order.

    Raises:
        OrderNotFound: If no order has this id
    """
    query = (
        select(Order)
        .options(selectinload(Order.items))
        .where(Order.id == order_id)
        .execution_options(populate_existing=True)
    )
    if for_update:
        query = query.with_for_update(of=Order)

    result = await session.execute(query)
    order = result.scalar_one_or_none()
    if order is None:
        raise OrderNotFound(order_id=order_id)
    return order


async def recalculate_total(session: AsyncSession, order: Order) -> Decimal:
    """
    Set ``order.total_amount`` to the sum of its stored item totals.

    Pending item changes are flushed first so the sum sees them.
    """
    await session.flush()
    result = await session.execute(
        select(func.coalesce(func.sum(OrderItem.total_price), 0))
        .where(OrderItem.order_id == order.id)
    )
    order.total_amount = to_money(result.scalar_one())
    order.updated_at = utcnow()
    await session.flush()
    return order.total_amount


async def get_order(session: AsyncSession, order_id: uuid.UUID) -> Order:
    return await load_order(session, order_id)


async def list_orders(
    session: AsyncSession,
    status: Optional[OrderStatus] = None,
    user_id: Optional[uuid.UUID] = None,
    page: int = 1,
    page_size: int = 20,
) -> Tuple[List[Order], int]:
    """
    List orders, newest first, with optional status/customer filters.

    Returns:
        (orders on the requested page, total matching orders)
    """
    conditions = []
    if status is not None:
        conditions.append(Order.status == status)
    if user_id is not None:
        conditions.append(Order.user_id == user_id)

    count_result = await session.execute(select(func.count(Order.id)).where(*conditions))
    total = count_result.scalar() or 0

    offset = (page - 1) * page_size
    result = await session.execute(
        select(Order)
        .options(selectinload(Order.items))
        .where(*conditions)
        .order_by(Order.created_at.desc(), Order.order_number.desc())
        .offset(offset)
        .limit(page_size)
    )
    return list(result.scalars().all()), total


async def list_user_orders(session: AsyncSession, user_id: uuid.UUID) -> Sequence[Order]:
    result = await session.execute(
        select(Order)
        .options(selectinload(Order.items))
        .where(Order.user_id == user_id)
        .order_by(Order.created_at.desc(), Order.order_number.desc())
    )
    return result.scalars().all()

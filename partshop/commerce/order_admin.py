"""
Order Mutator

Administrative edits to existing orders. Each item edit locks the order row,
applies the change and recomputes ``Order.total_amount`` from the stored
items inside the same transaction, so the total always equals the sum of
the item totals.
"""

import uuid
from typing import Dict, FrozenSet, Iterable, Union

import structlog
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from partshop.commerce.exceptions import (
    InvalidInputError,
    InvalidQuantity,
    InvalidStatus,
    InvalidStatusTransition,
    OrderItemNotFound,
)
from partshop.commerce.orders import load_order, recalculate_total
from partshop.commerce.pricing import line_total
from partshop.database.models import Order, OrderItem, OrderStatus, utcnow

logger = structlog.get_logger(__name__)

FULFILMENT_SEQUENCE = (
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
)

TERMINAL_STATUSES: FrozenSet[OrderStatus] = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})


def _build_transitions() -> Dict[OrderStatus, FrozenSet[OrderStatus]]:
    transitions: Dict[OrderStatus, FrozenSet[OrderStatus]] = {}
    for position, status in enumerate(FULFILMENT_SEQUENCE):
        if status in TERMINAL_STATUSES:
            transitions[status] = frozenset()
            continue
        forward = set(FULFILMENT_SEQUENCE[position + 1:])
        forward.add(OrderStatus.CANCELLED)
        transitions[status] = frozenset(forward)
    transitions[OrderStatus.CANCELLED] = frozenset()
    return transitions


# Forward moves may skip steps; delivered and cancelled are final
ALLOWED_TRANSITIONS = _build_transitions()


def parse_status(value: Union[str, OrderStatus]) -> OrderStatus:
    """
    Raises:
        InvalidStatus: value is not one of the enumerated statuses
    """
    if isinstance(value, OrderStatus):
        return value
    try:
        return OrderStatus(str(value).strip().lower())
    except ValueError:
        raise InvalidStatus(
            status=value,
            allowed=", ".join(s.value for s in OrderStatus),
        ) from None


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return current == target or target in ALLOWED_TRANSITIONS[current]


def _find_item(order: Order, item_id: uuid.UUID) -> OrderItem:
    for item in order.items:
        if item.id == item_id:
            return item
    raise OrderItemNotFound(order_id=order.id, item_id=item_id)


class OrderMutator:
    """
    Admin-only order edits. Authorization happens before these are called.
    """

    def __init__(self, enforce_transitions: bool = True):
        self.enforce_transitions = enforce_transitions

    async def remove_order_item(
        self,
        session: AsyncSession,
        order_id: uuid.UUID,
        item_id: uuid.UUID,
    ) -> Order:
        """
        Delete one item and recompute the order total.

        Raises:
            OrderNotFound: unknown order
            OrderItemNotFound: the item is not part of this order
        """
        order = await load_order(session, order_id, for_update=True)
        item = _find_item(order, item_id)

        order.items.remove(item)
        total = await recalculate_total(session, order)

        logger.info(
            "Order item removed",
            order_id=str(order_id),
            item_id=str(item_id),
            order_total=str(total),
        )
        return order

    async def update_item_quantity(
        self,
        session: AsyncSession,
        order_id: uuid.UUID,
        item_id: uuid.UUID,
        quantity: int,
    ) -> Order:
        """
        Change an item's quantity at its stored unit price and recompute the
        order total.

        Raises:
            InvalidQuantity: quantity < 1
            OrderNotFound: unknown order
            OrderItemNotFound: the item is not part of this order
        """
        if quantity < 1:
            raise InvalidQuantity(quantity=quantity)

        order = await load_order(session, order_id, for_update=True)
        item = _find_item(order, item_id)

        item.quantity = quantity
        item.total_price = line_total(item.price, quantity)
        item.updated_at = utcnow()
        total = await recalculate_total(session, order)

        logger.info(
            "Order item quantity updated",
            order_id=str(order_id),
            item_id=str(item_id),
            quantity=quantity,
            item_total=str(item.total_price),
            order_total=str(total),
        )
        return order

    async def update_order_status(
        self,
        session: AsyncSession,
        order_id: uuid.UUID,
        status: Union[str, OrderStatus],
    ) -> Order:
        """
        Change an order's status. Only ``status`` and ``updated_at`` change.

        Raises:
            InvalidStatus: unknown status value
            OrderNotFound: unknown order
            InvalidStatusTransition: backward move or change after a final
                status, when transitions are enforced
        """
        target = parse_status(status)
        order = await load_order(session, order_id, for_update=True)
        current = order.status

        if self.enforce_transitions and not can_transition(current, target):
            raise InvalidStatusTransition(
                f"Cannot change order status from {current.value} to {target.value}",
                order_id=order_id,
            )

        order.status = target
        order.updated_at = utcnow()
        await session.flush()

        logger.info(
            "Order status updated",
            order_id=str(order_id),
            from_status=current.value,
            to_status=target.value,
        )
        return order

    async def delete_orders(self, session: AsyncSession, order_ids: Iterable[uuid.UUID]) -> int:
        """
        Delete orders together with their items.

        Raises:
            InvalidInputError: no ids given
        """
        ids = list(dict.fromkeys(order_ids))
        if not ids:
            raise InvalidInputError("No order ids given")

        await session.execute(delete(OrderItem).where(OrderItem.order_id.in_(ids)))
        result = await session.execute(delete(Order).where(Order.id.in_(ids)))

        logger.info("Orders deleted", requested=len(ids), deleted=result.rowcount)
        return result.rowcount

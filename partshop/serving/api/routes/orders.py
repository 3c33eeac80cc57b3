"""
Orders API Endpoints

Customer-facing order creation, checkout, completion and retrieval.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from partshop.commerce.cart import PricedItem
from partshop.commerce.orders import get_order, list_user_orders
from partshop.database.models import OrderStatus
from partshop.serving.api.dependencies import Commerce, get_commerce

router = APIRouter()


# =============================================================================
# REQUEST/RESPONSE MODELS
# =============================================================================

class OrderItemIn(BaseModel):
    """Priced line supplied by the checkout page"""
    product_id: Optional[UUID] = None
    name: str = Field(min_length=1)
    sku: Optional[str] = None
    category_name: Optional[str] = None
    quantity: int = Field(ge=1)
    price: Decimal = Field(ge=0)
    total_price: Optional[Decimal] = None

    def to_priced_item(self) -> PricedItem:
        return PricedItem(
            product_id=self.product_id,
            name=self.name,
            sku=self.sku,
            category_name=self.category_name,
            quantity=self.quantity,
            price=self.price,
            total_price=self.total_price,
        )


class CreateOrderRequest(BaseModel):
    """Create an order from already priced items"""
    user_id: UUID
    order_number: Optional[str] = Field(default=None, min_length=1, max_length=100)
    items: List[OrderItemIn] = Field(min_length=1)
    total_amount: Optional[Decimal] = None
    notes: Optional[str] = None


class CheckoutRequest(BaseModel):
    """Create an order from the customer's current cart"""
    user_id: UUID
    order_number: Optional[str] = Field(default=None, min_length=1, max_length=100)
    notes: Optional[str] = None


class CompleteOrderRequest(BaseModel):
    user_id: UUID


class OrderItemResponse(BaseModel):
    """Order line item"""
    id: UUID
    product_id: Optional[UUID]
    name: str
    sku: Optional[str]
    category_name: Optional[str]
    quantity: int
    price: float
    total_price: float

    class Config:
        from_attributes = True


class OrderDetail(BaseModel):
    """Order with its items"""
    id: UUID
    order_number: str
    user_id: UUID
    status: OrderStatus
    total_amount: float
    currency: str
    notes: Optional[str]
    completed_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime
    items: List[OrderItemResponse]

    class Config:
        from_attributes = True


class CompleteOrderResponse(BaseModel):
    success: bool = True
    message: str
    order: OrderDetail
    cart_items_removed: int


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.post("", response_model=OrderDetail, status_code=201)
async def create_order(
    payload: CreateOrderRequest,
    commerce: Commerce = Depends(get_commerce),
) -> OrderDetail:
    """
    Create an order from priced items.

    All-or-nothing: either the order and every item are stored, or nothing is.
    """
    order = await commerce.run(
        lambda session: commerce.checkout.create_order(
            session,
            payload.user_id,
            [item.to_priced_item() for item in payload.items],
            order_number=payload.order_number,
            notes=payload.notes,
            expected_total=payload.total_amount,
        ),
        name="create_order",
    )
    return OrderDetail.model_validate(order)


@router.post("/checkout", response_model=OrderDetail, status_code=201)
async def checkout(
    payload: CheckoutRequest,
    commerce: Commerce = Depends(get_commerce),
) -> OrderDetail:
    """Create an order from the current cart; the cart is kept until completion."""
    order = await commerce.run(
        lambda session: commerce.checkout.checkout_cart(
            session,
            commerce.cart,
            payload.user_id,
            notes=payload.notes,
            order_number=payload.order_number,
        ),
        name="checkout",
    )
    return OrderDetail.model_validate(order)


@router.post("/{order_id}/complete", response_model=CompleteOrderResponse)
async def complete_order(
    order_id: UUID,
    payload: CompleteOrderRequest,
    commerce: Commerce = Depends(get_commerce),
) -> CompleteOrderResponse:
    """Mark an order completed and clear the customer's cart."""
    completed = await commerce.run(
        lambda session: commerce.checkout.complete_order(session, order_id, payload.user_id),
        name="complete_order",
    )
    return CompleteOrderResponse(
        message="Order completed",
        order=OrderDetail.model_validate(completed.order),
        cart_items_removed=completed.cart_items_removed,
    )


@router.get("/user/{user_id}", response_model=List[OrderDetail])
async def get_user_orders(
    user_id: UUID,
    commerce: Commerce = Depends(get_commerce),
) -> List[OrderDetail]:
    """All orders of a customer, newest first (empty if the store is unavailable)."""
    orders = await commerce.read(
        lambda session: list_user_orders(session, user_id),
        fallback=list,
        name="get_user_orders",
    )
    return [OrderDetail.model_validate(order) for order in orders]


@router.get("/{order_id}", response_model=OrderDetail)
async def get_order_detail(
    order_id: UUID,
    commerce: Commerce = Depends(get_commerce),
) -> OrderDetail:
    """Get an order with its items."""
    order = await commerce.run(
        lambda session: get_order(session, order_id),
        name="get_order",
    )
    return OrderDetail.model_validate(order)

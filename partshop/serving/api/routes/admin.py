"""
Admin API Endpoints

Order editing and store-wide overviews. Every item edit returns the order
with its recomputed total.
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from partshop.commerce.order_admin import parse_status
from partshop.commerce.orders import get_order, list_orders
from partshop.serving.api.dependencies import Commerce, get_commerce
from partshop.serving.api.routes.cart import CartItemResponse
from partshop.serving.api.routes.orders import OrderDetail

router = APIRouter()


# =============================================================================
# REQUEST/RESPONSE MODELS
# =============================================================================

class UpdateOrderItemRequest(BaseModel):
    quantity: int = Field(ge=1)


class UpdateOrderStatusRequest(BaseModel):
    status: str


class BulkDeleteRequest(BaseModel):
    order_ids: List[UUID] = Field(min_length=1)


class BulkDeleteResponse(BaseModel):
    success: bool = True
    deleted: int


class OrderListResponse(BaseModel):
    """Paginated order list"""
    orders: List[OrderDetail]
    total: int
    page: int
    page_size: int
    total_pages: int


class UserCartResponse(BaseModel):
    """One customer's cart in the admin overview"""
    user_id: UUID
    email: str
    user_name: str
    items: List[CartItemResponse]
    total_items: int
    total_price: float
    total_sale_price: float
    savings: float

    class Config:
        from_attributes = True


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get("/orders", response_model=OrderListResponse)
async def list_all_orders(
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, ge=1, le=100),
    status: Optional[str] = None,
    user_id: Optional[UUID] = None,
    commerce: Commerce = Depends(get_commerce),
) -> OrderListResponse:
    """
    List orders with pagination.

    - **status**: Filter by order status
    - **user_id**: Filter by customer
    """
    size = page_size or commerce.default_page_size
    status_filter = parse_status(status) if status else None

    orders, total = await commerce.read(
        lambda session: list_orders(
            session, status=status_filter, user_id=user_id, page=page, page_size=size
        ),
        fallback=lambda: ([], 0),
        name="list_orders",
    )
    return OrderListResponse(
        orders=[OrderDetail.model_validate(order) for order in orders],
        total=total,
        page=page,
        page_size=size,
        total_pages=(total + size - 1) // size,
    )


@router.get("/orders/{order_id}", response_model=OrderDetail)
async def get_order_admin(
    order_id: UUID,
    commerce: Commerce = Depends(get_commerce),
) -> OrderDetail:
    order = await commerce.run(lambda session: get_order(session, order_id), name="get_order")
    return OrderDetail.model_validate(order)


@router.delete("/orders/{order_id}/items/{item_id}", response_model=OrderDetail)
async def remove_order_item(
    order_id: UUID,
    item_id: UUID,
    commerce: Commerce = Depends(get_commerce),
) -> OrderDetail:
    """Remove an item from an order and recompute the total."""
    order = await commerce.run(
        lambda session: commerce.admin.remove_order_item(session, order_id, item_id),
        name="remove_order_item",
    )
    return OrderDetail.model_validate(order)


@router.patch("/orders/{order_id}/items/{item_id}", response_model=OrderDetail)
async def update_order_item(
    order_id: UUID,
    item_id: UUID,
    payload: UpdateOrderItemRequest,
    commerce: Commerce = Depends(get_commerce),
) -> OrderDetail:
    """Change an item's quantity at its stored unit price and recompute the total."""
    order = await commerce.run(
        lambda session: commerce.admin.update_item_quantity(
            session, order_id, item_id, payload.quantity
        ),
        name="update_order_item",
    )
    return OrderDetail.model_validate(order)


@router.patch("/orders/{order_id}/status", response_model=OrderDetail)
async def update_order_status(
    order_id: UUID,
    payload: UpdateOrderStatusRequest,
    commerce: Commerce = Depends(get_commerce),
) -> OrderDetail:
    order = await commerce.run(
        lambda session: commerce.admin.update_order_status(session, order_id, payload.status),
        name="update_order_status",
    )
    return OrderDetail.model_validate(order)


@router.post("/orders/bulk-delete", response_model=BulkDeleteResponse)
async def bulk_delete_orders(
    payload: BulkDeleteRequest,
    commerce: Commerce = Depends(get_commerce),
) -> BulkDeleteResponse:
    deleted = await commerce.run(
        lambda session: commerce.admin.delete_orders(session, payload.order_ids),
        name="bulk_delete_orders",
    )
    return BulkDeleteResponse(deleted=deleted)


@router.get("/carts", response_model=List[UserCartResponse])
async def list_all_carts(
    commerce: Commerce = Depends(get_commerce),
) -> List[UserCartResponse]:
    """Every non-empty cart grouped by customer."""
    carts = await commerce.read(
        lambda session: commerce.cart.all_carts(session),
        fallback=list,
        name="list_carts",
    )
    return [UserCartResponse.model_validate(cart) for cart in carts]

"""
Cart API Endpoints

Customer shopping cart: read, add, change quantity, remove, clear.
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from partshop.commerce.cart import CartView
from partshop.serving.api.dependencies import Commerce, get_commerce

router = APIRouter()


# =============================================================================
# REQUEST/RESPONSE MODELS
# =============================================================================

class AddToCartRequest(BaseModel):
    """Add a product to a cart"""
    user_id: UUID
    product_id: UUID
    quantity: int = Field(default=1, ge=1)


class UpdateCartItemRequest(BaseModel):
    """Set a cart line's quantity; zero or less removes the line"""
    quantity: int


class CartItemResponse(BaseModel):
    """Cart line item"""
    id: UUID
    product_id: UUID
    name: str
    sku: Optional[str]
    category_name: Optional[str]
    stock: int
    quantity: int
    price: float
    sale_price: float
    total_price: float
    total_sale_price: float

    class Config:
        from_attributes = True


class CartResponse(BaseModel):
    """Cart with aggregates"""
    user_id: UUID
    items: List[CartItemResponse]
    total_items: int
    total_price: float
    total_sale_price: float
    savings: float

    class Config:
        from_attributes = True


class CartMutationResponse(BaseModel):
    success: bool = True
    message: str
    item: Optional[CartItemResponse] = None
    items_removed: Optional[int] = None


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get("/{user_id}", response_model=CartResponse)
async def get_cart(
    user_id: UUID,
    commerce: Commerce = Depends(get_commerce),
) -> CartResponse:
    """
    Get a customer's cart, priced with their current discount.

    Returns an empty cart if the store is temporarily unavailable.
    """
    cart = await commerce.read(
        lambda session: commerce.cart.list_cart(session, user_id),
        fallback=lambda: CartView(user_id=user_id),
        name="get_cart",
    )
    return CartResponse.model_validate(cart)


@router.post("/items", response_model=CartMutationResponse)
async def add_to_cart(
    payload: AddToCartRequest,
    commerce: Commerce = Depends(get_commerce),
) -> CartMutationResponse:
    """Add a product; repeated adds increase the existing line."""
    line = await commerce.run(
        lambda session: commerce.cart.add_item(
            session, payload.user_id, payload.product_id, payload.quantity
        ),
        name="add_to_cart",
    )
    return CartMutationResponse(
        message="Product added to cart",
        item=CartItemResponse.model_validate(line),
    )


@router.put("/items/{cart_item_id}", response_model=CartMutationResponse)
async def update_cart_item(
    cart_item_id: UUID,
    payload: UpdateCartItemRequest,
    commerce: Commerce = Depends(get_commerce),
) -> CartMutationResponse:
    """Change the quantity of a cart line."""
    line = await commerce.run(
        lambda session: commerce.cart.update_quantity(session, cart_item_id, payload.quantity),
        name="update_cart_item",
    )
    if line is None:
        return CartMutationResponse(message="Cart item removed")
    return CartMutationResponse(
        message="Cart updated",
        item=CartItemResponse.model_validate(line),
    )


@router.delete("/items/{cart_item_id}", response_model=CartMutationResponse)
async def remove_cart_item(
    cart_item_id: UUID,
    commerce: Commerce = Depends(get_commerce),
) -> CartMutationResponse:
    """Remove a cart line (no error if it is already gone)."""
    await commerce.run(
        lambda session: commerce.cart.remove_item(session, cart_item_id),
        name="remove_cart_item",
    )
    return CartMutationResponse(message="Product removed from cart")


@router.delete("/{user_id}", response_model=CartMutationResponse)
async def clear_cart(
    user_id: UUID,
    commerce: Commerce = Depends(get_commerce),
) -> CartMutationResponse:
    """Empty a customer's cart."""
    removed = await commerce.run(
        lambda session: commerce.cart.clear_cart(session, user_id),
        name="clear_cart",
    )
    return CartMutationResponse(message="Cart cleared", items_removed=removed)

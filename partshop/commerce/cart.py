"""
Cart Store

Per-user collection of line items. Writes lock the owning user row so two
concurrent "add to cart" requests for the same customer are serialized and
always merge into a single line per product. Reads re-price every line
against the customer's current discount, since discounts may have changed
since the item was added.
"""

import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from partshop.commerce.catalog import Catalog, ProductInfo, effective_discount
from partshop.commerce.exceptions import CartItemNotFound, InvalidQuantity, UserNotFound
from partshop.commerce.pricing import ZERO, line_total, resolve_price, summarize, to_money
from partshop.database.models import CartItem, Category, Product, User, utcnow

logger = structlog.get_logger(__name__)


@dataclass
class CartLine:
    """A cart line item priced for display"""
    id: uuid.UUID
    product_id: uuid.UUID
    name: str
    sku: Optional[str]
    category_name: Optional[str]
    stock: int
    quantity: int
    price: Decimal  # base price captured when added
    sale_price: Decimal  # effective unit price
    total_price: Decimal
    total_sale_price: Decimal


@dataclass
class CartView:
    """A customer's cart with recomputed aggregates"""
    user_id: uuid.UUID
    items: List[CartLine] = field(default_factory=list)
    total_items: int = 0
    total_price: Decimal = ZERO
    total_sale_price: Decimal = ZERO
    savings: Decimal = ZERO


@dataclass
class UserCart(CartView):
    """Cart plus owner details, for the admin overview"""
    email: str = ""
    user_name: str = ""


@dataclass
class PricedItem:
    """One checkout line: prices are already resolved and frozen"""
    product_id: Optional[uuid.UUID]
    name: str
    quantity: int
    price: Decimal
    sku: Optional[str] = None
    category_name: Optional[str] = None
    total_price: Optional[Decimal] = None


def _build_line(
    item: CartItem,
    product: Product,
    category_name: Optional[str],
    discount: int,
) -> CartLine:
    unit_price = resolve_price(item.price, product.sale_price, discount)
    return CartLine(
        id=item.id,
        product_id=item.product_id,
        name=product.name,
        sku=product.sku,
        category_name=category_name,
        stock=product.stock or 0,
        quantity=item.quantity,
        price=to_money(item.price),
        sale_price=unit_price,
        total_price=line_total(item.price, item.quantity),
        total_sale_price=line_total(unit_price, item.quantity),
    )


def _fill_totals(view: CartView) -> CartView:
    summary = summarize(view.items)
    view.total_items = summary.total_items
    view.total_price = summary.total_price
    view.total_sale_price = summary.total_sale_price
    view.savings = summary.savings
    return view


def _reprice(item: CartItem, product: ProductInfo, discount: int) -> None:
    """Recompute the derived columns of a cart row."""
    unit_price = resolve_price(item.price, product.sale_price, discount)
    item.sale_price = unit_price
    item.total_price = line_total(item.price, item.quantity)
    item.total_sale_price = line_total(unit_price, item.quantity)
    item.updated_at = utcnow()


class CartStore:
    """
    Shopping cart operations, each scoped to one customer.

    Every method runs inside the caller's session; the session boundary is the
    transaction boundary.
    """

    def __init__(self, catalog: Catalog):
        self.catalog = catalog

    def _lines_query(self):
        return (
            select(CartItem, Product, Category.name)
            .join(Product, CartItem.product_id == Product.id)
            .outerjoin(Category, Product.category_id == Category.id)
            .order_by(CartItem.created_at, CartItem.id)
        )

    async def list_cart(self, session: AsyncSession, user_id: uuid.UUID) -> CartView:
        """Read a customer's cart, re-priced against their current discount."""
        discount = await self.catalog.get_user_discount(session, user_id)

        result = await session.execute(self._lines_query().where(CartItem.user_id == user_id))
        view = CartView(
            user_id=user_id,
            items=[
                _build_line(item, product, category_name, discount)
                for item, product, category_name in result.all()
            ],
        )
        return _fill_totals(view)

    async def add_item(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        product_id: uuid.UUID,
        quantity: int = 1,
    ) -> CartLine:
        """
        Add a product to a customer's cart.

        A repeated add for the same product increments the existing line
        instead of inserting a second one.

        Raises:
            InvalidQuantity: quantity < 1
            UserNotFound: unknown customer
            ProductNotFound: unknown product
        """
        if quantity < 1:
            raise InvalidQuantity(quantity=quantity)

        user = await self.catalog.get_user(session, user_id, for_update=True)
        if user is None:
            raise UserNotFound(user_id=user_id)

        product = await self.catalog.get_product(session, product_id)

        result = await session.execute(
            select(CartItem).where(
                CartItem.user_id == user_id,
                CartItem.product_id == product_id,
            )
        )
        item = result.scalar_one_or_none()

        if item is not None:
            item.quantity += quantity
            merged = True
        else:
            item = CartItem(
                user_id=user_id,
                product_id=product_id,
                quantity=quantity,
                price=product.base_price,
            )
            session.add(item)
            merged = False

        _reprice(item, product, effective_discount(user))
        await session.flush()

        logger.info(
            "Cart item added",
            user_id=str(user_id),
            product_id=str(product_id),
            quantity=item.quantity,
            merged=merged,
        )

        return CartLine(
            id=item.id,
            product_id=product_id,
            name=product.name,
            sku=product.sku,
            category_name=product.category_name,
            stock=product.stock,
            quantity=item.quantity,
            price=to_money(item.price),
            sale_price=item.sale_price,
            total_price=item.total_price,
            total_sale_price=item.total_sale_price,
        )

    async def update_quantity(
        self,
        session: AsyncSession,
        cart_item_id: uuid.UUID,
        quantity: int,
    ) -> Optional[CartLine]:
        """
        Set the quantity of a cart line; zero or less removes it.

        Returns:
            The re-priced line, or None when the line was removed

        Raises:
            CartItemNotFound: no cart line has this id
        """
        result = await session.execute(
            select(CartItem).where(CartItem.id == cart_item_id).with_for_update()
        )
        item = result.scalar_one_or_none()
        if item is None:
            raise CartItemNotFound(cart_item_id=cart_item_id)

        if quantity <= 0:
            await session.delete(item)
            await session.flush()
            logger.info("Cart item removed by quantity update", cart_item_id=str(cart_item_id))
            return None

        discount = await self.catalog.get_user_discount(session, item.user_id)
        product = await self.catalog.get_product(session, item.product_id)

        item.quantity = quantity
        _reprice(item, product, discount)
        await session.flush()

        logger.info("Cart item updated", cart_item_id=str(cart_item_id), quantity=quantity)

        return CartLine(
            id=item.id,
            product_id=item.product_id,
            name=product.name,
            sku=product.sku,
            category_name=product.category_name,
            stock=product.stock,
            quantity=item.quantity,
            price=to_money(item.price),
            sale_price=item.sale_price,
            total_price=item.total_price,
            total_sale_price=item.total_sale_price,
        )

    async def remove_item(self, session: AsyncSession, cart_item_id: uuid.UUID) -> bool:
        """Delete a cart line. Removing an absent line is not an error."""
        result = await session.execute(delete(CartItem).where(CartItem.id == cart_item_id))
        removed = result.rowcount > 0
        logger.info("Cart item removed", cart_item_id=str(cart_item_id), removed=removed)
        return removed

    async def clear_cart(self, session: AsyncSession, user_id: uuid.UUID) -> int:
        """Delete every line of a customer's cart and return how many went."""
        result = await session.execute(delete(CartItem).where(CartItem.user_id == user_id))
        logger.info("Cart cleared", user_id=str(user_id), items_removed=result.rowcount)
        return result.rowcount

    async def priced_items(self, session: AsyncSession, user_id: uuid.UUID) -> List[PricedItem]:
        """Freeze the current cart into checkout lines."""
        view = await self.list_cart(session, user_id)
        return [
            PricedItem(
                product_id=line.product_id,
                name=line.name,
                sku=line.sku,
                category_name=line.category_name,
                quantity=line.quantity,
                price=line.sale_price,
                total_price=line.total_sale_price,
            )
            for line in view.items
        ]

    async def all_carts(self, session: AsyncSession) -> List[UserCart]:
        """Every non-empty cart, grouped by owner, most recent activity first."""
        result = await session.execute(
            select(CartItem, Product, Category.name, User)
            .join(Product, CartItem.product_id == Product.id)
            .join(User, CartItem.user_id == User.id)
            .outerjoin(Category, Product.category_id == Category.id)
            .order_by(CartItem.created_at.desc(), CartItem.id)
        )

        carts: Dict[uuid.UUID, UserCart] = {}
        for item, product, category_name, user in result.all():
            cart = carts.get(user.id)
            if cart is None:
                cart = carts[user.id] = UserCart(
                    user_id=user.id,
                    email=user.email,
                    user_name=user.display_name,
                )
            cart.items.append(_build_line(item, product, category_name, effective_discount(user)))

        return [_fill_totals(cart) for cart in carts.values()]

"""
Catalog Gateway

Read-only view of the catalog and account tables as the pricing engine needs
them. Product lookups go through a short-lived read-through cache; discounts
are always read live because an administrator may change them at any time.
"""

import uuid
from dataclasses import dataclass, asdict
from decimal import Decimal
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from partshop.commerce.exceptions import ProductNotFound
from partshop.commerce.pricing import to_money
from partshop.database.models import Category, Product, User
from partshop.serving.cache import CacheManager


@dataclass
class ProductInfo:
    """Product fields the cart and checkout read"""
    id: uuid.UUID
    name: str
    sku: str
    base_price: Decimal
    sale_price: Optional[Decimal]
    stock: int
    category_name: Optional[str]

    def to_cache(self) -> Dict[str, Any]:
        data = asdict(self)
        data["id"] = str(self.id)
        data["base_price"] = str(self.base_price)
        data["sale_price"] = None if self.sale_price is None else str(self.sale_price)
        return data

    @classmethod
    def from_cache(cls, data: Dict[str, Any]) -> "ProductInfo":
        return cls(
            id=uuid.UUID(data["id"]),
            name=data["name"],
            sku=data["sku"],
            base_price=to_money(data["base_price"]),
            sale_price=None if data.get("sale_price") is None else to_money(data["sale_price"]),
            stock=int(data.get("stock") or 0),
            category_name=data.get("category_name"),
        )

    @classmethod
    def from_row(cls, product: Product, category_name: Optional[str]) -> "ProductInfo":
        return cls(
            id=product.id,
            name=product.name,
            sku=product.sku,
            base_price=to_money(product.price),
            sale_price=None if product.sale_price is None else to_money(product.sale_price),
            stock=product.stock or 0,
            category_name=category_name,
        )


def effective_discount(user: Optional[User]) -> int:
    """Discount percentage to apply; unapproved accounts get none."""
    if user is None or not user.is_approved:
        return 0
    return user.discount_percentage or 0


class Catalog:
    """
    Product and user lookups used by the cart and checkout.

    Example:
        catalog = Catalog(CacheManager("products", redis, default_ttl=300))
        product = await catalog.get_product(session, product_id)
    """

    def __init__(self, cache: Optional[CacheManager] = None):
        self.cache = cache or CacheManager("products")

    async def _fetch(self, session: AsyncSession, condition) -> Optional[ProductInfo]:
        result = await session.execute(
            select(Product, Category.name)
            .outerjoin(Category, Product.category_id == Category.id)
            .where(condition)
        )
        row = result.first()
        if row is None:
            return None
        product, category_name = row
        return ProductInfo.from_row(product, category_name)

    async def get_product(self, session: AsyncSession, product_id: uuid.UUID) -> ProductInfo:
        """
        Look a product up by id.

        Raises:
            ProductNotFound: If no product has this id
        """
        cached = await self.cache.get(str(product_id))
        if cached is not None:
            return ProductInfo.from_cache(cached)

        product = await self._fetch(session, Product.id == product_id)
        if product is None:
            raise ProductNotFound(product_id=product_id)

        await self.cache.set(str(product_id), product.to_cache())
        return product

    async def get_product_by_sku(self, session: AsyncSession, sku: str) -> ProductInfo:
        """
        Look a product up by SKU.

        Raises:
            ProductNotFound: If no product has this SKU
        """
        cache_key = f"sku:{sku}"
        cached = await self.cache.get(cache_key)
        if cached is not None:
            return ProductInfo.from_cache(cached)

        product = await self._fetch(session, Product.sku == sku)
        if product is None:
            raise ProductNotFound(sku=sku)

        await self.cache.set(cache_key, product.to_cache())
        return product

    async def get_user(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        for_update: bool = False,
    ) -> Optional[User]:
        """Load a user, optionally locking the row for the rest of the transaction."""
        query = select(User).where(User.id == user_id)
        if for_update:
            query = query.with_for_update()
        result = await session.execute(query)
        return result.scalar_one_or_none()

    async def get_user_discount(self, session: AsyncSession, user_id: uuid.UUID) -> int:
        """Current discount percentage for a user (0 for unknown users)."""
        user = await self.get_user(session, user_id)
        return effective_discount(user)

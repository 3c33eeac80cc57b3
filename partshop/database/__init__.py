"""
Database Module
"""
from .connection import Database
from .models import (
    Base,
    CartItem,
    Category,
    Order,
    OrderItem,
    OrderStatus,
    Product,
    User,
)

__all__ = [
    "Database",
    "Base",
    "CartItem",
    "Category",
    "Order",
    "OrderItem",
    "OrderStatus",
    "Product",
    "User",
]

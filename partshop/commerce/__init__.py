"""
Commerce Module

Cart-to-order pricing and consistency engine.
"""
from .pricing import resolve_price, line_total, summarize
from .catalog import Catalog, ProductInfo
from .cart import CartStore, CartLine, CartView, PricedItem, UserCart
from .checkout import OrderSnapshotter, CompletedOrder, generate_order_number
from .order_admin import OrderMutator
from .exceptions import CommerceError

__all__ = [
    "resolve_price",
    "line_total",
    "summarize",
    "Catalog",
    "ProductInfo",
    "CartStore",
    "CartLine",
    "CartView",
    "PricedItem",
    "UserCart",
    "OrderSnapshotter",
    "CompletedOrder",
    "generate_order_number",
    "OrderMutator",
    "CommerceError",
]

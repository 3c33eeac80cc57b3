"""
API Routes Module
"""
from .health import router as health_router
from .cart import router as cart_router
from .orders import router as orders_router
from .admin import router as admin_router

__all__ = [
    "health_router",
    "cart_router",
    "orders_router",
    "admin_router",
]

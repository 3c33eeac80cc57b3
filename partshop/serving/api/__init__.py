"""
API Module
"""
from .dependencies import Commerce, get_commerce
from .main import create_api_app
from .middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware

__all__ = [
    "Commerce",
    "get_commerce",
    "create_api_app",
    "RequestLoggingMiddleware",
    "SecurityHeadersMiddleware",
]

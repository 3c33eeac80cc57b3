"""
Serving Module
"""
from .cache import init_redis, close_redis, CacheManager

__all__ = [
    "init_redis",
    "close_redis",
    "CacheManager",
]

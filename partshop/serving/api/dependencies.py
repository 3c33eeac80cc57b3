"""
API Dependencies

``Commerce`` bundles the database handle with the cart and order services and
runs each request's work as one transaction:

- mutations retry once, after a short delay, on transient database
  failures and otherwise fail loudly
- reads fall back to an empty result when the store is unreachable so the
  storefront stays browsable
"""

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

import structlog
from fastapi import Request
from redis.asyncio import Redis
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from partshop.commerce.cart import CartStore
from partshop.commerce.catalog import Catalog
from partshop.commerce.checkout import OrderSnapshotter
from partshop.commerce.exceptions import (
    CommerceError,
    InternalError,
    ResourceExhaustedError,
    is_transient_error,
    translate_database_error,
)
from partshop.commerce.order_admin import OrderMutator
from partshop.config.settings import CommerceSettings
from partshop.database.connection import Database
from partshop.serving.cache import CacheManager

logger = structlog.get_logger(__name__)

T = TypeVar("T")
Operation = Callable[[AsyncSession], Awaitable[T]]


class Commerce:
    """Services and transaction runner shared by all routes"""

    def __init__(
        self,
        database: Database,
        catalog: Catalog,
        cart: CartStore,
        checkout: OrderSnapshotter,
        admin: OrderMutator,
        retry_delay: float = 0.1,
        default_page_size: int = 20,
    ):
        self.database = database
        self.catalog = catalog
        self.cart = cart
        self.checkout = checkout
        self.admin = admin
        self.retry_delay = retry_delay
        self.default_page_size = default_page_size

    @classmethod
    def build(
        cls,
        database: Database,
        redis_client: Optional[Redis] = None,
        settings: Optional[CommerceSettings] = None,
    ) -> "Commerce":
        settings = settings or CommerceSettings()
        catalog = Catalog(CacheManager("products", redis_client, default_ttl=settings.product_cache_ttl))
        return cls(
            database=database,
            catalog=catalog,
            cart=CartStore(catalog),
            checkout=OrderSnapshotter(catalog, currency=settings.currency),
            admin=OrderMutator(enforce_transitions=settings.enforce_status_transitions),
            retry_delay=settings.transient_retry_delay_ms / 1000,
            default_page_size=settings.default_page_size,
        )

    async def run(self, operation: Operation[T], name: str = "operation") -> T:
        """
        Run ``operation`` in a fresh session/transaction.

        Domain errors propagate unchanged. A transient database failure is
        retried once; anything else is translated into the error taxonomy.
        """
        attempt = 1
        while True:
            try:
                async with self.database.session() as session:
                    return await operation(session)
            except CommerceError:
                raise
            except (SQLAlchemyError, OSError) as e:
                if attempt == 1 and is_transient_error(e):
                    logger.warning(
                        "Transient database error, retrying",
                        operation=name,
                        error=str(e),
                        delay_seconds=self.retry_delay,
                    )
                    attempt += 1
                    await asyncio.sleep(self.retry_delay)
                    continue

                error = translate_database_error(e)
                logger.error(
                    "Database operation failed",
                    operation=name,
                    error_code=error.code,
                    error=str(e),
                    attempts=attempt,
                )
                raise error from e

    async def read(self, operation: Operation[T], fallback: Callable[[], T], name: str = "read") -> T:
        """
        Like ``run`` but returns ``fallback()`` when the store is unavailable.
        """
        try:
            return await self.run(operation, name=name)
        except (ResourceExhaustedError, InternalError) as e:
            logger.warning("Read degraded to empty result", operation=name, error_code=e.code)
            return fallback()


def get_commerce(request: Request) -> Commerce:
    """FastAPI dependency returning the application's ``Commerce``"""
    commerce = getattr(request.app.state, "commerce", None)
    if commerce is None:
        raise RuntimeError("Commerce services not initialized")
    return commerce

"""
Database Connection Management

Async database connection pool with SQLAlchemy 2.0.
Implements connection pooling, health checks, and graceful shutdown.

The engine lives on a ``Database`` handle created at application startup and
passed to whoever needs a session, so nothing here is process-wide state.
"""

import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import structlog
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from partshop.config.settings import DatabaseSettings
from partshop.database.models import Base

logger = structlog.get_logger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """
    Lifecycle-scoped database handle.

    Example:
        database = Database("postgresql+asyncpg://...")
        await database.connect()
        async with database.session() as session:
            result = await session.execute(query)
        await database.dispose()
    """

    def __init__(
        self,
        url: str,
        echo: bool = False,
        pool_size: int = 10,
        max_overflow: int = 5,
        pool_timeout: int = 5,
    ):
        self.url = url
        self.echo = echo
        self.pool_size = pool_size
        self.max_overflow = max_overflow
        self.pool_timeout = pool_timeout
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    @classmethod
    def from_settings(cls, settings: DatabaseSettings) -> "Database":
        return cls(
            settings.async_url,
            echo=settings.echo,
            pool_size=settings.pool_size,
            max_overflow=settings.max_overflow,
            pool_timeout=settings.pool_timeout,
        )

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    @property
    def engine(self) -> AsyncEngine:
        """
        Get the database engine.

        Raises:
            RuntimeError: If the handle is not connected
        """
        if self._engine is None:
            raise RuntimeError("Database not initialized. Call connect() first.")
        return self._engine

    async def connect(self) -> AsyncEngine:
        """
        Create the engine and session factory, then verify connectivity.

        Returns:
            AsyncEngine: The initialized database engine
        """
        if self._engine is not None:
            logger.warning("Database already initialized")
            return self._engine

        engine_config = {
            "echo": self.echo,
            "pool_pre_ping": True,  # Verify connections before use
        }

        if self.is_sqlite:
            # In-memory SQLite lives inside a single connection
            if ":memory:" in self.url:
                engine_config["poolclass"] = StaticPool
        else:
            engine_config.update({
                "pool_size": self.pool_size,
                "max_overflow": self.max_overflow,
                "pool_timeout": self.pool_timeout,
            })

        engine = create_async_engine(self.url, **engine_config)

        if self.is_sqlite:
            event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

        self._session_factory = async_sessionmaker(
            bind=engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        self._engine = engine

        try:
            async with engine.begin() as conn:
                await conn.execute(text("SELECT 1"))
            logger.info(
                "Database connection established",
                url=engine.url.render_as_string(hide_password=True),
                pool_size=None if self.is_sqlite else self.pool_size,
            )
        except Exception as e:
            logger.error("Failed to connect to database", error=str(e))
            await self.dispose()
            raise

        return engine

    async def create_all(self) -> None:
        """Create all tables (development and tests; production uses migrations)"""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database schema created", tables=len(Base.metadata.tables))

    async def dispose(self) -> None:
        """
        Close the database connection pool.

        Gracefully closes all connections in the pool.
        """
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("Database connection pool closed")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Get a database session from the pool.

        One session is one transaction: it commits when the block exits
        normally and rolls back on any exception.

        Yields:
            AsyncSession: Database session

        Example:
            async with database.session() as session:
                result = await session.execute(query)
        """
        if self._session_factory is None:
            logger.error("Database not initialized when session() called")
            raise RuntimeError("Database not initialized. Call connect() first.")

        session = self._session_factory()
        try:
            yield session
            await session.commit()
        except Exception as e:
            logger.debug(
                "Database session error, rolling back",
                error=str(e),
                error_type=type(e).__name__,
            )
            await session.rollback()
            raise
        finally:
            await session.close()

    async def health(self) -> dict:
        """
        Check database health status.

        Returns:
            dict: Health status with latency information
        """
        try:
            start = time.perf_counter()
            async with self.session() as session:
                await session.execute(text("SELECT 1"))
            latency_ms = (time.perf_counter() - start) * 1000

            return {
                "status": "healthy",
                "latency_ms": round(latency_ms, 2),
                "pool_size": None if self.is_sqlite else self.pool_size,
            }
        except Exception as e:
            return {
                "status": "unhealthy",
                "error": str(e),
            }

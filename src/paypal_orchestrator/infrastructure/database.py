"""Database connection pool management."""

from contextlib import asynccontextmanager
from typing import AsyncIterator

import asyncpg
import structlog

logger = structlog.get_logger()


class Database:
    """Owns one asyncpg pool. Created and closed by the service container."""

    def __init__(
        self,
        dsn: str,
        min_size: int = 2,
        max_size: int = 10,
        application_name: str = "paypal-orchestrator",
    ) -> None:
        self.dsn = dsn
        self.min_size = min_size
        self.max_size = max_size
        self.application_name = application_name
        self._pool: asyncpg.Pool | None = None

    async def connect(self) -> asyncpg.Pool:
        """Create the connection pool if needed.

        Returns:
            asyncpg.Pool: Database connection pool
        """
        if self._pool is not None:
            return self._pool

        logger.info(
            "creating_database_pool",
            database_url=self.dsn.split("@")[-1],  # Hide credentials
            min_size=self.min_size,
            max_size=self.max_size,
        )
        pool = await asyncpg.create_pool(
            dsn=self.dsn,
            min_size=self.min_size,
            max_size=self.max_size,
            command_timeout=30.0,
            server_settings={"application_name": self.application_name},
        )
        if pool is None:
            raise RuntimeError("Failed to create database pool")

        self._pool = pool
        logger.info("database_pool_created")
        return pool

    @property
    def pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise RuntimeError("Database pool is not initialized")
        return self._pool

    async def close(self) -> None:
        """Close the connection pool."""
        if self._pool is not None:
            logger.info("closing_database_pool")
            await self._pool.close()
            self._pool = None
            logger.info("database_pool_closed")

    async def ping(self) -> None:
        """Raise if the database cannot answer a trivial query."""
        async with self.connection() as conn:
            await conn.fetchval("SELECT 1")

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[asyncpg.Connection]:
        """Get a database connection from the pool.

        Example:
            async with database.connection() as conn:
                row = await conn.fetchrow("SELECT 1")
        """
        async with self.pool.acquire() as conn:
            yield conn

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[asyncpg.Connection]:
        """Get a connection with an open transaction."""
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                yield conn

# app/db/pool.py
"""
PostgreSQL connection pool.

One AsyncConnectionPool per process, opened by the FastAPI lifespan or
the worker CLI. Every pooled connection returns dict rows, runs in
autocommit and uses UTC, so repositories can issue single statements
without managing transactions.
"""

import asyncio
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import psycopg
from psycopg import sql
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from app.config import settings
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

POOL_CLOSE_TIMEOUT = 30.0  # seconds
STATEMENT_TIMEOUT = "30s"


class DatabasePoolManager:
    """Lifecycle wrapper around the process-wide psycopg pool."""

    def __init__(self):
        self.pool: AsyncConnectionPool | None = None

    async def initialize(self) -> None:
        """Open the pool and verify one round trip. Idempotent."""
        if self.pool is not None:
            return

        config = settings.get_db_pool_config()
        pool = AsyncConnectionPool(
            conninfo=settings.DATABASE_URL,
            open=False,
            check=AsyncConnectionPool.check_connection,
            configure=self._configure_connection,
            **config,
        )

        try:
            await pool.open(wait=True)
            async with pool.connection() as conn:
                await conn.execute("SELECT 1")
        except Exception as e:
            logger.error("Database pool failed to open", error=str(e))
            await pool.close()
            raise RuntimeError(f"Database pool initialization failed: {e}") from e

        self.pool = pool
        logger.info(
            "Database pool ready",
            min_size=config["min_size"],
            max_size=config["max_size"],
        )

    @staticmethod
    async def _configure_connection(conn: psycopg.AsyncConnection) -> None:
        conn.row_factory = dict_row
        await conn.set_autocommit(True)
        await conn.execute(
            sql.SQL("SET application_name = {}").format(
                sql.Literal(f"inbox-autopilot-{settings.environment}")
            )
        )
        await conn.execute("SET timezone = 'UTC'")
        await conn.execute(
            sql.SQL("SET statement_timeout = {}").format(sql.Literal(STATEMENT_TIMEOUT))
        )

    async def close(self) -> None:
        if self.pool is None:
            return

        pool, self.pool = self.pool, None
        try:
            await asyncio.wait_for(pool.close(), timeout=POOL_CLOSE_TIMEOUT)
            logger.info("Database pool closed")
        except TimeoutError:
            logger.warning("Database pool close timed out", timeout=POOL_CLOSE_TIMEOUT)

    @asynccontextmanager
    async def connection(self) -> AsyncGenerator[psycopg.AsyncConnection, None]:
        """Borrow a pooled connection; raises RuntimeError before initialize()."""
        if self.pool is None:
            raise RuntimeError("Database pool not initialized. Call initialize() first.")

        async with self.pool.connection() as conn:
            yield conn

    async def health_check(self) -> dict[str, Any]:
        """Timed round trip plus pool occupancy, for /readyz."""
        if self.pool is None:
            return {"healthy": False, "error": "Pool not initialized"}

        started = time.time()
        try:
            async with self.connection() as conn:
                await conn.execute("SELECT 1")
        except psycopg.Error as e:
            logger.error("Database health check failed", error=str(e))
            return {"healthy": False, "error": f"{type(e).__name__}: {e}"}

        stats = self.pool.get_stats()
        return {
            "healthy": True,
            "connection_time_ms": round((time.time() - started) * 1000, 2),
            "pool_size": stats.get("pool_size", 0),
            "pool_available": stats.get("pool_available", 0),
            "requests_waiting": stats.get("requests_waiting", 0),
        }


# Global pool instance
db_pool = DatabasePoolManager()


async def get_db_connection():
    """Get database connection from pool."""
    return db_pool.connection()


async def db_health_check() -> dict[str, Any]:
    return await db_pool.health_check()

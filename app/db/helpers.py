# app/db/helpers.py
"""
Query helpers for the repository layer.

Each helper borrows a pooled connection unless one is passed in, runs a
single statement and maps driver errors to DatabaseError.
"""

import asyncio
import functools
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import psycopg

from app.db.pool import get_db_connection
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class DatabaseError(Exception):
    """Query failure; recoverable is False once retries are exhausted."""

    def __init__(self, message: str, operation: str = "unknown", recoverable: bool = True):
        super().__init__(message)
        self.operation = operation
        self.recoverable = recoverable


@asynccontextmanager
async def _borrow(
    connection: psycopg.AsyncConnection | None, operation: str, query: str
) -> AsyncGenerator[psycopg.AsyncConnection, None]:
    try:
        if connection is not None:
            yield connection
        else:
            async with await get_db_connection() as conn:
                yield conn
    except psycopg.Error as e:
        logger.error("Database query failed", operation=operation, query=query[:100], error=str(e))
        raise DatabaseError(f"Query failed: {e}", operation=operation) from e


async def fetch_one(
    query: str, params: tuple = (), *, connection: psycopg.AsyncConnection | None = None
) -> dict[str, Any] | None:
    """Return the first row as a dict, or None."""
    async with _borrow(connection, "fetch_one", query) as conn:
        async with conn.cursor() as cur:
            await cur.execute(query, params)
            return await cur.fetchone() or None


async def fetch_all(
    query: str, params: tuple = (), *, connection: psycopg.AsyncConnection | None = None
) -> list[dict[str, Any]]:
    async with _borrow(connection, "fetch_all", query) as conn:
        async with conn.cursor() as cur:
            await cur.execute(query, params)
            return await cur.fetchall()


async def fetch_val(
    query: str, params: tuple = (), *, connection: psycopg.AsyncConnection | None = None
) -> Any:
    """Return the first column of the first row, or None."""
    row = await fetch_one(query, params, connection=connection)
    return next(iter(row.values())) if row else None


async def execute_query(
    query: str, params: tuple = (), *, connection: psycopg.AsyncConnection | None = None
) -> int:
    """Run a write statement and return the affected row count."""
    async with _borrow(connection, "execute", query) as conn:
        cursor = await conn.execute(query, params)
        return cursor.rowcount


def _is_transient(error: Exception) -> bool:
    return isinstance(error, psycopg.OperationalError) or isinstance(
        error.__cause__, psycopg.OperationalError
    )


def with_db_retry(max_retries: int = 3, base_delay: float = 0.1):
    """
    Retry a repository call on connection-level failures.

    Only psycopg.OperationalError, raw or wrapped in DatabaseError, is
    retried with exponential backoff. Anything else propagates at once.
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            attempt = 0
            while True:
                try:
                    return await func(*args, **kwargs)
                except (psycopg.OperationalError, DatabaseError) as e:
                    if not _is_transient(e):
                        raise

                    if attempt >= max_retries:
                        logger.error(
                            "Database operation failed after retries",
                            operation=func.__name__,
                            attempts=attempt + 1,
                            error=str(e),
                        )
                        raise DatabaseError(
                            f"Operation failed after {max_retries} retries: {e}",
                            operation=func.__name__,
                            recoverable=False,
                        ) from e

                    delay = base_delay * (2**attempt)
                    attempt += 1
                    logger.warning(
                        "Database operation failed, retrying",
                        operation=func.__name__,
                        attempt=attempt,
                        delay=delay,
                        error=str(e),
                    )
                    await asyncio.sleep(delay)

        return wrapper

    return decorator

# eventcore/db/helpers.py
"""
Database helper functions for common patterns.
Reduces boilerplate in the repository layer.
"""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from functools import wraps
from typing import Any

import psycopg
from psycopg import errors as pg_errors

from eventcore.db.pool import db_pool
from eventcore.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class DatabaseError(Exception):
    """Custom exception for database operations."""

    def __init__(self, message: str, operation: str = "unknown", recoverable: bool = True):
        super().__init__(message)
        self.operation = operation
        self.recoverable = recoverable


class PermissionDeniedError(DatabaseError):
    """The connected role is not authorized for the statement (SQLSTATE 42501)."""

    def __init__(self, message: str, operation: str = "unknown"):
        super().__init__(message, operation=operation, recoverable=False)


def _wrap_error(e: psycopg.Error, operation: str, query: str) -> DatabaseError:
    if isinstance(e, pg_errors.InsufficientPrivilege):
        logger.warning("Database permission denied", operation=operation, query=query[:100])
        return PermissionDeniedError(f"Permission denied: {e}", operation=operation)
    logger.error(f"Database {operation} error", query=query[:100], error=str(e))
    return DatabaseError(f"Query failed: {e}", operation=operation)


@asynccontextmanager
async def _borrow(
    connection: psycopg.AsyncConnection | None,
) -> AsyncGenerator[psycopg.AsyncConnection, None]:
    if connection is not None:
        yield connection
        return
    async with db_pool.connection() as conn:
        yield conn


async def fetch_one(
    query: str, params: tuple = (), *, connection: psycopg.AsyncConnection | None = None
) -> dict[str, Any] | None:
    """
    Execute query and return single row as dict.

    Args:
        query: SQL query with %s placeholders
        params: Query parameters
        connection: Optional existing connection

    Returns:
        Dict with row data or None if no results
    """
    try:
        async with _borrow(connection) as conn:
            cursor = await conn.execute(query, params)
            return await cursor.fetchone()

    except psycopg.Error as e:
        raise _wrap_error(e, "fetch_one", query) from e


async def fetch_all(
    query: str, params: tuple = (), *, connection: psycopg.AsyncConnection | None = None
) -> list[dict[str, Any]]:
    """
    Execute query and return all rows as list of dicts.
    """
    try:
        async with _borrow(connection) as conn:
            cursor = await conn.execute(query, params)
            return await cursor.fetchall()

    except psycopg.Error as e:
        raise _wrap_error(e, "fetch_all", query) from e


async def fetch_val(
    query: str, params: tuple = (), *, connection: psycopg.AsyncConnection | None = None
) -> Any:
    """Execute query and return the first column of the first row."""
    row = await fetch_one(query, params, connection=connection)
    return list(row.values())[0] if row else None


async def execute_query(
    query: str, params: tuple = (), *, connection: psycopg.AsyncConnection | None = None
) -> int:
    """
    Execute query and return number of affected rows.
    """
    try:
        async with _borrow(connection) as conn:
            cursor = await conn.execute(query, params)
            return cursor.rowcount

    except psycopg.Error as e:
        raise _wrap_error(e, "execute", query) from e


def with_db_retry(max_retries: int = 3, base_delay: float = 0.1):
    """
    Decorator to retry database operations on temporary failures.

    Only psycopg.OperationalError is retried; permission, integrity and data
    errors surface immediately.

    Args:
        max_retries: Maximum number of retry attempts
        base_delay: Base delay between retries (exponential backoff)
    """

    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            for attempt in range(max_retries + 1):
                try:
                    return await func(*args, **kwargs)

                except DatabaseError as e:
                    cause = e.__cause__
                    transient = isinstance(cause, psycopg.OperationalError) and not isinstance(
                        e, PermissionDeniedError
                    )
                    if not transient:
                        raise
                    if attempt >= max_retries:
                        logger.error(
                            "Database operation failed after all retries",
                            operation=func.__name__,
                            attempts=max_retries + 1,
                            error=str(e),
                        )
                        raise DatabaseError(
                            f"Operation failed after {max_retries} retries: {e}",
                            operation=func.__name__,
                            recoverable=False,
                        ) from e

                    delay = base_delay * (2**attempt)
                    logger.warning(
                        "Database operation failed, retrying",
                        operation=func.__name__,
                        attempt=attempt + 1,
                        max_retries=max_retries,
                        delay=delay,
                        error=str(e),
                    )
                    await asyncio.sleep(delay)

        return wrapper

    return decorator

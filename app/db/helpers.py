# app/db/helpers.py
"""
Database helper functions for common patterns.
Reduces boilerplate in the repository layer.
"""

from collections.abc import Sequence
from typing import Any

import psycopg

from app.db.pool import DatabasePoolManager
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class DatabaseError(Exception):
    """Custom exception for database operations."""

    def __init__(self, message: str, operation: str = "unknown", recoverable: bool = True):
        super().__init__(message)
        self.operation = operation
        self.recoverable = recoverable


async def fetch_one(
    pool: DatabasePoolManager, query: str, params: tuple = ()
) -> dict[str, Any] | None:
    """
    Execute query and return single row as dict.

    Args:
        pool: Pool to borrow the connection from
        query: SQL query with %s placeholders
        params: Query parameters

    Returns:
        Dict with row data or None if no results
    """
    try:
        async with pool.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(query, params)
                row = await cur.fetchone()
                return row if row else None

    except psycopg.Error as e:
        logger.error("Database fetch_one error", query=query[:100], error=str(e))
        raise DatabaseError(f"Query failed: {e}", operation="fetch_one") from e


async def fetch_all(
    pool: DatabasePoolManager, query: str, params: tuple = ()
) -> list[dict[str, Any]]:
    """
    Execute query and return all rows as list of dicts.

    Args:
        pool: Pool to borrow the connection from
        query: SQL query with %s placeholders
        params: Query parameters

    Returns:
        List of dicts with row data
    """
    try:
        async with pool.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(query, params)
                return await cur.fetchall()

    except psycopg.Error as e:
        logger.error("Database fetch_all error", query=query[:100], error=str(e))
        raise DatabaseError(f"Query failed: {e}", operation="fetch_all") from e


async def fetch_val(pool: DatabasePoolManager, query: str, params: tuple = ()) -> Any:
    """Execute query and return the first column of the first row."""
    try:
        async with pool.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(query, params)
                row = await cur.fetchone()
                return list(row.values())[0] if row else None

    except psycopg.Error as e:
        logger.error("Database fetch_val error", query=query[:100], error=str(e))
        raise DatabaseError(f"Query failed: {e}", operation="fetch_val") from e


async def execute_query(pool: DatabasePoolManager, query: str, params: tuple = ()) -> int:
    """
    Execute query and return number of affected rows.

    Args:
        pool: Pool to borrow the connection from
        query: SQL query with %s placeholders
        params: Query parameters

    Returns:
        Number of affected rows
    """
    try:
        async with pool.connection() as conn:
            cursor = await conn.execute(query, params)
            return cursor.rowcount

    except psycopg.Error as e:
        logger.error("Database execute error", query=query[:100], error=str(e))
        raise DatabaseError(f"Query failed: {e}", operation="execute") from e


async def execute_many(
    pool: DatabasePoolManager, query: str, params_seq: Sequence[tuple]
) -> int:
    """
    Execute the same statement for every parameter tuple in one transaction.

    Each row is applied independently by the statement itself (e.g.
    ``ON CONFLICT DO NOTHING``); the transaction only groups the round trips.

    Returns:
        Total number of affected rows
    """
    if not params_seq:
        return 0

    try:
        affected = 0
        async with pool.transaction() as conn:
            async with conn.cursor() as cur:
                for params in params_seq:
                    await cur.execute(query, params)
                    affected += max(cur.rowcount, 0)

        logger.debug("Batch statement completed", row_count=len(params_seq), affected=affected)
        return affected

    except psycopg.Error as e:
        logger.error("Batch statement failed", row_count=len(params_seq), error=str(e))
        raise DatabaseError(f"Batch failed: {e}", operation="execute_many") from e

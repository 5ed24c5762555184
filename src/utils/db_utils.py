"""Database utilities for the asyncpg connection pool.

Provides:
- Pool factory applying the configured timeouts
- Transaction context manager
- Health check and graceful shutdown helpers
"""

from __future__ import annotations

import asyncio

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import asyncpg

from utils.logger import logger


class DatabaseError(Exception):
    """Base exception for database operations."""


class ConnectionPoolExhausted(DatabaseError):
    """Raised when the pool cannot be created or a connection cannot be acquired in time."""


async def create_database_pool(
    dsn: str,
    *,
    min_size: int = 5,
    max_size: int = 10,
    command_timeout: float = 30.0,
    connection_timeout: float = 10.0,
    max_inactive_connection_lifetime: float = 600.0,
) -> asyncpg.Pool:
    """Create the application connection pool.

    Args:
        dsn: PostgreSQL connection string
        min_size: Connections kept open while idle
        max_size: Upper bound on pooled connections
        command_timeout: Default query timeout in seconds
        connection_timeout: Timeout for establishing the initial connections
        max_inactive_connection_lifetime: Close idle connections after this many seconds

    Raises:
        ConnectionPoolExhausted: If the initial connections cannot be established
    """

    async def init_connection(conn: asyncpg.Connection) -> None:
        await conn.execute(f"SET statement_timeout = '{int(command_timeout * 1000)}'")

    try:
        pool = await asyncio.wait_for(
            asyncpg.create_pool(
                dsn=dsn,
                min_size=min_size,
                max_size=max_size,
                command_timeout=command_timeout,
                max_inactive_connection_lifetime=max_inactive_connection_lifetime,
                init=init_connection,
            ),
            timeout=connection_timeout,
        )
    except asyncio.TimeoutError as e:
        raise ConnectionPoolExhausted(f"Connection pool creation timed out after {connection_timeout}s") from e
    except Exception as e:
        raise ConnectionPoolExhausted(f"Failed to create connection pool: {e}") from e

    if pool is None:
        raise ConnectionPoolExhausted("Failed to create connection pool")
    return pool


@asynccontextmanager
async def transaction(
    pool: asyncpg.Pool,
    *,
    timeout: float | None = None,
) -> AsyncGenerator[asyncpg.Connection, None]:
    """Run the enclosed statements in a single transaction.

    Example:
        async with transaction(pool) as conn:
            await conn.execute("DELETE FROM messages WHERE conversation_id = $1", cid)
            await conn.execute("DELETE FROM conversations WHERE id = $1", cid)
    """
    try:
        async with pool.acquire(timeout=timeout) as conn, conn.transaction():
            yield conn
    except asyncio.TimeoutError as e:
        raise ConnectionPoolExhausted(
            f"Could not acquire database connection within {timeout}s - pool may be exhausted"
        ) from e


async def check_pool_health(pool: asyncpg.Pool) -> dict[str, Any]:
    """Run a trivial query and report pool statistics."""
    try:
        async with pool.acquire(timeout=5.0) as conn:
            result = await conn.fetchval("SELECT 1")
            is_healthy = result == 1
    except Exception as e:
        logger.warning(f"Database health check failed: {e}")
        is_healthy = False

    return {
        "healthy": is_healthy,
        "pool_size": pool.get_size(),
        "pool_min_size": pool.get_min_size(),
        "pool_max_size": pool.get_max_size(),
        "free_connections": pool.get_idle_size(),
        "used_connections": pool.get_size() - pool.get_idle_size(),
    }


async def graceful_pool_close(pool: asyncpg.Pool, timeout: float = 10.0) -> None:
    """Wait for checked-out connections to return, then close the pool."""
    loop = asyncio.get_running_loop()
    start = loop.time()
    while pool.get_size() > pool.get_idle_size():
        if loop.time() - start > timeout:
            logger.warning(
                f"Timeout waiting for connections to drain, "
                f"forcing close ({pool.get_size() - pool.get_idle_size()} active)"
            )
            break
        await asyncio.sleep(0.1)

    await pool.close()
    logger.info("Database pool closed")

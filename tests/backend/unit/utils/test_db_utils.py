import asyncio

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from utils.db_utils import (
    ConnectionPoolExhausted,
    check_pool_health,
    create_database_pool,
    graceful_pool_close,
    transaction,
)


# ============================================================================
# create_database_pool
# ============================================================================


@pytest.mark.asyncio
async def test_create_database_pool_passes_settings() -> None:
    pool = MagicMock()
    with patch("utils.db_utils.asyncpg.create_pool", new=AsyncMock(return_value=pool)) as create_pool:
        result = await create_database_pool("postgresql://u:p@h/d", min_size=2, max_size=4, command_timeout=5.0)

    assert result is pool
    kwargs = create_pool.await_args.kwargs
    assert kwargs["dsn"] == "postgresql://u:p@h/d"
    assert kwargs["min_size"] == 2
    assert kwargs["max_size"] == 4
    assert kwargs["command_timeout"] == 5.0
    assert callable(kwargs["init"])


@pytest.mark.asyncio
async def test_create_database_pool_init_sets_statement_timeout() -> None:
    with patch("utils.db_utils.asyncpg.create_pool", new=AsyncMock(return_value=MagicMock())) as create_pool:
        await create_database_pool("postgresql://u:p@h/d", command_timeout=2.5)

    conn = AsyncMock()
    await create_pool.await_args.kwargs["init"](conn)

    conn.execute.assert_awaited_once_with("SET statement_timeout = '2500'")


@pytest.mark.asyncio
async def test_create_database_pool_wraps_connection_errors() -> None:
    with (
        patch("utils.db_utils.asyncpg.create_pool", new=AsyncMock(side_effect=OSError("refused"))),
        pytest.raises(ConnectionPoolExhausted, match="refused"),
    ):
        await create_database_pool("postgresql://u:p@h/d")


@pytest.mark.asyncio
async def test_create_database_pool_timeout() -> None:
    async def never_ready(**kwargs: object) -> None:
        await asyncio.sleep(10)

    with (
        patch("utils.db_utils.asyncpg.create_pool", new=never_ready),
        pytest.raises(ConnectionPoolExhausted, match="timed out"),
    ):
        await create_database_pool("postgresql://u:p@h/d", connection_timeout=0.01)


# ============================================================================
# transaction
# ============================================================================


@pytest.mark.asyncio
async def test_transaction_yields_connection(mock_db_pool: MagicMock, mock_conn: AsyncMock) -> None:
    async with transaction(mock_db_pool, timeout=3.0) as conn:
        assert conn is mock_conn

    mock_db_pool.acquire.assert_called_once_with(timeout=3.0)
    mock_conn.transaction.assert_called_once()


@pytest.mark.asyncio
async def test_transaction_acquire_timeout(mock_db_pool: MagicMock) -> None:
    mock_db_pool.acquire.return_value.__aenter__.side_effect = asyncio.TimeoutError()

    with pytest.raises(ConnectionPoolExhausted, match="pool may be exhausted"):
        async with transaction(mock_db_pool, timeout=1.0):
            pass


# ============================================================================
# Health and shutdown
# ============================================================================


@pytest.mark.asyncio
async def test_check_pool_health(mock_db_pool: MagicMock, mock_conn: AsyncMock) -> None:
    mock_conn.fetchval.return_value = 1

    health = await check_pool_health(mock_db_pool)

    assert health == {
        "healthy": True,
        "pool_size": 5,
        "pool_min_size": 5,
        "pool_max_size": 10,
        "free_connections": 4,
        "used_connections": 1,
    }


@pytest.mark.asyncio
async def test_check_pool_health_query_failure(mock_db_pool: MagicMock, mock_conn: AsyncMock) -> None:
    mock_conn.fetchval.side_effect = OSError("gone")

    health = await check_pool_health(mock_db_pool)

    assert health["healthy"] is False
    assert health["pool_size"] == 5


@pytest.mark.asyncio
async def test_graceful_pool_close_when_idle() -> None:
    pool = MagicMock()
    pool.get_size.return_value = 3
    pool.get_idle_size.return_value = 3
    pool.close = AsyncMock()

    await graceful_pool_close(pool)

    pool.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_graceful_pool_close_forces_after_timeout() -> None:
    pool = MagicMock()
    pool.get_size.return_value = 3
    pool.get_idle_size.return_value = 1
    pool.close = AsyncMock()

    await graceful_pool_close(pool, timeout=0.05)

    pool.close.assert_awaited_once()

"""Alembic environment.

The URL comes from ``sqlalchemy.url`` (set by ``core.database.build_alembic_config``)
or, when alembic is run from the command line, from the application settings.
Migrations run over the asyncpg driver the application already uses.
"""

from __future__ import annotations

import asyncio

from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config

config = context.config

if config.config_file_name is not None and config.attributes.get("configure_logger", True):
    fileConfig(config.config_file_name, disable_existing_loggers=False)

# Raw SQL migrations; no declarative metadata
target_metadata = None


def _database_url() -> str:
    url = config.get_main_option("sqlalchemy.url")
    if url:
        return url

    from core.constants import get_settings
    from core.database import resolve_database_url, to_sqlalchemy_url

    return to_sqlalchemy_url(resolve_database_url(get_settings()))


def run_migrations_offline() -> None:
    """Emit SQL to stdout instead of executing it."""
    context.configure(
        url=_database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    context.configure(connection=connection, target_metadata=target_metadata)
    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    section = config.get_section(config.config_ini_section, {})
    section["sqlalchemy.url"] = _database_url()
    connectable = async_engine_from_config(section, prefix="sqlalchemy.", poolclass=pool.NullPool)

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


def run_migrations_online() -> None:
    asyncio.run(run_async_migrations())


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()

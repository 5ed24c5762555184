"""
Database environment resolution and schema migrations.

Maps the active APP_ENV profile to a PostgreSQL DSN and runs alembic
migrations before the connection pool is opened.
"""

from __future__ import annotations

import asyncio

from enum import Enum
from urllib.parse import quote

from alembic import command
from alembic.config import Config

from core.constants import ALEMBIC_INI_PATH, PROJECT_ROOT, Settings
from utils.logger import logger


class DatabaseEnvironment(str, Enum):
    """Database environments derived from the active profile."""

    TEST = "test"
    DEV = "dev"
    STAGING = "staging"
    PROD = "prod"


def get_active_environment(settings: Settings) -> DatabaseEnvironment:
    """Resolve the database environment, defaulting to PROD for unknown profiles."""
    try:
        return DatabaseEnvironment(settings.app_env)
    except ValueError:
        return DatabaseEnvironment.PROD


def resolve_database_name(settings: Settings) -> str:
    """Test runs get their own database so they never touch development data."""
    if get_active_environment(settings) is DatabaseEnvironment.TEST:
        return f"{settings.postgres_database}_test"
    return settings.postgres_database


def resolve_database_url(settings: Settings) -> str:
    """Build the PostgreSQL DSN for the active environment.

    An explicit ``database_url`` always wins over the individual
    ``postgres_*`` fields.
    """
    if settings.database_url:
        return settings.database_url

    user = quote(settings.postgres_user, safe="")
    password = quote(settings.postgres_password, safe="")
    database = resolve_database_name(settings)
    return f"postgresql://{user}:{password}@{settings.postgres_host}:{settings.postgres_port}/{database}"


def mask_database_url(url: str) -> str:
    """Hide the password part of a DSN for logging."""
    scheme, sep, rest = url.partition("://")
    if not sep or "@" not in rest:
        return url
    credentials, _, location = rest.rpartition("@")
    user = credentials.split(":", 1)[0]
    return f"{scheme}://{user}:***@{location}"


def build_alembic_config(database_url: str) -> Config:
    """Alembic config pointing at the project's migrations directory."""
    config = Config(str(ALEMBIC_INI_PATH))
    config.set_main_option("script_location", str(PROJECT_ROOT / "migrations"))
    # configparser interpolation treats "%" as a directive
    config.set_main_option("sqlalchemy.url", to_sqlalchemy_url(database_url).replace("%", "%%"))
    # Keep the application's logging configuration intact
    config.attributes["configure_logger"] = False
    return config


def to_sqlalchemy_url(database_url: str) -> str:
    """Point SQLAlchemy at the asyncpg driver the application already uses."""
    for prefix in ("postgresql://", "postgres://"):
        if database_url.startswith(prefix):
            return "postgresql+asyncpg://" + database_url[len(prefix) :]
    return database_url


def run_migrations(settings: Settings) -> None:
    """Upgrade the schema to the latest revision."""
    environment = get_active_environment(settings)
    database_url = resolve_database_url(settings)
    logger.info(
        f"Running migrations for {environment.value} with URL: {mask_database_url(database_url)}",
    )
    command.upgrade(build_alembic_config(database_url), "head")


async def run_migrations_async(settings: Settings) -> None:
    """Run migrations without blocking the event loop."""
    await asyncio.to_thread(run_migrations, settings)

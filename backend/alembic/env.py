"""Alembic migrations for the analysis log store.

The database URL comes from the same discovery the application uses
(credentials file, then DATABASE_URL). Migrations refuse to run in local mode.
"""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine

from config import get_settings
from db.connection import resolve_database_url
from models.database import Base

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _database_url() -> str:
    url = resolve_database_url(get_settings())
    if not url:
        raise RuntimeError(
            "No database configured: set DATABASE_URL or provide the credentials file "
            "before running migrations"
        )
    return url


def _configure(**options) -> None:
    context.configure(target_metadata=target_metadata, compare_type=True, **options)


def migrate_offline(url: str) -> None:
    """Emit the migration SQL for ``url`` without connecting."""
    _configure(url=url, literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()


def _migrate(connection: Connection) -> None:
    _configure(connection=connection)
    with context.begin_transaction():
        context.run_migrations()


async def migrate_online(url: str) -> None:
    engine = create_async_engine(url, poolclass=pool.NullPool)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_migrate)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    migrate_offline(_database_url())
else:
    asyncio.run(migrate_online(_database_url()))

import asyncio
import os
from logging.config import fileConfig

from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine
from sqlmodel import SQLModel

from alembic import context
from src.kithgrid.core.config import get_settings
from src.kithgrid.models import Identity, InvitationCode, Membership, Tenant  # noqa: F401

config = context.config

if config.config_file_name is not None and os.path.exists(config.config_file_name):
    fileConfig(config.config_file_name, disable_existing_loggers=False)

target_metadata = SQLModel.metadata


def migration_url() -> str:
    """The runner may pin sqlalchemy.url; otherwise migrate the configured database."""
    return config.get_main_option("sqlalchemy.url") or get_settings().database_url


def _configure(**options) -> None:  # type: ignore[no-untyped-def]
    context.configure(target_metadata=target_metadata, **options)
    with context.begin_transaction():
        context.run_migrations()


def _migrate(connection: Connection) -> None:
    # ALTER TABLE on SQLite only works through batch operations
    _configure(
        connection=connection,
        compare_type=True,
        render_as_batch=connection.dialect.name == "sqlite",
    )


async def migrate_online() -> None:
    engine = create_async_engine(migration_url(), poolclass=pool.NullPool)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_migrate)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    _configure(url=migration_url(), literal_binds=True, dialect_opts={"paramstyle": "named"})
else:
    asyncio.run(migrate_online())

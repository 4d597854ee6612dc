"""Reusable migration runner for both production and tests."""

import asyncio
from concurrent.futures import ThreadPoolExecutor

from alembic.config import Config

from alembic import command


def run_migrations_sync(database_url: str | None = None, revision: str = "head") -> None:
    """Run Alembic migrations synchronously.

    Args:
        database_url: Overrides settings.database_url when given.
        revision: Target revision.
    """
    alembic_cfg = Config("alembic.ini")
    if database_url:
        alembic_cfg.set_main_option("sqlalchemy.url", database_url)
    command.upgrade(alembic_cfg, revision)


async def run_migrations_async(database_url: str | None = None) -> None:
    """Run Alembic migrations from async context.

    The env script starts its own event loop, so it runs in a worker thread.
    """
    loop = asyncio.get_running_loop()
    with ThreadPoolExecutor() as pool:
        await loop.run_in_executor(pool, run_migrations_sync, database_url)

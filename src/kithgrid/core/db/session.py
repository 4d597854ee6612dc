"""Session factory bound to the process-wide engine."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from src.kithgrid.core.db.engine import get_engine


def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Objects stay readable after commit; flushes happen explicitly in repositories
    return async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)


@asynccontextmanager
async def get_session(engine: AsyncEngine | None = None) -> AsyncGenerator[AsyncSession]:
    """Yield a session that the caller commits or rolls back.

    Pass ``engine`` to bind somewhere other than the configured database.
    """
    make_session = session_factory(engine or get_engine())
    async with make_session() as session:
        yield session

"""Request-scoped database session."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.kithgrid.core.db import get_session


async def get_db_session() -> AsyncGenerator[AsyncSession]:
    """Share one session between every repository and service of a request.

    Services commit their own work. Anything still pending when the handler
    raises is rolled back before the connection goes back to the pool.
    """
    async with get_session() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


DBSession = Annotated[AsyncSession, Depends(get_db_session)]

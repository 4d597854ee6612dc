"""Shared repository plumbing for the identity tables."""

from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel, select


class BaseRepository[ModelType: SQLModel]:
    """Keyed lookups and staging for one table.

    Repositories never commit. Services own the transaction, including the
    savepoints that turn unique-constraint violations into domain errors.
    """

    model: type[ModelType]

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, id: UUID) -> ModelType | None:
        result = await self.session.execute(
            select(self.model).where(self.model.id == id)  # type: ignore[attr-defined]
        )
        return result.scalar_one_or_none()

    def add(self, entity: ModelType) -> None:
        """Stage ``entity`` in the session; the caller flushes."""
        self.session.add(entity)

    async def delete(self, entity: ModelType) -> None:
        """Hard delete, flushed so constraint errors surface at the call site."""
        await self.session.delete(entity)
        await self.session.flush()

    async def _page(self, query: Any, limit: int, offset: int) -> list[ModelType]:
        """Run an already-ordered query with limit/offset paging."""
        result = await self.session.execute(query.limit(limit).offset(offset))
        return list(result.scalars().all())

"""Repository for Identity entity."""

from sqlmodel import select

from src.kithgrid.core.security.validators import normalize_email
from src.kithgrid.models import Identity
from src.kithgrid.repositories.base import BaseRepository


class IdentityRepository(BaseRepository[Identity]):
    """Credential store lookups. Emails are matched case-insensitively."""

    model = Identity

    async def get_by_email(self, email: str) -> Identity | None:
        result = await self.session.execute(
            select(Identity).where(Identity.email == normalize_email(email))
        )
        return result.scalar_one_or_none()

    async def exists_by_email(self, email: str) -> bool:
        return await self.get_by_email(email) is not None

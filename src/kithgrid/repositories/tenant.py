"""Repository for Tenant entity (the tenant directory)."""

from uuid import UUID

from sqlmodel import col, select

from src.kithgrid.models import Tenant
from src.kithgrid.repositories.base import BaseRepository


class TenantRepository(BaseRepository[Tenant]):
    """Read access to the tenant directory."""

    model = Tenant

    async def get_by_slug(self, slug: str) -> Tenant | None:
        result = await self.session.execute(select(Tenant).where(Tenant.slug == slug))
        return result.scalar_one_or_none()

    async def get_active(self, tenant_id: UUID) -> Tenant | None:
        """Get a tenant only if it exists and is active."""
        result = await self.session.execute(
            select(Tenant).where(
                Tenant.id == tenant_id,
                Tenant.is_active == True,  # noqa: E712
            )
        )
        return result.scalar_one_or_none()

    async def get_first_active(self) -> Tenant | None:
        """First active tenant by creation order (created_at, then id)."""
        result = await self.session.execute(
            select(Tenant)
            .where(Tenant.is_active == True)  # noqa: E712
            .order_by(col(Tenant.created_at).asc(), col(Tenant.id).asc())
            .limit(1)
        )
        return result.scalar_one_or_none()

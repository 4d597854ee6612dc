"""Repository for Membership entity (the membership ledger)."""

from uuid import UUID

from sqlmodel import col, select

from src.kithgrid.models import Identity, Membership
from src.kithgrid.repositories.base import BaseRepository


class MembershipRepository(BaseRepository[Membership]):
    """Data access for identity/tenant memberships."""

    model = Membership

    async def get_for_pair(self, identity_id: UUID, tenant_id: UUID) -> Membership | None:
        result = await self.session.execute(
            select(Membership).where(
                Membership.identity_id == identity_id,
                Membership.tenant_id == tenant_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_for_identity(self, identity_id: UUID) -> list[Membership]:
        """All memberships of an identity, oldest first.

        Ids are time-ordered, so the id tiebreak keeps insertion order stable
        for rows sharing a joined_at timestamp.
        """
        result = await self.session.execute(
            select(Membership)
            .where(Membership.identity_id == identity_id)
            .order_by(col(Membership.joined_at).asc(), col(Membership.id).asc())
        )
        return list(result.scalars().all())

    async def list_for_tenant(
        self, tenant_id: UUID, limit: int = 100, offset: int = 0
    ) -> list[tuple[Membership, Identity]]:
        """Tenant roster joined with each member's identity."""
        result = await self.session.execute(
            select(Membership, Identity)
            .join(Identity, col(Identity.id) == col(Membership.identity_id))
            .where(Membership.tenant_id == tenant_id)
            .order_by(col(Membership.joined_at).asc(), col(Membership.id).asc())
            .limit(limit)
            .offset(offset)
        )
        return [(membership, identity) for membership, identity in result.all()]

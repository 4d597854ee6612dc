"""Repository for InvitationCode entity (the invitation registry)."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import or_, update
from sqlmodel import col, select

from src.kithgrid.models import InvitationCode, InvitationStatus
from src.kithgrid.models.base import utc_now
from src.kithgrid.repositories.base import BaseRepository


class InvitationRepository(BaseRepository[InvitationCode]):
    """Data access for invitation codes. Callers pass codes already normalised."""

    model = InvitationCode

    async def get_by_code(self, code: str, fresh: bool = False) -> InvitationCode | None:
        """Look up a code. ``fresh`` overwrites any cached copy with the stored row."""
        query = select(InvitationCode).where(InvitationCode.code == code)
        if fresh:
            query = query.execution_options(populate_existing=True)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def list_by_tenant(
        self, tenant_id: UUID, status: str | None = None, limit: int = 100, offset: int = 0
    ) -> list[InvitationCode]:
        """Invitations of a tenant, newest first, optionally filtered by stored status."""
        query = select(InvitationCode).where(InvitationCode.tenant_id == tenant_id)
        if status is not None:
            query = query.where(InvitationCode.status == status)
        query = query.order_by(
            col(InvitationCode.created_at).desc(), col(InvitationCode.id).desc()
        )
        return await self._page(query, limit, offset)

    async def claim(self, code: str, identity_id: UUID | None, now: datetime) -> bool:
        """Atomically flip a redeemable code from pending to used.

        Single conditional UPDATE: the status and expiry preconditions are
        evaluated by the database at write time, so of any number of
        concurrent callers exactly one sees a row count of 1.

        Returns:
            True if this call performed the transition.
        """
        result = await self.session.execute(
            update(InvitationCode)
            .where(col(InvitationCode.code) == code)
            .where(col(InvitationCode.status) == InvitationStatus.PENDING.value)
            .where(
                or_(
                    col(InvitationCode.expires_at).is_(None),
                    col(InvitationCode.expires_at) > now,
                )
            )
            .values(
                status=InvitationStatus.USED.value,
                used_at=now,
                used_by_identity_id=identity_id,
            )
        )
        return (result.rowcount or 0) == 1  # type: ignore[attr-defined]

    async def mark_expired(self, now: datetime | None = None) -> int:
        """Persist the expired status for pending codes past their expiry.

        Returns:
            Number of codes rewritten
        """
        result = await self.session.execute(
            update(InvitationCode)
            .where(col(InvitationCode.status) == InvitationStatus.PENDING.value)
            .where(col(InvitationCode.expires_at).is_not(None))
            .where(col(InvitationCode.expires_at) < (now or utc_now()))
            .values(status=InvitationStatus.EXPIRED.value)
        )
        return result.rowcount or 0  # type: ignore[attr-defined]

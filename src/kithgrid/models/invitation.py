"""Invitation code model."""

from datetime import datetime
from uuid import UUID, uuid7

from sqlmodel import Field, Index, SQLModel

from src.kithgrid.models.base import utc_now
from src.kithgrid.models.enums import InvitationStatus, Role


class InvitationCode(SQLModel, table=True):
    """Short single-use code that authorizes creating one membership.

    Codes are stored upper-cased; lookups normalise the presented code first,
    which makes the unique constraint case-insensitive.
    """

    __tablename__ = "invitation_codes"
    __table_args__ = (
        Index("ix_invitation_codes_tenant_email", "tenant_id", "email"),
        Index("ix_invitation_codes_status_expires", "status", "expires_at"),
    )

    id: UUID = Field(default_factory=uuid7, primary_key=True)
    tenant_id: UUID = Field(foreign_key="tenants.id", index=True)
    email: str = Field(max_length=255)
    invited_name: str | None = Field(default=None, max_length=100)
    code: str = Field(max_length=16, unique=True, index=True)
    role: str = Field(default=Role.RESIDENT.value, max_length=50)
    status: str = Field(default=InvitationStatus.PENDING.value, max_length=20)
    # Null when issued through the super-admin path
    created_by_membership_id: UUID | None = Field(
        default=None, foreign_key="memberships.id", ondelete="SET NULL"
    )
    created_at: datetime = Field(default_factory=utc_now)
    expires_at: datetime | None = Field(default=None)
    used_at: datetime | None = Field(default=None)
    used_by_identity_id: UUID | None = Field(default=None, foreign_key="identities.id")

    def is_expired(self, now: datetime | None = None) -> bool:
        """Read-time expiry: pending, has an expiry, and it has passed."""
        if self.status == InvitationStatus.EXPIRED.value:
            return True
        if self.status != InvitationStatus.PENDING.value or self.expires_at is None:
            return False
        return (now or utc_now()) > self.expires_at

    def effective_status(self, now: datetime | None = None) -> InvitationStatus:
        if self.is_expired(now):
            return InvitationStatus.EXPIRED
        return InvitationStatus(self.status)

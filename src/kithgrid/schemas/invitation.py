"""Invitation schemas."""

from datetime import datetime
from typing import Self
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from src.kithgrid.models import InvitationCode, Role
from src.kithgrid.models.base import utc_now


class InvitationIssueRequest(BaseModel):
    email: EmailStr
    role: Role = Role.RESIDENT
    invited_name: str | None = Field(default=None, max_length=100)


class InvitationBulkEntry(BaseModel):
    """One row of a bulk import."""

    email: EmailStr
    role: Role = Role.RESIDENT
    invited_name: str | None = Field(default=None, max_length=100)


class InvitationBulkRequest(BaseModel):
    entries: list[InvitationBulkEntry] = Field(min_length=1, max_length=500)


class InvitationRead(BaseModel):
    """Invitation as seen by tenant admins. ``status`` is the computed status."""

    id: UUID
    tenant_id: UUID
    email: str
    invited_name: str | None
    code: str
    role: str
    status: str
    created_by_membership_id: UUID | None
    created_at: datetime
    expires_at: datetime | None
    used_at: datetime | None

    @classmethod
    def from_invitation(cls, invitation: InvitationCode, now: datetime | None = None) -> Self:
        return cls(
            id=invitation.id,
            tenant_id=invitation.tenant_id,
            email=invitation.email,
            invited_name=invitation.invited_name,
            code=invitation.code,
            role=invitation.role,
            status=invitation.effective_status(now or utc_now()).value,
            created_by_membership_id=invitation.created_by_membership_id,
            created_at=invitation.created_at,
            expires_at=invitation.expires_at,
            used_at=invitation.used_at,
        )


class InvitationInfoResponse(BaseModel):
    """Public view of a valid code, used for client-side profile completion."""

    tenant_id: UUID
    tenant_name: str
    email: str
    invited_name: str | None
    role: str
    expires_at: datetime | None


class BulkIssueFailure(BaseModel):
    email: str
    error: str
    detail: str


class BulkIssueResult(BaseModel):
    """Outcome of a bulk issue: earlier successes survive later failures."""

    issued: list[InvitationRead] = Field(default_factory=list)
    failed: list[BulkIssueFailure] = Field(default_factory=list)


class MembershipCreationRequest(BaseModel):
    """What a successful redemption entitles the bearer to."""

    model_config = {"frozen": True}

    invitation_id: UUID
    tenant_id: UUID
    email: str
    role: Role
    invited_name: str | None = None


class JoinRequest(BaseModel):
    """Redeem a code and create (or reuse) the matching identity."""

    email: EmailStr
    password: str = Field(min_length=8, max_length=100)
    display_name: str = Field(min_length=1, max_length=100)


class ReapResponse(BaseModel):
    expired: int

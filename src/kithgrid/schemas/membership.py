"""Membership schemas."""

from datetime import datetime
from typing import Self
from uuid import UUID

from pydantic import BaseModel, Field

from src.kithgrid.models import Identity, Membership, Role


class MembershipRead(BaseModel):
    id: UUID
    identity_id: UUID
    tenant_id: UUID
    role: str
    roles: list[str]
    joined_at: datetime
    address: str | None
    hoa_position: str | None
    skills: list[str]

    model_config = {"from_attributes": True}


class MemberRead(MembershipRead):
    """Roster entry: membership plus the public part of the identity."""

    email: str
    display_name: str
    avatar_url: str | None

    @classmethod
    def from_pair(cls, membership: Membership, identity: Identity) -> Self:
        return cls(
            **MembershipRead.model_validate(membership).model_dump(),
            email=identity.email,
            display_name=identity.display_name,
            avatar_url=identity.avatar_url,
        )


class SetRolesRequest(BaseModel):
    roles: list[Role] = Field(min_length=1)

"""Resolved session context threaded through every authorization check."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.kithgrid.models.roles import RoleView


class SessionContext(BaseModel):
    """Immutable, per-request view of who is acting and in which tenant.

    Built from scratch by the session resolver on every refresh and never
    cached. ``active_tenant_id`` and ``membership_id`` are None for a
    tenant-less session; a super-admin session carries no role set.
    """

    model_config = ConfigDict(frozen=True)

    identity_id: UUID
    email: str
    active_tenant_id: UUID | None = None
    membership_id: UUID | None = None
    roles: RoleView = Field(default_factory=RoleView.empty)

    is_admin: bool = False
    is_board_member: bool = False
    is_event_manager: bool = False
    is_super_admin: bool = False

    @property
    def is_tenantless(self) -> bool:
        return self.active_tenant_id is None


class SessionRead(BaseModel):
    """Session as returned to the client."""

    identity_id: UUID
    email: str
    active_tenant_id: UUID | None
    membership_id: UUID | None
    role: str | None
    roles: list[str]
    is_admin: bool
    is_board_member: bool
    is_event_manager: bool
    is_super_admin: bool

    @classmethod
    def from_context(cls, context: SessionContext) -> "SessionRead":
        return cls(
            identity_id=context.identity_id,
            email=context.email,
            active_tenant_id=context.active_tenant_id,
            membership_id=context.membership_id,
            role=context.roles.primary,
            roles=list(context.roles.roles),
            is_admin=context.is_admin,
            is_board_member=context.is_board_member,
            is_event_manager=context.is_event_manager,
            is_super_admin=context.is_super_admin,
        )

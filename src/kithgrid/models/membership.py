"""Membership model - binds one identity to one tenant."""

from collections.abc import Iterable
from datetime import datetime
from uuid import UUID, uuid7

from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import Field, SQLModel

from src.kithgrid.models.base import utc_now
from src.kithgrid.models.enums import Role
from src.kithgrid.models.roles import RoleView, canonical_roles


class Membership(SQLModel, table=True):
    """Per-tenant membership with a role set and community profile fields.

    ``role`` is the legacy single-role column. It always mirrors the
    highest-precedence entry of ``roles`` and is only written through
    :meth:`assign_roles`.
    """

    __tablename__ = "memberships"
    __table_args__ = (
        UniqueConstraint("identity_id", "tenant_id", name="uq_memberships_identity_tenant"),
    )

    id: UUID = Field(default_factory=uuid7, primary_key=True)
    identity_id: UUID = Field(foreign_key="identities.id", index=True)
    tenant_id: UUID = Field(foreign_key="tenants.id", index=True)
    roles: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    role: str = Field(default=Role.RESIDENT.value, max_length=50)
    joined_at: datetime = Field(default_factory=utc_now)

    # Community profile
    address: str | None = Field(default=None, max_length=255)
    hoa_position: str | None = Field(default=None, max_length=100)
    skills: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))

    def assign_roles(self, labels: Iterable[str | Role]) -> None:
        """Replace the role set and resync the legacy mirror."""
        view = RoleView.from_roles(labels)
        self.roles = list(view.roles)
        self.role = view.primary  # type: ignore[assignment]

    @property
    def role_view(self) -> RoleView:
        return RoleView(primary=self.role, roles=tuple(self.roles or ()))

    @classmethod
    def with_roles(
        cls, identity_id: UUID, tenant_id: UUID, labels: Iterable[str | Role]
    ) -> "Membership":
        ordered = canonical_roles(labels)
        return cls(
            identity_id=identity_id,
            tenant_id=tenant_id,
            roles=[r.value for r in ordered],
            role=ordered[0].value,
        )

"""Test helper functions for common data creation patterns."""

from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID, uuid7

from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession

from src.kithgrid.core.config import get_settings
from src.kithgrid.core.permissions import derive_capabilities
from src.kithgrid.core.security import create_session_token
from src.kithgrid.models import Identity, Membership, Role, RoleView, Tenant
from src.kithgrid.models.roles import highest_precedence, parse_role
from src.kithgrid.schemas.session import SessionContext
from tests.factories import IdentityFactory, MembershipFactory, TenantFactory

SUPER_ADMIN_EMAIL = "operator@kithgrid.test"


def make_context(
    *roles: Role | str,
    primary: str | None = None,
    view: RoleView | None = None,
    tenant_id: UUID | None = None,
    membership_id: UUID | None = None,
    identity_id: UUID | None = None,
    is_super_admin: bool = False,
    email: str = "member@example.com",
) -> SessionContext:
    """Build a SessionContext without a database.

    ``primary`` defaults to the highest-precedence role; pass it (or a whole
    ``view``) to simulate legacy-only or stale rows.
    """
    if view is None:
        labels = tuple(r.value if isinstance(r, Role) else r for r in roles)
        if primary is None and labels:
            if all(parse_role(label) for label in labels):
                primary = highest_precedence(labels).value
            else:
                primary = labels[0]
        view = RoleView(primary=primary, roles=labels)
    return SessionContext(
        identity_id=identity_id or uuid7(),
        email=email,
        active_tenant_id=tenant_id or uuid7(),
        membership_id=membership_id or uuid7(),
        roles=view,
        **derive_capabilities(view, is_super_admin=is_super_admin),
    )


def context_for(identity: Identity, membership: Membership) -> SessionContext:
    """SessionContext matching what the resolver builds for this membership."""
    view = membership.role_view
    return SessionContext(
        identity_id=identity.id,
        email=identity.email,
        active_tenant_id=membership.tenant_id,
        membership_id=membership.id,
        roles=view,
        **derive_capabilities(view),
    )


async def create_tenant(session: AsyncSession, **kwargs) -> Tenant:
    tenant = TenantFactory.build(**kwargs)
    session.add(tenant)
    await session.flush()
    return tenant


async def create_member(
    session: AsyncSession,
    tenant: Tenant,
    *roles: Role,
    **identity_kwargs,
) -> tuple[Identity, Membership]:
    """Create an identity and its membership in a tenant.

    Args:
        session: Database session
        tenant: Tenant to create membership in
        *roles: Role set (default: Resident)
        **identity_kwargs: Additional args passed to IdentityFactory

    Returns:
        Tuple of (identity, membership)
    """
    identity = IdentityFactory.build(**identity_kwargs)
    session.add(identity)
    await session.flush()

    membership = MembershipFactory.with_roles(
        *(roles or (Role.RESIDENT,)),
        identity_id=identity.id,
        tenant_id=tenant.id,
    )
    session.add(membership)
    await session.flush()
    return identity, membership


def bearer(identity: Identity, tenant_id: UUID | None = None) -> dict[str, str]:
    """Authorization header carrying a session token for ``identity``."""
    token = create_session_token(identity.id, identity.email, tenant_id)
    return {"Authorization": f"Bearer {token}"}


def social_assertion(
    email: str,
    *,
    secret: str | None = None,
    audience: str | None = None,
    expires_in: timedelta = timedelta(minutes=5),
    **claims: Any,
) -> str:
    """Assertion as the OAuth callback signs it once the provider verified ``email``."""
    settings = get_settings()
    payload: dict[str, Any] = {
        "email": email,
        "email_verified": True,
        "aud": audience or settings.social_assertion_audience,
        "exp": datetime.now(UTC) + expires_in,
        **claims,
    }
    return jwt.encode(
        payload,
        secret or settings.social_assertion_secret,
        algorithm=settings.jwt_algorithm,
    )

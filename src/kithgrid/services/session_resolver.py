"""Session resolver - turns a verified credential into a SessionContext.

Runs on every token refresh, so it is read-mostly. The only write is the
orphan auto-join, which is guarded by the membership uniqueness constraint.
Nothing here is cached: roles changed by an admin take effect on the next
refresh.
"""

from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.kithgrid.core.exceptions import (
    AuthError,
    DatastoreError,
    DuplicateMembership,
    UnknownTenant,
)
from src.kithgrid.core.logging import get_logger
from src.kithgrid.core.permissions import SuperAdminPolicy, derive_capabilities
from src.kithgrid.models import Membership, Role, RoleView
from src.kithgrid.repositories import IdentityRepository, TenantRepository
from src.kithgrid.schemas.session import SessionContext
from src.kithgrid.services.membership_service import MembershipService

logger = get_logger(__name__)


class SessionResolver:
    """Resolve the active tenant and role set for an authenticated identity.

    Identity fields are copied into plain values up front: a failed auto-join
    rolls the session back, which expires every loaded ORM object.
    """

    def __init__(
        self,
        identity_repo: IdentityRepository,
        tenant_repo: TenantRepository,
        membership_service: MembershipService,
        session: AsyncSession,
        policy: SuperAdminPolicy,
    ):
        self.identity_repo = identity_repo
        self.tenant_repo = tenant_repo
        self.membership_service = membership_service
        self.session = session
        self.policy = policy

    async def resolve(self, email: str, prior_tenant_id: UUID | None = None) -> SessionContext:
        """Build a fresh SessionContext for ``email``.

        Args:
            email: Email of the already-verified credential (any case)
            prior_tenant_id: Sticky active-tenant pointer from the previous session

        Raises:
            AuthError: no identity has this email
            DatastoreError: any persistence failure; not retried here
        """
        try:
            identity = await self.identity_repo.get_by_email(email)
            if identity is None:
                raise AuthError()
            identity_id, identity_email = identity.id, identity.email

            # Allow-listed operators skip membership resolution entirely
            if self.policy.grants(identity_email):
                return _super_admin_context(identity_id, identity_email, prior_tenant_id)

            memberships = await self.membership_service.find_memberships(identity_id)
            if not memberships:
                return await self._heal_orphan(identity_id, identity_email)

            active = _select_active(memberships, prior_tenant_id)
            return _member_context(identity_id, identity_email, active)
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("Session resolution failed", error=str(e))
            raise DatastoreError() from e

    async def refresh_session(self, prior: SessionContext) -> SessionContext:
        """Recompute a session from scratch, keeping the prior active tenant if possible."""
        return await self.resolve(prior.email, prior.active_tenant_id)

    async def switch_active_tenant(self, identity_id: UUID, tenant_id: UUID) -> SessionContext:
        """Move the active-tenant pointer to ``tenant_id``.

        Non-destructive: existing memberships are kept. When the identity has
        no membership in the tenant yet, a Resident membership is created.

        Raises:
            AuthError: unknown identity
            UnknownTenant: tenant is absent or inactive
        """
        try:
            identity = await self.identity_repo.get_by_id(identity_id)
            if identity is None:
                raise AuthError()
            identity_email = identity.email

            if self.policy.grants(identity_email):
                if await self.tenant_repo.get_active(tenant_id) is None:
                    raise UnknownTenant()
                return _super_admin_context(identity_id, identity_email, tenant_id)

            memberships = await self.membership_service.find_memberships(identity_id)
            membership = _find_tenant(memberships, tenant_id)
            if membership is None:
                membership = await self._join(identity_id, tenant_id)
                logger.info(
                    "Joined tenant on switch",
                    identity_id=str(identity_id),
                    tenant_id=str(tenant_id),
                )
            return _member_context(identity_id, identity_email, membership)
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("Tenant switch failed", error=str(e))
            raise DatastoreError() from e

    async def _join(self, identity_id: UUID, tenant_id: UUID) -> Membership:
        """Create a Resident membership, tolerating a concurrent creator."""
        try:
            return await self.membership_service.create_membership(
                identity_id, tenant_id, [Role.RESIDENT]
            )
        except DuplicateMembership:
            memberships = await self.membership_service.find_memberships(identity_id)
            membership = _find_tenant(memberships, tenant_id)
            if membership is None:
                raise
            return membership

    async def _heal_orphan(self, identity_id: UUID, email: str) -> SessionContext:
        """Auto-join the first active tenant, or fail open to a tenant-less session."""
        tenant = await self.tenant_repo.get_first_active()
        if tenant is None:
            logger.warning("Orphan identity with no active tenant", identity_id=str(identity_id))
            return SessionContext(identity_id=identity_id, email=email)

        tenant_id = tenant.id
        try:
            membership = await self._join(identity_id, tenant_id)
        except UnknownTenant:
            logger.warning(
                "Auto-join target deactivated",
                identity_id=str(identity_id),
                tenant_id=str(tenant_id),
            )
            return SessionContext(identity_id=identity_id, email=email)

        logger.info(
            "Orphan identity auto-joined",
            identity_id=str(identity_id),
            tenant_id=str(tenant_id),
        )
        return _member_context(identity_id, email, membership)


def _select_active(memberships: list[Membership], prior_tenant_id: UUID | None) -> Membership:
    """Sticky prior tenant if still a member, else the oldest membership."""
    if prior_tenant_id is not None:
        sticky = _find_tenant(memberships, prior_tenant_id)
        if sticky is not None:
            return sticky
    return memberships[0]


def _find_tenant(memberships: list[Membership], tenant_id: UUID) -> Membership | None:
    for membership in memberships:
        if membership.tenant_id == tenant_id:
            return membership
    return None


def _member_context(identity_id: UUID, email: str, membership: Membership) -> SessionContext:
    view = membership.role_view
    return SessionContext(
        identity_id=identity_id,
        email=email,
        active_tenant_id=membership.tenant_id,
        membership_id=membership.id,
        roles=view,
        **derive_capabilities(view),
    )


def _super_admin_context(
    identity_id: UUID, email: str, tenant_id: UUID | None
) -> SessionContext:
    """Synthetic context: no role set, no tenant restriction."""
    view = RoleView.empty()
    return SessionContext(
        identity_id=identity_id,
        email=email,
        active_tenant_id=tenant_id,
        roles=view,
        **derive_capabilities(view, is_super_admin=True),
    )

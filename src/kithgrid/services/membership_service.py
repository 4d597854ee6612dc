"""Membership ledger - binds identities to tenants with a role set."""

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.kithgrid.core.exceptions import (
    DatastoreError,
    DuplicateMembership,
    IdentityAccessError,
    MembershipNotFound,
    UnknownTenant,
)
from src.kithgrid.core.logging import get_logger
from src.kithgrid.core.permissions import (
    Capability,
    require_tenant_admin,
    require_tenant_capability,
)
from src.kithgrid.models import Identity, Membership, Role
from src.kithgrid.repositories import MembershipRepository, TenantRepository
from src.kithgrid.schemas.session import SessionContext

logger = get_logger(__name__)


class MembershipService:
    """Ledger operations over the (identity, tenant) membership table.

    At most one membership exists per pair. The pre-check gives a clean error
    in the common case; the unique constraint settles concurrent creators.
    """

    def __init__(
        self,
        membership_repo: MembershipRepository,
        tenant_repo: TenantRepository,
        session: AsyncSession,
    ):
        self.membership_repo = membership_repo
        self.tenant_repo = tenant_repo
        self.session = session

    async def find_memberships(self, identity_id: UUID) -> list[Membership]:
        """All memberships of an identity in stable creation order."""
        try:
            return await self.membership_repo.list_for_identity(identity_id)
        except SQLAlchemyError as e:
            logger.error("Failed to load memberships", identity_id=str(identity_id), error=str(e))
            raise DatastoreError() from e

    async def add_membership(
        self, identity_id: UUID, tenant_id: UUID, roles: Iterable[str | Role]
    ) -> Membership:
        """Insert a membership inside the caller's transaction (flush, no commit).

        Raises:
            UnknownTenant: tenant is absent or inactive
            DuplicateMembership: the pair already exists
            InvalidRoleSet: roles is empty or has an unknown label
        """
        membership = Membership.with_roles(identity_id, tenant_id, roles)

        if await self.tenant_repo.get_active(tenant_id) is None:
            raise UnknownTenant()
        if await self.membership_repo.get_for_pair(identity_id, tenant_id) is not None:
            raise DuplicateMembership()

        try:
            async with self.session.begin_nested():
                self.membership_repo.add(membership)
                await self.session.flush()
        except IntegrityError as e:
            raise DuplicateMembership() from e
        return membership

    async def create_membership(
        self, identity_id: UUID, tenant_id: UUID, roles: Iterable[str | Role]
    ) -> Membership:
        """Create and commit a membership. See :meth:`add_membership`."""
        try:
            membership = await self.add_membership(identity_id, tenant_id, roles)
            await self.session.commit()
        except IdentityAccessError:
            await self.session.rollback()
            raise
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("Failed to create membership", tenant_id=str(tenant_id), error=str(e))
            raise DatastoreError() from e

        logger.info(
            "Membership created",
            membership_id=str(membership.id),
            identity_id=str(identity_id),
            tenant_id=str(tenant_id),
            roles=membership.roles,
        )
        return membership

    async def get_membership(self, membership_id: UUID) -> Membership:
        membership = await self.membership_repo.get_by_id(membership_id)
        if membership is None:
            raise MembershipNotFound()
        return membership

    async def set_active_role(
        self, membership_id: UUID, roles: Iterable[str | Role], actor: SessionContext
    ) -> Membership:
        """Replace a membership's role set and resync the legacy role.

        Raises:
            MembershipNotFound: no such membership
            Unauthorized: actor is neither Admin of that tenant nor super admin
            InvalidRoleSet: roles is empty or has an unknown label
        """
        try:
            membership = await self.get_membership(membership_id)
            require_tenant_admin(actor, membership.tenant_id)
            membership.assign_roles(roles)
            self.membership_repo.add(membership)
            await self.session.commit()
        except IdentityAccessError:
            await self.session.rollback()
            raise
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("Failed to update roles", membership_id=str(membership_id), error=str(e))
            raise DatastoreError() from e

        logger.info(
            "Membership roles changed",
            membership_id=str(membership_id),
            roles=membership.roles,
            changed_by=str(actor.identity_id),
        )
        return membership

    async def remove_membership(self, membership_id: UUID, actor: SessionContext) -> None:
        """Hard delete. Only reachable through an explicit admin action."""
        try:
            membership = await self.get_membership(membership_id)
            require_tenant_admin(actor, membership.tenant_id)
            tenant_id = membership.tenant_id
            await self.membership_repo.delete(membership)
            await self.session.commit()
        except IdentityAccessError:
            await self.session.rollback()
            raise
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("Failed to remove membership", membership_id=str(membership_id), error=str(e))
            raise DatastoreError() from e

        logger.info(
            "Membership removed",
            membership_id=str(membership_id),
            tenant_id=str(tenant_id),
            removed_by=str(actor.identity_id),
        )

    async def list_tenant_members(
        self, tenant_id: UUID, actor: SessionContext, limit: int = 100, offset: int = 0
    ) -> list[tuple[Membership, Identity]]:
        """Member roster of a tenant, visible to Admins and Board Members."""
        require_tenant_capability(actor, tenant_id, Capability.CAN_VIEW_MEMBER_DIRECTORY)
        try:
            return await self.membership_repo.list_for_tenant(tenant_id, limit=limit, offset=offset)
        except SQLAlchemyError as e:
            logger.error("Failed to list members", tenant_id=str(tenant_id), error=str(e))
            raise DatastoreError() from e

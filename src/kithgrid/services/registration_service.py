"""Registration service - self-service sign-up and invitation-based joins."""

from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.kithgrid.core.exceptions import (
    AuthError,
    DatastoreError,
    DuplicateIdentity,
    IdentityAccessError,
    NotFound,
    UnknownTenant,
)
from src.kithgrid.core.logging import get_logger
from src.kithgrid.core.security import hash_password, normalize_email, verify_password
from src.kithgrid.models import Identity, Membership, Role
from src.kithgrid.repositories import IdentityRepository, TenantRepository
from src.kithgrid.services.invitation_service import InvitationService
from src.kithgrid.services.membership_service import MembershipService

logger = get_logger(__name__)


class RegistrationService:
    """Creates identities and their first membership in one transaction."""

    def __init__(
        self,
        identity_repo: IdentityRepository,
        tenant_repo: TenantRepository,
        membership_service: MembershipService,
        invitation_service: InvitationService,
        session: AsyncSession,
    ):
        self.identity_repo = identity_repo
        self.tenant_repo = tenant_repo
        self.membership_service = membership_service
        self.invitation_service = invitation_service
        self.session = session

    async def register(
        self,
        email: str,
        password: str,
        display_name: str,
        tenant_slug: str | None = None,
    ) -> Identity:
        """Create an identity, optionally joining a community as Resident.

        Without a tenant the identity starts as an orphan and is auto-joined
        on its first session resolution.

        Raises:
            DuplicateIdentity: email already registered
            UnknownTenant: slug does not name an active tenant
        """
        email = normalize_email(email)
        try:
            tenant_id: UUID | None = None
            if tenant_slug is not None:
                tenant = await self.tenant_repo.get_by_slug(tenant_slug)
                if tenant is None or not tenant.is_active:
                    raise UnknownTenant()
                tenant_id = tenant.id

            identity = await self._add_identity(email, password, display_name)
            if tenant_id is not None:
                await self.membership_service.add_membership(
                    identity.id, tenant_id, [Role.RESIDENT]
                )
            await self.session.commit()
        except IdentityAccessError:
            await self.session.rollback()
            raise
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("Registration failed", error=str(e))
            raise DatastoreError() from e

        logger.info(
            "Identity registered",
            identity_id=str(identity.id),
            tenant_id=str(tenant_id) if tenant_id else None,
        )
        return identity

    async def join_with_invitation(
        self,
        code: str,
        email: str,
        password: str,
        display_name: str,
    ) -> tuple[Identity, Membership]:
        """Redeem a code and create the membership it grants, atomically.

        The identity is created when the email is new. An existing identity
        must present its password, so one that only signs in socially cannot
        join this way. Either everything commits or the code stays pending.

        Raises:
            NotFound, Expired, AlreadyUsed: code is not redeemable
            NotFound: email does not match the invitation
            AuthError: existing identity with a wrong password or none at all
            DuplicateMembership: already a member of the tenant
        """
        email = normalize_email(email)
        try:
            invitation = await self.invitation_service.validate(code)
            # Same error as an unknown code so a code never reveals its addressee
            if invitation.email != email:
                raise NotFound()

            identity = await self.identity_repo.get_by_email(email)
            if identity is None:
                identity = await self._add_identity(email, password, display_name)
            elif not identity.hashed_password or not verify_password(
                password, identity.hashed_password
            ):
                # Social-only identities have no password to present
                raise AuthError()

            grant = await self.invitation_service.claim(code, identity.id)
            membership = await self.membership_service.add_membership(
                identity.id, grant.tenant_id, [grant.role]
            )
            await self.session.commit()
        except IdentityAccessError:
            await self.session.rollback()
            raise
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("Invitation join failed", error=str(e))
            raise DatastoreError() from e

        logger.info(
            "Joined via invitation",
            identity_id=str(identity.id),
            tenant_id=str(grant.tenant_id),
            invitation_id=str(grant.invitation_id),
            role=grant.role.value,
        )
        return identity, membership

    async def _add_identity(self, email: str, password: str, display_name: str) -> Identity:
        if await self.identity_repo.exists_by_email(email):
            raise DuplicateIdentity()
        identity = Identity(
            email=email,
            display_name=display_name,
            hashed_password=hash_password(password),
        )
        try:
            async with self.session.begin_nested():
                self.identity_repo.add(identity)
                await self.session.flush()
        except IntegrityError as e:
            raise DuplicateIdentity() from e
        return identity

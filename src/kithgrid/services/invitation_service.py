"""Invitation registry - issue, validate and redeem single-use invitation codes.

State machine: ``pending -> used`` (terminal). Expiry is a computed view over
``expires_at``; a pending code past its expiry stays ``pending`` in storage
until :meth:`InvitationService.reap_expired` rewrites it.
"""

from collections.abc import Callable, Iterable
from datetime import datetime
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.kithgrid.core.config import get_settings
from src.kithgrid.core.exceptions import (
    AlreadyUsed,
    CodeSpaceExhausted,
    DatastoreError,
    DuplicateMembership,
    Expired,
    IdentityAccessError,
    InvalidRoleSet,
    NotFound,
    Unauthorized,
    UnknownTenant,
)
from src.kithgrid.core.logging import get_logger
from src.kithgrid.core.notifications import send_invitation_email
from src.kithgrid.core.permissions import (
    Capability,
    has_capability,
    require_tenant_admin,
    view_has_capability,
)
from src.kithgrid.core.security import (
    generate_invite_code,
    is_well_formed_invite_code,
    normalize_email,
    normalize_invite_code,
)
from src.kithgrid.models import InvitationCode, InvitationStatus, Role, Tenant
from src.kithgrid.models.base import expiry_after, utc_now
from src.kithgrid.models.roles import parse_role
from src.kithgrid.repositories import (
    IdentityRepository,
    InvitationRepository,
    MembershipRepository,
    TenantRepository,
)
from src.kithgrid.schemas.invitation import (
    BulkIssueFailure,
    BulkIssueResult,
    InvitationBulkEntry,
    InvitationRead,
    MembershipCreationRequest,
)
from src.kithgrid.schemas.session import SessionContext

logger = get_logger(__name__)

InvitationNotifier = Callable[..., bool]


class InvitationService:
    """Service for invitation code operations."""

    def __init__(
        self,
        invitation_repo: InvitationRepository,
        membership_repo: MembershipRepository,
        tenant_repo: TenantRepository,
        identity_repo: IdentityRepository,
        session: AsyncSession,
        notifier: InvitationNotifier = send_invitation_email,
    ):
        self.invitation_repo = invitation_repo
        self.membership_repo = membership_repo
        self.tenant_repo = tenant_repo
        self.identity_repo = identity_repo
        self.session = session
        self.notifier = notifier

    # Issuance

    async def issue(
        self,
        tenant_id: UUID,
        email: str,
        role: str | Role,
        issuer_membership_id: UUID | None,
        actor: SessionContext | None = None,
        invited_name: str | None = None,
    ) -> InvitationCode:
        """Issue a pending code for ``email`` to join ``tenant_id`` as ``role``.

        The issuer membership must belong to the tenant and currently hold
        Admin. A super-admin actor may issue without one.

        Raises:
            Unauthorized: issuer is not an Admin of the tenant
            UnknownTenant: tenant is absent or inactive
            InvalidRoleSet: role is not a known role
            DuplicateMembership: the email already belongs to a member
            CodeSpaceExhausted: no unique code after the configured attempts
        """
        try:
            tenant, created_by = await self._authorize_issuer(
                tenant_id, issuer_membership_id, actor
            )
            tenant_name = tenant.name
            inviter_name = await self._inviter_name(actor)
            invitation = await self._issue_one(
                tenant_id, email, _parse_invitation_role(role), created_by, invited_name
            )
            await self.session.commit()
        except IdentityAccessError:
            await self.session.rollback()
            raise
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("Failed to issue invitation", tenant_id=str(tenant_id), error=str(e))
            raise DatastoreError() from e

        logger.info(
            "Invitation issued",
            invitation_id=str(invitation.id),
            tenant_id=str(tenant_id),
            role=invitation.role,
            issued_by=str(created_by) if created_by else None,
        )
        self._notify(invitation, tenant_name, inviter_name)
        return invitation

    async def issue_bulk(
        self,
        tenant_id: UUID,
        entries: Iterable[InvitationBulkEntry],
        issuer_membership_id: UUID | None,
        actor: SessionContext | None = None,
    ) -> BulkIssueResult:
        """Issue one code per entry. Each entry commits on its own.

        Authorization is checked once up front. A failing entry (duplicate
        email in the batch, already a member, code space exhausted) is
        recorded in ``failed`` and never rolls back earlier entries.
        """
        try:
            tenant, created_by = await self._authorize_issuer(
                tenant_id, issuer_membership_id, actor
            )
            tenant_name = tenant.name
            inviter_name = await self._inviter_name(actor)
            await self.session.commit()
        except IdentityAccessError:
            await self.session.rollback()
            raise
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise DatastoreError() from e

        result = BulkIssueResult()
        seen: set[str] = set()

        for entry in entries:
            email = normalize_email(entry.email)
            if email in seen:
                result.failed.append(
                    BulkIssueFailure(
                        email=email,
                        error="DuplicateEmail",
                        detail="Email appears more than once in this batch",
                    )
                )
                continue
            seen.add(email)

            try:
                invitation = await self._issue_one(
                    tenant_id,
                    email,
                    _parse_invitation_role(entry.role),
                    created_by,
                    entry.invited_name,
                )
                await self.session.commit()
            except IdentityAccessError as e:
                await self.session.rollback()
                result.failed.append(
                    BulkIssueFailure(email=email, error=type(e).__name__, detail=e.message)
                )
                continue
            except SQLAlchemyError as e:
                await self.session.rollback()
                logger.error(
                    "Bulk issue aborted",
                    tenant_id=str(tenant_id),
                    issued=len(result.issued),
                    error=str(e),
                )
                raise DatastoreError() from e

            result.issued.append(InvitationRead.from_invitation(invitation))
            self._notify(invitation, tenant_name, inviter_name)

        logger.info(
            "Bulk invitations issued",
            tenant_id=str(tenant_id),
            issued=len(result.issued),
            failed=len(result.failed),
        )
        return result

    async def _authorize_issuer(
        self,
        tenant_id: UUID,
        issuer_membership_id: UUID | None,
        actor: SessionContext | None,
    ) -> tuple[Tenant, UUID | None]:
        """Return the tenant and the membership id to record as creator."""
        if actor is not None and has_capability(actor, Capability.IS_SUPER_ADMIN):
            created_by = None
        else:
            if issuer_membership_id is None:
                raise Unauthorized()
            if actor is not None and actor.membership_id != issuer_membership_id:
                raise Unauthorized()
            issuer = await self.membership_repo.get_by_id(issuer_membership_id)
            if (
                issuer is None
                or issuer.tenant_id != tenant_id
                or not view_has_capability(issuer.role_view, Capability.CAN_ISSUE_INVITATIONS)
            ):
                raise Unauthorized()
            created_by = issuer.id

        tenant = await self.tenant_repo.get_active(tenant_id)
        if tenant is None:
            raise UnknownTenant()
        return tenant, created_by

    async def _inviter_name(self, actor: SessionContext | None) -> str | None:
        if actor is None or has_capability(actor, Capability.IS_SUPER_ADMIN):
            return None
        identity = await self.identity_repo.get_by_id(actor.identity_id)
        return identity.display_name if identity else None

    async def _issue_one(
        self,
        tenant_id: UUID,
        email: str,
        role: Role,
        created_by: UUID | None,
        invited_name: str | None,
    ) -> InvitationCode:
        """Insert one pending invitation, regenerating the code on collision."""
        settings = get_settings()
        email = normalize_email(email)

        identity = await self.identity_repo.get_by_email(email)
        if identity is not None and (
            await self.membership_repo.get_for_pair(identity.id, tenant_id) is not None
        ):
            raise DuplicateMembership(f"{email} is already a member of this community")

        expires_at = expiry_after(settings.invite_expire_days)

        for attempt in range(1, settings.invite_code_max_attempts + 1):
            invitation = InvitationCode(
                tenant_id=tenant_id,
                email=email,
                invited_name=invited_name,
                code=generate_invite_code(settings.invite_code_length),
                role=role.value,
                created_by_membership_id=created_by,
                expires_at=expires_at,
            )
            try:
                async with self.session.begin_nested():
                    self.invitation_repo.add(invitation)
                    await self.session.flush()
            except IntegrityError:
                logger.warning("Invitation code collision", attempt=attempt)
                continue
            return invitation

        logger.error(
            "Invitation code space exhausted",
            tenant_id=str(tenant_id),
            attempts=settings.invite_code_max_attempts,
        )
        raise CodeSpaceExhausted()

    def _notify(
        self, invitation: InvitationCode, tenant_name: str, inviter_name: str | None
    ) -> None:
        """Deliver the code out of band. Failure is logged, never raised."""
        try:
            sent = self.notifier(
                to=invitation.email,
                code=invitation.code,
                tenant_name=tenant_name,
                inviter_name=inviter_name,
                expires_at=invitation.expires_at,
            )
        except Exception as e:
            logger.error(
                "Invitation notifier raised", invitation_id=str(invitation.id), error=str(e)
            )
            return
        if not sent:
            logger.warning("Invitation email not delivered", invitation_id=str(invitation.id))

    # Validation and redemption

    async def validate(self, code: str, now: datetime | None = None) -> InvitationCode:
        """Look up a redeemable code, matching case-insensitively.

        Raises:
            NotFound: no code matches (or the input is malformed)
            AlreadyUsed: the code was redeemed
            Expired: stored as expired, or pending past its expiry
        """
        settings = get_settings()
        normalized = normalize_invite_code(code)
        if not is_well_formed_invite_code(normalized, settings.invite_code_length):
            raise NotFound()

        try:
            invitation = await self.invitation_repo.get_by_code(normalized)
        except SQLAlchemyError as e:
            logger.error("Failed to look up invitation", error=str(e))
            raise DatastoreError() from e

        if invitation is None:
            raise NotFound()
        if invitation.status == InvitationStatus.USED.value:
            raise AlreadyUsed()
        if invitation.is_expired(now or utc_now()):
            raise Expired()
        return invitation

    async def claim(self, code: str, identity_id: UUID | None = None) -> MembershipCreationRequest:
        """Validate and flip pending to used inside the caller's transaction.

        The flip is one conditional UPDATE, so of two concurrent claims on the
        same code exactly one succeeds; the other gets ``AlreadyUsed``. A code
        that expired after validation gets ``Expired``.
        """
        invitation = await self.validate(code)
        now = utc_now()
        if not await self.invitation_repo.claim(invitation.code, identity_id, now):
            current = await self.invitation_repo.get_by_code(invitation.code, fresh=True)
            if current is None:
                raise NotFound()
            if current.status != InvitationStatus.USED.value and current.is_expired(now):
                raise Expired()
            raise AlreadyUsed()
        role = parse_role(invitation.role) or Role.RESIDENT
        return MembershipCreationRequest(
            invitation_id=invitation.id,
            tenant_id=invitation.tenant_id,
            email=invitation.email,
            role=role,
            invited_name=invitation.invited_name,
        )

    async def redeem(self, code: str, identity_id: UUID | None = None) -> MembershipCreationRequest:
        """Atomically consume a code and return what it entitles the bearer to."""
        try:
            request = await self.claim(code, identity_id)
            await self.session.commit()
        except IdentityAccessError:
            await self.session.rollback()
            raise
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("Failed to redeem invitation", error=str(e))
            raise DatastoreError() from e

        logger.info(
            "Invitation redeemed",
            invitation_id=str(request.invitation_id),
            tenant_id=str(request.tenant_id),
        )
        return request

    # Administration

    async def list_invitations(
        self, tenant_id: UUID, actor: SessionContext, limit: int = 100, offset: int = 0
    ) -> list[InvitationCode]:
        require_tenant_admin(actor, tenant_id)
        try:
            return await self.invitation_repo.list_by_tenant(tenant_id, limit=limit, offset=offset)
        except SQLAlchemyError as e:
            raise DatastoreError() from e

    async def delete_invitation(self, invitation_id: UUID, actor: SessionContext) -> None:
        try:
            invitation = await self.invitation_repo.get_by_id(invitation_id)
            if invitation is None:
                raise NotFound()
            require_tenant_admin(actor, invitation.tenant_id)
            await self.invitation_repo.delete(invitation)
            await self.session.commit()
        except IdentityAccessError:
            await self.session.rollback()
            raise
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("Failed to delete invitation", invitation_id=str(invitation_id), error=str(e))
            raise DatastoreError() from e

        logger.info(
            "Invitation deleted",
            invitation_id=str(invitation_id),
            deleted_by=str(actor.identity_id),
        )

    async def reap_expired(self) -> int:
        """Persist ``expired`` for pending codes past their expiry."""
        try:
            count = await self.invitation_repo.mark_expired(utc_now())
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("Failed to reap invitations", error=str(e))
            raise DatastoreError() from e

        logger.info("Expired invitations reaped", count=count)
        return count


def _parse_invitation_role(role: str | Role) -> Role:
    parsed = parse_role(role)
    if parsed is None:
        raise InvalidRoleSet(f"Unknown role: {role!r}")
    return parsed

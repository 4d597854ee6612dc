"""Service factory dependencies."""

from typing import Annotated

from fastapi import Depends

from src.kithgrid.api.dependencies.db import DBSession
from src.kithgrid.api.dependencies.repositories import (
    IdentityRepo,
    InvitationRepo,
    MembershipRepo,
    TenantRepo,
)
from src.kithgrid.core.permissions import SuperAdminPolicy
from src.kithgrid.services import (
    AuthService,
    InvitationService,
    MembershipService,
    RegistrationService,
    SessionResolver,
)


def get_super_admin_policy() -> SuperAdminPolicy:
    """Allow-list from settings. Override in tests to swap the policy."""
    return SuperAdminPolicy.from_settings()


SuperAdminPolicyDep = Annotated[SuperAdminPolicy, Depends(get_super_admin_policy)]


def get_membership_service(
    membership_repo: MembershipRepo,
    tenant_repo: TenantRepo,
    session: DBSession,
) -> MembershipService:
    return MembershipService(membership_repo, tenant_repo, session)


MembershipServiceDep = Annotated[MembershipService, Depends(get_membership_service)]


def get_session_resolver(
    identity_repo: IdentityRepo,
    tenant_repo: TenantRepo,
    membership_service: MembershipServiceDep,
    session: DBSession,
    policy: SuperAdminPolicyDep,
) -> SessionResolver:
    return SessionResolver(identity_repo, tenant_repo, membership_service, session, policy)


SessionResolverDep = Annotated[SessionResolver, Depends(get_session_resolver)]


def get_auth_service(
    identity_repo: IdentityRepo,
    resolver: SessionResolverDep,
    session: DBSession,
) -> AuthService:
    return AuthService(identity_repo, resolver, session)


def get_invitation_service(
    invitation_repo: InvitationRepo,
    membership_repo: MembershipRepo,
    tenant_repo: TenantRepo,
    identity_repo: IdentityRepo,
    session: DBSession,
) -> InvitationService:
    return InvitationService(invitation_repo, membership_repo, tenant_repo, identity_repo, session)


InvitationServiceDep = Annotated[InvitationService, Depends(get_invitation_service)]


def get_registration_service(
    identity_repo: IdentityRepo,
    tenant_repo: TenantRepo,
    membership_service: MembershipServiceDep,
    invitation_service: InvitationServiceDep,
    session: DBSession,
) -> RegistrationService:
    return RegistrationService(
        identity_repo, tenant_repo, membership_service, invitation_service, session
    )


AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
RegistrationServiceDep = Annotated[RegistrationService, Depends(get_registration_service)]

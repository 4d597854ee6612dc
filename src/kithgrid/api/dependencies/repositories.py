"""Repository providers, all bound to the request session."""

from typing import Annotated

from fastapi import Depends

from src.kithgrid.api.dependencies.db import DBSession
from src.kithgrid.repositories import (
    IdentityRepository,
    InvitationRepository,
    MembershipRepository,
    TenantRepository,
)


def get_identity_repository(session: DBSession) -> IdentityRepository:
    return IdentityRepository(session)


def get_tenant_repository(session: DBSession) -> TenantRepository:
    return TenantRepository(session)


def get_membership_repository(session: DBSession) -> MembershipRepository:
    return MembershipRepository(session)


def get_invitation_repository(session: DBSession) -> InvitationRepository:
    return InvitationRepository(session)


IdentityRepo = Annotated[IdentityRepository, Depends(get_identity_repository)]
TenantRepo = Annotated[TenantRepository, Depends(get_tenant_repository)]
MembershipRepo = Annotated[MembershipRepository, Depends(get_membership_repository)]
InvitationRepo = Annotated[InvitationRepository, Depends(get_invitation_repository)]

"""FastAPI dependency injection definitions."""

from src.kithgrid.api.dependencies.auth import (
    CurrentSession,
    SuperAdminSession,
    get_session_context,
    require_super_admin,
)
from src.kithgrid.api.dependencies.db import DBSession, get_db_session
from src.kithgrid.api.dependencies.repositories import (
    IdentityRepo,
    InvitationRepo,
    MembershipRepo,
    TenantRepo,
)
from src.kithgrid.api.dependencies.services import (
    AuthServiceDep,
    InvitationServiceDep,
    MembershipServiceDep,
    RegistrationServiceDep,
    SessionResolverDep,
    SuperAdminPolicyDep,
    get_super_admin_policy,
)

__all__ = [
    # Auth
    "CurrentSession",
    "SuperAdminSession",
    "get_session_context",
    "require_super_admin",
    # Database
    "DBSession",
    "get_db_session",
    # Repositories
    "IdentityRepo",
    "InvitationRepo",
    "MembershipRepo",
    "TenantRepo",
    # Services
    "AuthServiceDep",
    "InvitationServiceDep",
    "MembershipServiceDep",
    "RegistrationServiceDep",
    "SessionResolverDep",
    "SuperAdminPolicyDep",
    "get_super_admin_policy",
]

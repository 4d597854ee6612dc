"""Service layer - business logic and transaction boundaries."""

from src.kithgrid.services.auth_service import AuthService
from src.kithgrid.services.invitation_service import InvitationService
from src.kithgrid.services.membership_service import MembershipService
from src.kithgrid.services.registration_service import RegistrationService
from src.kithgrid.services.session_resolver import SessionResolver

__all__ = [
    "AuthService",
    "InvitationService",
    "MembershipService",
    "RegistrationService",
    "SessionResolver",
]

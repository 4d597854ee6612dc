"""Database models and shared enums."""

from src.kithgrid.models.enums import InvitationStatus, Role
from src.kithgrid.models.identity import Identity
from src.kithgrid.models.invitation import InvitationCode
from src.kithgrid.models.membership import Membership
from src.kithgrid.models.roles import RoleView
from src.kithgrid.models.tenant import Tenant

__all__ = [
    # Enums
    "InvitationStatus",
    "Role",
    "RoleView",
    # Models
    "Identity",
    "InvitationCode",
    "Membership",
    "Tenant",
]

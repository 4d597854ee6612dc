"""Repository layer - data access abstraction."""

from src.kithgrid.repositories.base import BaseRepository
from src.kithgrid.repositories.identity import IdentityRepository
from src.kithgrid.repositories.invitation import InvitationRepository
from src.kithgrid.repositories.membership import MembershipRepository
from src.kithgrid.repositories.tenant import TenantRepository

__all__ = [
    "BaseRepository",
    "IdentityRepository",
    "InvitationRepository",
    "MembershipRepository",
    "TenantRepository",
]

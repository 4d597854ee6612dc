"""Request/response and context schemas."""

from src.kithgrid.schemas.invitation import (
    BulkIssueFailure,
    BulkIssueResult,
    InvitationRead,
    MembershipCreationRequest,
)
from src.kithgrid.schemas.session import SessionContext, SessionRead

__all__ = [
    "BulkIssueFailure",
    "BulkIssueResult",
    "InvitationRead",
    "MembershipCreationRequest",
    "SessionContext",
    "SessionRead",
]

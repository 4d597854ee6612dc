"""Authorization predicate.

This is the only module that interprets role labels. Feature code asks
``has_capability(context, Capability.X)`` and never compares role strings
itself.

A role is present when it appears in either the legacy single-role field or
the multi-role set of a :class:`RoleView`, compared after trimming, collapsing
whitespace and casefolding. Either representation alone is sufficient, so
stale rows where the two disagree still authorize correctly.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Final
from uuid import UUID

from src.kithgrid.core.config import get_settings
from src.kithgrid.core.exceptions import Unauthorized
from src.kithgrid.core.security.validators import normalize_email
from src.kithgrid.models.enums import Role
from src.kithgrid.models.roles import RoleView, normalize_role_label
from src.kithgrid.schemas.session import SessionContext


class Capability(str, Enum):
    IS_SUPER_ADMIN = "is_super_admin"
    IS_ADMIN = "is_admin"
    IS_BOARD_MEMBER = "is_board_member"
    IS_EVENT_MANAGER = "is_event_manager"
    CAN_MANAGE_EVENTS = "can_manage_events"
    CAN_ISSUE_INVITATIONS = "can_issue_invitations"
    CAN_MANAGE_MEMBERS = "can_manage_members"
    CAN_VIEW_MEMBER_DIRECTORY = "can_view_member_directory"


# Pre-multi-role officer titles still found in older rows
LEGACY_OFFICER_LABELS: Final[frozenset[str]] = frozenset(
    {"hoa officer", "officer", "president", "vice president", "secretary", "treasurer"}
)

_EVENT_MANAGING_ROLES: Final[frozenset[Role]] = frozenset(
    {Role.ADMIN, Role.EVENT_MANAGER, Role.BOARD_MEMBER}
)


def _present_labels(view: RoleView) -> set[str]:
    labels = {normalize_role_label(label) for label in view.roles}
    if view.primary:
        labels.add(normalize_role_label(view.primary))
    labels.discard("")
    return labels


def has_role(view: RoleView, role: Role) -> bool:
    """True if ``role`` appears in either representation of ``view``."""
    return normalize_role_label(role.value) in _present_labels(view)


def _has_any(view: RoleView, roles: Iterable[Role]) -> bool:
    present = _present_labels(view)
    return any(normalize_role_label(role.value) in present for role in roles)


def _role_capability(view: RoleView, capability: Capability) -> bool:
    if capability in (
        Capability.IS_ADMIN,
        Capability.CAN_ISSUE_INVITATIONS,
        Capability.CAN_MANAGE_MEMBERS,
    ):
        return has_role(view, Role.ADMIN)
    if capability == Capability.IS_BOARD_MEMBER:
        return has_role(view, Role.BOARD_MEMBER)
    if capability == Capability.IS_EVENT_MANAGER:
        return has_role(view, Role.EVENT_MANAGER)
    if capability == Capability.CAN_MANAGE_EVENTS:
        if _has_any(view, _EVENT_MANAGING_ROLES):
            return True
        return bool(_present_labels(view) & LEGACY_OFFICER_LABELS)
    if capability == Capability.CAN_VIEW_MEMBER_DIRECTORY:
        return _has_any(view, (Role.ADMIN, Role.BOARD_MEMBER))
    # IS_SUPER_ADMIN never comes from a role
    return False


# Capabilities a super admin holds regardless of role set
_SUPER_ADMIN_GRANTS: Final[frozenset[Capability]] = frozenset(
    {
        Capability.IS_SUPER_ADMIN,
        Capability.IS_ADMIN,
        Capability.CAN_MANAGE_EVENTS,
        Capability.CAN_ISSUE_INVITATIONS,
        Capability.CAN_MANAGE_MEMBERS,
        Capability.CAN_VIEW_MEMBER_DIRECTORY,
    }
)


def view_has_capability(view: RoleView, capability: Capability, is_super_admin: bool = False) -> bool:
    if is_super_admin and capability in _SUPER_ADMIN_GRANTS:
        return True
    return _role_capability(view, capability)


def has_capability(context: SessionContext, capability: Capability) -> bool:
    """Pure check of ``capability`` against a resolved session."""
    return view_has_capability(context.roles, capability, context.is_super_admin)


def derive_capabilities(view: RoleView, is_super_admin: bool = False) -> dict[str, bool]:
    """Flags stored on a SessionContext when it is built."""
    return {
        "is_admin": view_has_capability(view, Capability.IS_ADMIN, is_super_admin),
        "is_board_member": view_has_capability(view, Capability.IS_BOARD_MEMBER, is_super_admin),
        "is_event_manager": view_has_capability(view, Capability.IS_EVENT_MANAGER, is_super_admin),
        "is_super_admin": is_super_admin,
    }


def require_capability(context: SessionContext, capability: Capability) -> None:
    """Raises:
    Unauthorized: if the session lacks ``capability``.
    """
    if not has_capability(context, capability):
        raise Unauthorized()


def require_tenant_capability(
    context: SessionContext, tenant_id: UUID, capability: Capability
) -> None:
    """Like :func:`require_capability`, scoped to ``tenant_id``.

    A session's roles only apply to its active tenant. Super admins are not
    tenant-restricted.
    """
    if context.is_super_admin:
        return
    if context.active_tenant_id != tenant_id:
        raise Unauthorized()
    require_capability(context, capability)


def require_tenant_admin(context: SessionContext, tenant_id: UUID) -> None:
    require_tenant_capability(context, tenant_id, Capability.IS_ADMIN)


@dataclass(frozen=True)
class SuperAdminPolicy:
    """Operator-configured allow-list of identities granted unrestricted access.

    This is the only escalation path that bypasses tenant membership. It is
    injected into the session resolver so tests can swap it.
    """

    emails: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def from_settings(cls) -> "SuperAdminPolicy":
        return cls(frozenset(get_settings().super_admin_emails))

    @classmethod
    def of(cls, *emails: str) -> "SuperAdminPolicy":
        return cls(frozenset(normalize_email(e) for e in emails))

    def grants(self, email: str) -> bool:
        return normalize_email(email) in self.emails

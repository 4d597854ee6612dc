"""Role precedence and the legacy/multi-role boundary type."""

from collections.abc import Iterable
from typing import Final

from pydantic import BaseModel, ConfigDict

from src.kithgrid.core.exceptions import InvalidRoleSet
from src.kithgrid.models.enums import Role

# Highest first
ROLE_PRECEDENCE: Final[tuple[Role, ...]] = (
    Role.ADMIN,
    Role.BOARD_MEMBER,
    Role.EVENT_MANAGER,
    Role.RESIDENT,
)


def normalize_role_label(label: str) -> str:
    """Trim, collapse inner whitespace and casefold a role label."""
    return " ".join(label.split()).casefold()


_ROLES_BY_LABEL: Final[dict[str, Role]] = {normalize_role_label(r.value): r for r in Role}


def parse_role(label: str | Role) -> Role | None:
    """Map a stored or user supplied label to a Role, or None if unknown."""
    if isinstance(label, Role):
        return label
    return _ROLES_BY_LABEL.get(normalize_role_label(label))


def canonical_roles(labels: Iterable[str | Role]) -> list[Role]:
    """Deduplicate and order roles by precedence.

    Raises:
        InvalidRoleSet: if the set is empty or contains an unknown label.
    """
    roles: set[Role] = set()
    for label in labels:
        role = parse_role(label)
        if role is None:
            raise InvalidRoleSet(f"Unknown role: {label!r}")
        roles.add(role)
    if not roles:
        raise InvalidRoleSet()
    return [role for role in ROLE_PRECEDENCE if role in roles]


def highest_precedence(labels: Iterable[str | Role]) -> Role:
    """Return the role that the legacy single-role column must mirror."""
    return canonical_roles(labels)[0]


class RoleView(BaseModel):
    """Both role representations of a membership, exposed side by side.

    ``primary`` is the legacy single-role value and ``roles`` the multi-role
    set. Values built with :meth:`from_roles` keep them consistent; values
    read back from older rows or tokens may disagree, and authorization treats
    either as a source of truth.
    """

    model_config = ConfigDict(frozen=True)

    primary: str | None = None
    roles: tuple[str, ...] = ()

    @classmethod
    def from_roles(cls, labels: Iterable[str | Role]) -> "RoleView":
        ordered = canonical_roles(labels)
        return cls(primary=ordered[0].value, roles=tuple(r.value for r in ordered))

    @classmethod
    def empty(cls) -> "RoleView":
        return cls()

    @property
    def role_set(self) -> frozenset[str]:
        return frozenset(self.roles)

"""Identity and membership factories for test data generation."""

from polyfactory import Use

from src.kithgrid.core.security import hash_password
from src.kithgrid.models import Identity, Membership, Role
from tests.factories.base import BaseFactory, generate_uuid7, short_suffix, utc_now

# Default test password - stored for convenience in tests
DEFAULT_TEST_PASSWORD = "testpassword123"

_TEST_PASSWORD_HASH = hash_password(DEFAULT_TEST_PASSWORD)


class IdentityFactory(BaseFactory):
    """Factory for generating Identity test data."""

    __model__ = Identity

    id = Use(generate_uuid7)
    email = Use(lambda: f"neighbor_{short_suffix()}@example.com")
    display_name = "Test Neighbor"
    avatar_url = None
    hashed_password = _TEST_PASSWORD_HASH
    created_at = Use(utc_now)

    @classmethod
    def social(cls, **kwargs):
        """Create an identity that only signs in through a social provider."""
        return cls.build(hashed_password=None, **kwargs)


class MembershipFactory(BaseFactory):
    """Factory for generating Membership test data."""

    __model__ = Membership

    id = Use(generate_uuid7)
    # FK fields - must be set explicitly
    identity_id = None
    tenant_id = None
    roles = Use(lambda: [Role.RESIDENT.value])
    role = Role.RESIDENT.value
    joined_at = Use(utc_now)
    address = None
    hoa_position = None
    skills = Use(list)

    @classmethod
    def with_roles(cls, *roles: Role, **kwargs):
        """Create a membership whose legacy role mirrors the role set."""
        membership = Membership.with_roles(kwargs.pop("identity_id"), kwargs.pop("tenant_id"), roles)
        return cls.build(roles=membership.roles, role=membership.role, **kwargs)

    @classmethod
    def admin(cls, **kwargs):
        return cls.with_roles(Role.ADMIN, **kwargs)

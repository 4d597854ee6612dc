"""Test factories for generating test data.

Re-exports all factories for convenient imports:
    from tests.factories import IdentityFactory, TenantFactory, ...
"""

from tests.factories.base import BaseFactory, generate_uuid7, utc_now
from tests.factories.identity import DEFAULT_TEST_PASSWORD, IdentityFactory, MembershipFactory
from tests.factories.invitation import InvitationCodeFactory
from tests.factories.tenant import TenantFactory

__all__ = [
    # Base
    "BaseFactory",
    "generate_uuid7",
    "utc_now",
    # Tenant
    "TenantFactory",
    # Identity
    "DEFAULT_TEST_PASSWORD",
    "IdentityFactory",
    "MembershipFactory",
    # Invitation
    "InvitationCodeFactory",
]

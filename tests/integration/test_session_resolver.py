"""Integration tests for session resolution."""

import asyncio
from unittest.mock import AsyncMock
from uuid import uuid7

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from src.kithgrid.core.exceptions import (
    AuthError,
    DatastoreError,
    DuplicateMembership,
    UnknownTenant,
)
from src.kithgrid.core.permissions import Capability, has_capability
from src.kithgrid.models import Membership, Role
from tests.factories import IdentityFactory, TenantFactory
from tests.helpers import SUPER_ADMIN_EMAIL, context_for, create_member, make_context

pytestmark = pytest.mark.integration


@pytest.fixture
async def two_tenants(db_session):
    """An identity that is Admin of X (joined first) and Resident of Y."""
    tenant_x = TenantFactory.build(name="X")
    tenant_y = TenantFactory.build(name="Y")
    db_session.add_all([tenant_x, tenant_y])
    await db_session.flush()

    identity, membership_x = await create_member(db_session, tenant_x, Role.ADMIN)
    membership_y = Membership.with_roles(identity.id, tenant_y.id, [Role.RESIDENT])
    db_session.add(membership_y)
    await db_session.commit()
    return identity, membership_x, membership_y


class TestResolve:
    async def test_single_membership(self, services, admin):
        identity, membership = admin

        context = await services.resolver.resolve(identity.email.upper())

        assert context == context_for(identity, membership)
        assert context.is_admin
        assert not context.is_super_admin

    async def test_unknown_email(self, services):
        with pytest.raises(AuthError):
            await services.resolver.resolve("nobody@example.com")

    async def test_defaults_to_oldest_membership(self, services, two_tenants):
        identity, membership_x, _ = two_tenants

        context = await services.resolver.resolve(identity.email)

        assert context.active_tenant_id == membership_x.tenant_id
        assert context.is_admin

    async def test_sticky_prior_tenant(self, services, two_tenants):
        identity, _, membership_y = two_tenants

        context = await services.resolver.resolve(identity.email, membership_y.tenant_id)

        assert context.active_tenant_id == membership_y.tenant_id
        assert context.membership_id == membership_y.id
        assert not has_capability(context, Capability.IS_ADMIN)

    async def test_prior_tenant_without_membership_falls_back(self, services, two_tenants):
        identity, membership_x, _ = two_tenants

        context = await services.resolver.resolve(identity.email, uuid7())

        assert context.active_tenant_id == membership_x.tenant_id

    async def test_removed_membership_falls_back(self, services, two_tenants):
        identity, membership_x, membership_y = two_tenants
        email = identity.email
        tenant_x_id, tenant_y_id = membership_x.tenant_id, membership_y.tenant_id
        operator = make_context(is_super_admin=True)

        prior = await services.resolver.resolve(email, tenant_y_id)
        assert prior.active_tenant_id == tenant_y_id

        await services.memberships.remove_membership(membership_y.id, operator)
        refreshed = await services.resolver.refresh_session(prior)

        assert refreshed.active_tenant_id == tenant_x_id
        assert refreshed.is_admin

    async def test_role_changes_apply_on_next_refresh(self, services, admin, resident):
        resident_identity, resident_membership = resident
        before = await services.resolver.resolve(resident_identity.email)
        assert not before.is_event_manager

        await services.memberships.set_active_role(
            resident_membership.id, [Role.EVENT_MANAGER], context_for(*admin)
        )
        after = await services.resolver.refresh_session(before)

        assert after.is_event_manager
        assert has_capability(after, Capability.CAN_MANAGE_EVENTS)


class TestOrphans:
    async def test_orphan_is_auto_joined_as_resident(self, services, db_session, tenant):
        orphan = IdentityFactory.build()
        db_session.add(orphan)
        await db_session.commit()

        context = await services.resolver.resolve(orphan.email)

        assert context.active_tenant_id == tenant.id
        assert context.roles.primary == Role.RESIDENT.value
        assert context.roles.roles == (Role.RESIDENT.value,)
        memberships = await services.memberships.find_memberships(orphan.id)
        assert len(memberships) == 1

    async def test_orphan_joins_oldest_active_tenant(self, services, db_session):
        inactive = TenantFactory.inactive(name="Closed")
        db_session.add(inactive)
        await db_session.flush()
        oldest_active = TenantFactory.build(name="Oldest")
        db_session.add(oldest_active)
        await db_session.flush()
        db_session.add(TenantFactory.build(name="Newest"))
        orphan = IdentityFactory.build()
        db_session.add(orphan)
        await db_session.commit()

        context = await services.resolver.resolve(orphan.email)

        assert context.active_tenant_id == oldest_active.id

    async def test_orphan_without_tenants_is_tenantless(self, services, db_session):
        orphan = IdentityFactory.build()
        db_session.add(orphan)
        await db_session.commit()

        context = await services.resolver.resolve(orphan.email)

        assert context.is_tenantless
        assert context.membership_id is None
        assert not any(has_capability(context, c) for c in Capability)
        result = await db_session.execute(select(Membership))
        assert result.scalars().all() == []

    async def test_concurrent_resolves_join_once(
        self, session_factory, make_services, db_session, tenant
    ):
        orphan = IdentityFactory.build()
        db_session.add(orphan)
        await db_session.commit()
        orphan_id, email = orphan.id, orphan.email

        async def _resolve():
            async with session_factory() as session:
                return await make_services(session).resolver.resolve(email)

        first, second = await asyncio.gather(_resolve(), _resolve())

        assert first.membership_id is not None
        assert first.membership_id == second.membership_id
        assert first.active_tenant_id == second.active_tenant_id == tenant.id
        count = await db_session.scalar(
            select(func.count()).select_from(Membership).where(Membership.identity_id == orphan_id)
        )
        assert count == 1

    async def test_lost_auto_join_race_rereads_memberships(
        self, services, db_session, tenant, monkeypatch
    ):
        orphan = IdentityFactory.build()
        db_session.add(orphan)
        await db_session.commit()
        orphan_id, email = orphan.id, orphan.email
        create_membership = services.memberships.create_membership

        async def _created_elsewhere(identity_id, tenant_id, roles):
            await create_membership(identity_id, tenant_id, roles)
            raise DuplicateMembership()

        monkeypatch.setattr(services.memberships, "create_membership", _created_elsewhere)

        context = await services.resolver.resolve(email)

        memberships = await services.memberships.find_memberships(orphan_id)
        assert [m.id for m in memberships] == [context.membership_id]
        assert context.active_tenant_id == tenant.id
        assert context.roles.primary == Role.RESIDENT.value


class TestSuperAdmin:
    async def test_super_admin_bypasses_memberships(self, services, db_session, super_admin, tenant):
        context = await services.resolver.resolve(SUPER_ADMIN_EMAIL.upper())

        assert context.is_super_admin
        assert context.is_admin
        assert context.roles.roles == ()
        assert has_capability(context, Capability.CAN_ISSUE_INVITATIONS)
        # No auto-join for operators
        result = await db_session.execute(select(Membership))
        assert result.scalars().all() == []

    async def test_super_admin_keeps_prior_tenant(self, services, super_admin, tenant):
        context = await services.resolver.resolve(super_admin.email, tenant.id)
        assert context.active_tenant_id == tenant.id

    async def test_switch_validates_tenant(self, services, super_admin, tenant):
        context = await services.resolver.switch_active_tenant(super_admin.id, tenant.id)
        assert context.active_tenant_id == tenant.id

        with pytest.raises(UnknownTenant):
            await services.resolver.switch_active_tenant(super_admin.id, uuid7())


class TestSwitchActiveTenant:
    async def test_switch_to_existing_membership(self, services, two_tenants):
        identity, _, membership_y = two_tenants

        context = await services.resolver.switch_active_tenant(identity.id, membership_y.tenant_id)

        assert context.membership_id == membership_y.id
        assert context.roles.primary == Role.RESIDENT.value

    async def test_switch_joins_new_tenant_and_keeps_old(self, services, db_session, admin):
        identity, membership = admin
        identity_id, home_tenant_id = identity.id, membership.tenant_id
        other = TenantFactory.build()
        db_session.add(other)
        await db_session.commit()

        context = await services.resolver.switch_active_tenant(identity_id, other.id)

        assert context.active_tenant_id == other.id
        assert context.roles.primary == Role.RESIDENT.value
        memberships = await services.memberships.find_memberships(identity_id)
        assert {m.tenant_id for m in memberships} == {home_tenant_id, other.id}

    async def test_switch_to_inactive_tenant(self, services, db_session, admin):
        identity_id = admin[0].id
        inactive = TenantFactory.inactive()
        db_session.add(inactive)
        await db_session.commit()

        with pytest.raises(UnknownTenant):
            await services.resolver.switch_active_tenant(identity_id, inactive.id)

    async def test_unknown_identity(self, services, tenant):
        with pytest.raises(AuthError):
            await services.resolver.switch_active_tenant(uuid7(), tenant.id)


async def test_datastore_failure_is_surfaced(services, admin):
    email = admin[0].email
    services.memberships.membership_repo.list_for_identity = AsyncMock(
        side_effect=OperationalError("SELECT", {}, Exception("connection lost"))
    )

    with pytest.raises(DatastoreError):
        await services.resolver.resolve(email)

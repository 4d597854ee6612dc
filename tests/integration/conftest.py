"""Integration test fixtures for database and HTTP client operations.

Each test gets a fresh SQLite file migrated to head. Transactions start with
``BEGIN IMMEDIATE`` so concurrent sessions serialise on the write lock the
way row locks serialise them in PostgreSQL.

Sessions hold that lock until commit or rollback: commit setup data before
handing work to another session.
"""

import asyncio
from collections.abc import AsyncGenerator, Callable
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from src.kithgrid.api.dependencies import get_db_session, get_super_admin_policy
from src.kithgrid.core.migrations import run_migrations_sync
from src.kithgrid.core.permissions import SuperAdminPolicy
from src.kithgrid.main import create_app
from src.kithgrid.models import Identity, Membership, Role, Tenant
from src.kithgrid.repositories import (
    IdentityRepository,
    InvitationRepository,
    MembershipRepository,
    TenantRepository,
)
from src.kithgrid.services import (
    AuthService,
    InvitationService,
    MembershipService,
    RegistrationService,
    SessionResolver,
)
from tests.helpers import SUPER_ADMIN_EMAIL, create_member, create_tenant


@pytest.fixture(scope="function")
async def engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine]:
    """Create a migrated, throwaway database for one test."""
    url = f"sqlite+aiosqlite:///{tmp_path / 'kithgrid.db'}"
    await asyncio.to_thread(run_migrations_sync, url)

    test_engine = create_async_engine(url, poolclass=NullPool)

    @event.listens_for(test_engine.sync_engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):  # type: ignore[no-untyped-def]
        dbapi_connection.isolation_level = None

    @event.listens_for(test_engine.sync_engine, "begin")
    def _begin_immediate(conn):  # type: ignore[no-untyped-def]
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    """Provide an async session for database operations.

    Nothing is committed automatically; tests and fixtures commit explicitly.
    """
    async with session_factory() as session:
        yield session


class Services:
    """Every service wired to one session, the way the request dependencies do it."""

    def __init__(self, session: AsyncSession, policy: SuperAdminPolicy):
        self.session = session
        self.identity_repo = IdentityRepository(session)
        self.tenant_repo = TenantRepository(session)
        self.membership_repo = MembershipRepository(session)
        self.invitation_repo = InvitationRepository(session)
        self.memberships = MembershipService(self.membership_repo, self.tenant_repo, session)
        self.resolver = SessionResolver(
            self.identity_repo, self.tenant_repo, self.memberships, session, policy
        )
        self.auth = AuthService(self.identity_repo, self.resolver, session)
        self.invitations = InvitationService(
            self.invitation_repo,
            self.membership_repo,
            self.tenant_repo,
            self.identity_repo,
            session,
        )
        self.registration = RegistrationService(
            self.identity_repo, self.tenant_repo, self.memberships, self.invitations, session
        )


@pytest.fixture
def super_admin_policy() -> SuperAdminPolicy:
    return SuperAdminPolicy.of(SUPER_ADMIN_EMAIL)


@pytest.fixture
def services(db_session: AsyncSession, super_admin_policy: SuperAdminPolicy) -> Services:
    return Services(db_session, super_admin_policy)


@pytest.fixture
def make_services(
    session_factory: async_sessionmaker[AsyncSession], super_admin_policy: SuperAdminPolicy
) -> Callable[[AsyncSession], Services]:
    """For concurrency tests: wire services to a session the test opens itself."""

    def _make(session: AsyncSession) -> Services:
        return Services(session, super_admin_policy)

    return _make


@pytest.fixture
async def tenant(db_session: AsyncSession) -> Tenant:
    tenant = await create_tenant(db_session, name="Maple Grove")
    await db_session.commit()
    return tenant


@pytest.fixture
async def admin(db_session: AsyncSession, tenant: Tenant) -> tuple[Identity, Membership]:
    """An identity holding Admin in ``tenant``."""
    identity, membership = await create_member(
        db_session, tenant, Role.ADMIN, display_name="Alex Admin"
    )
    await db_session.commit()
    return identity, membership


@pytest.fixture
async def resident(db_session: AsyncSession, tenant: Tenant) -> tuple[Identity, Membership]:
    identity, membership = await create_member(db_session, tenant, Role.RESIDENT)
    await db_session.commit()
    return identity, membership


@pytest.fixture
async def super_admin(db_session: AsyncSession) -> Identity:
    identity = Identity(email=SUPER_ADMIN_EMAIL, display_name="Operator")
    db_session.add(identity)
    await db_session.commit()
    return identity


@pytest.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession], super_admin_policy: SuperAdminPolicy
) -> AsyncGenerator[AsyncClient]:
    """HTTP client against the app, bound to the test database."""
    app = create_app()

    async def _test_db_session() -> AsyncGenerator[AsyncSession]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = _test_db_session
    app.dependency_overrides[get_super_admin_policy] = lambda: super_admin_policy

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

"""Authentication service - credential checks, social sign-in and session tokens."""

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.kithgrid.core.exceptions import AuthError, DatastoreError
from src.kithgrid.core.logging import get_logger
from src.kithgrid.core.security import (
    DUMMY_PASSWORD_HASH,
    create_session_token,
    normalize_email,
    verify_password,
    verify_social_assertion,
)
from src.kithgrid.models import Identity
from src.kithgrid.repositories import IdentityRepository
from src.kithgrid.schemas.session import SessionContext
from src.kithgrid.services.session_resolver import SessionResolver

logger = get_logger(__name__)

DEFAULT_DISPLAY_NAME = "Neighbor"


class AuthService:
    """Credential store front door.

    Verifies credentials and hands the identity to the session resolver; it
    never decides tenants or roles itself.
    """

    def __init__(
        self,
        identity_repo: IdentityRepository,
        resolver: SessionResolver,
        session: AsyncSession,
    ):
        self.identity_repo = identity_repo
        self.resolver = resolver
        self.session = session

    async def authenticate(self, email: str, password: str) -> Identity:
        """Verify an email/password pair.

        Raises:
            AuthError: unknown email, social-only identity or wrong password.
                The message is identical in every case.
        """
        try:
            identity = await self.identity_repo.get_by_email(email)
        except SQLAlchemyError as e:
            logger.error("Credential lookup failed", error=str(e))
            raise DatastoreError() from e

        # Always verify so unknown emails cost the same as wrong passwords
        password_hash = DUMMY_PASSWORD_HASH
        if identity is not None and identity.hashed_password:
            password_hash = identity.hashed_password
        password_valid = verify_password(password, password_hash)

        if identity is None or not identity.hashed_password or not password_valid:
            logger.info("Authentication failed")
            raise AuthError()
        return identity

    async def login(self, email: str, password: str) -> tuple[SessionContext, str]:
        """Authenticate and resolve a fresh session. Returns (context, token)."""
        identity = await self.authenticate(email, password)
        context = await self.resolver.resolve(identity.email)
        logger.info("Login successful", identity_id=str(context.identity_id))
        return context, self.issue_token(context)

    async def sign_in_social(
        self,
        email: str,
        display_name: str | None = None,
        avatar_url: str | None = None,
    ) -> Identity:
        """Get or create the identity behind a provider-verified email.

        Created identities have no password.
        """
        email = normalize_email(email)
        try:
            identity = await self.identity_repo.get_by_email(email)
            if identity is not None:
                return identity

            identity = Identity(
                email=email,
                display_name=display_name or DEFAULT_DISPLAY_NAME,
                avatar_url=avatar_url,
            )
            self.identity_repo.add(identity)
            await self.session.commit()
        except IntegrityError:
            # Concurrent first sign-in with the same email
            await self.session.rollback()
            existing = await self.identity_repo.get_by_email(email)
            if existing is None:
                raise DatastoreError() from None
            return existing
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("Social sign-in failed", error=str(e))
            raise DatastoreError() from e

        logger.info("Identity created from social sign-in", identity_id=str(identity.id))
        return identity

    async def login_social(
        self,
        email: str,
        display_name: str | None = None,
        avatar_url: str | None = None,
    ) -> tuple[SessionContext, str]:
        """Trusted callers only: ``email`` must already be proven by the provider."""
        identity = await self.sign_in_social(email, display_name, avatar_url)
        context = await self.resolver.resolve(identity.email)
        return context, self.issue_token(context)

    async def login_with_assertion(self, assertion: str) -> tuple[SessionContext, str]:
        """Social login for a provider assertion that proves the email.

        Raises:
            AuthError: missing, forged, expired or unverified assertion, or
                social sign-in is not configured
        """
        claims = verify_social_assertion(assertion)
        if claims is None:
            logger.info("Social assertion rejected")
            raise AuthError("Social sign-in could not be verified")
        return await self.login_social(claims["email"], claims.get("name"), claims.get("picture"))

    @staticmethod
    def issue_token(context: SessionContext) -> str:
        """Session token carrying the identity and the sticky tenant pointer."""
        return create_session_token(context.identity_id, context.email, context.active_tenant_id)

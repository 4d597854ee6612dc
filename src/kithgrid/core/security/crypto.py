"""Password hashing, invitation code generation and session tokens."""

import secrets
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from jose import JWTError, jwt

from src.kithgrid.core.config import get_settings
from src.kithgrid.core.security.validators import INVITE_CODE_ALPHABET

SESSION_TOKEN_TYPE = "session"

_settings = get_settings()
_hasher = PasswordHasher(
    time_cost=_settings.argon2_time_cost,
    memory_cost=_settings.argon2_memory_cost,
    parallelism=_settings.argon2_parallelism,
)

# Checked when the email is unknown so that lookup misses cost a full verify
DUMMY_PASSWORD_HASH = _hasher.hash(secrets.token_urlsafe(16))


def hash_password(password: str) -> str:
    return _hasher.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    """True only for a matching Argon2 hash; malformed hashes count as a mismatch."""
    try:
        return _hasher.verify(hashed, password)
    except (VerificationError, InvalidHashError):
        return False


def generate_invite_code(length: int) -> str:
    """Draw ``length`` symbols from INVITE_CODE_ALPHABET with the OS CSPRNG."""
    return "".join(secrets.choice(INVITE_CODE_ALPHABET) for _ in range(length))


def create_session_token(
    identity_id: str | UUID,
    email: str,
    tenant_id: str | UUID | None,
    expires_delta: timedelta | None = None,
) -> str:
    """Sign a session token carrying the identity and its sticky tenant.

    Roles are not part of the claims; they are read from the ledger on every
    resolution so that a role change applies on the next request.
    """
    settings = get_settings()
    lifetime = expires_delta or timedelta(minutes=settings.session_token_expire_minutes)
    claims = {
        "sub": str(identity_id),
        "email": email,
        "tenant_id": None if tenant_id is None else str(tenant_id),
        "type": SESSION_TOKEN_TYPE,
        "exp": datetime.now(UTC) + lifetime,
    }
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)  # type: ignore[no-any-return]


def verify_social_assertion(assertion: str) -> dict[str, Any] | None:
    """Claims of a provider assertion, or None unless it proves a verified email.

    The OAuth callback signs ``email``, ``email_verified`` and optional
    ``name``/``picture`` with the shared secret, addressed to our audience
    and with an expiry.
    """
    settings = get_settings()
    if settings.social_assertion_secret is None:
        return None
    try:
        claims: dict[str, Any] = jwt.decode(
            assertion,
            settings.social_assertion_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.social_assertion_audience,
            options={"require_aud": True, "require_exp": True},
        )
    except JWTError:
        return None
    if claims.get("email_verified") is not True or not isinstance(claims.get("email"), str):
        return None
    return claims


def decode_token(token: str) -> dict[str, Any] | None:
    """Verified claims, or None for an expired, tampered or malformed token."""
    settings = get_settings()
    try:
        claims: dict[str, Any] = jwt.decode(
            token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm]
        )
    except JWTError:
        return None
    return claims

"""Security utilities - crypto, validators and headers.

Re-exports all security-related functions for convenience.
"""

from src.kithgrid.core.security.crypto import (
    DUMMY_PASSWORD_HASH,
    SESSION_TOKEN_TYPE,
    create_session_token,
    decode_token,
    generate_invite_code,
    hash_password,
    verify_password,
    verify_social_assertion,
)
from src.kithgrid.core.security.headers import SecurityHeadersMiddleware
from src.kithgrid.core.security.validators import (
    is_well_formed_invite_code,
    normalize_email,
    normalize_invite_code,
    validate_tenant_slug_format,
)

__all__ = [
    # Crypto
    "DUMMY_PASSWORD_HASH",
    "SESSION_TOKEN_TYPE",
    "create_session_token",
    "decode_token",
    "generate_invite_code",
    "hash_password",
    "verify_password",
    "verify_social_assertion",
    # Headers
    "SecurityHeadersMiddleware",
    # Validators
    "is_well_formed_invite_code",
    "normalize_email",
    "normalize_invite_code",
    "validate_tenant_slug_format",
]

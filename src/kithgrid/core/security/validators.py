"""Normalisation and format validators for identifiers."""

import re
import string
from typing import Final

MAX_TENANT_SLUG_LENGTH: Final[int] = 56
TENANT_SLUG_REGEX: Final[str] = r"^[a-z][a-z0-9]*([-_][a-z0-9]+)*$"

INVITE_CODE_ALPHABET: Final[str] = string.ascii_uppercase + string.digits
INVITE_CODE_REGEX: Final[str] = r"^[A-Z0-9]+$"

_TENANT_SLUG_PATTERN: Final[re.Pattern[str]] = re.compile(TENANT_SLUG_REGEX)
_INVITE_CODE_PATTERN: Final[re.Pattern[str]] = re.compile(INVITE_CODE_REGEX)


def validate_tenant_slug_format(slug: str) -> str:
    """Validate tenant slug format.

    This validates **format only**. Length is enforced by Field(max_length=...).
    """
    if not _TENANT_SLUG_PATTERN.match(slug):
        raise ValueError(
            "Slug must start with a letter and contain only lowercase letters, numbers, "
            "and single hyphens or underscores as separators"
        )
    return slug


def normalize_email(email: str) -> str:
    """Emails are compared and stored lower-cased and stripped."""
    return email.strip().lower()


def normalize_invite_code(code: str) -> str:
    """Invite codes are matched case-insensitively and stored upper-cased."""
    return code.strip().upper()


def is_well_formed_invite_code(code: str, length: int) -> bool:
    """Check a *normalised* code against the issued alphabet and length."""
    return len(code) == length and bool(_INVITE_CODE_PATTERN.match(code))

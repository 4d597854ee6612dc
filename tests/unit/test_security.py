"""Tests for security-critical functionality."""

from datetime import timedelta
from uuid import uuid7

import pytest
from jose import jwt

from src.kithgrid.core.config import get_settings
from src.kithgrid.core.security import (
    DUMMY_PASSWORD_HASH,
    SESSION_TOKEN_TYPE,
    create_session_token,
    decode_token,
    generate_invite_code,
    hash_password,
    is_well_formed_invite_code,
    normalize_email,
    normalize_invite_code,
    verify_password,
    verify_social_assertion,
)
from src.kithgrid.core.security.validators import INVITE_CODE_ALPHABET
from tests.helpers import social_assertion

pytestmark = pytest.mark.unit


class TestInviteCodes:
    def test_generated_codes_use_uppercase_alphanumerics(self):
        for _ in range(200):
            code = generate_invite_code(6)
            assert len(code) == 6
            assert set(code) <= set(INVITE_CODE_ALPHABET)
            assert is_well_formed_invite_code(code, 6)

    def test_generated_codes_vary(self):
        codes = {generate_invite_code(6) for _ in range(50)}
        assert len(codes) > 45

    def test_normalization_is_case_insensitive(self):
        assert normalize_invite_code("a1b2c3") == "A1B2C3"
        assert normalize_invite_code("  A1b2C3\n") == "A1B2C3"

    @pytest.mark.parametrize(
        "code",
        ["", "A1B2C", "A1B2C3D", "A1B2-3", "a1b2c3", "A1B 2C"],
    )
    def test_malformed_codes_rejected(self, code: str):
        assert not is_well_formed_invite_code(code, 6)


class TestPasswords:
    def test_hash_and_verify(self):
        hashed = hash_password("correct horse")
        assert verify_password("correct horse", hashed)
        assert not verify_password("wrong horse", hashed)

    def test_dummy_hash_never_matches_real_input(self):
        assert not verify_password("anything", DUMMY_PASSWORD_HASH)

    def test_garbage_hash_is_rejected_not_raised(self):
        assert not verify_password("anything", "not-a-hash")


class TestSessionTokens:
    def test_token_carries_identity_and_sticky_tenant(self):
        identity_id = uuid7()
        tenant_id = uuid7()

        payload = decode_token(create_session_token(identity_id, "a@x.com", tenant_id))

        assert payload is not None
        assert payload["sub"] == str(identity_id)
        assert payload["email"] == "a@x.com"
        assert payload["tenant_id"] == str(tenant_id)
        assert payload["type"] == SESSION_TOKEN_TYPE

    def test_tenantless_token(self):
        payload = decode_token(create_session_token(uuid7(), "a@x.com", None))
        assert payload is not None
        assert payload["tenant_id"] is None

    def test_roles_are_not_embedded(self):
        payload = decode_token(create_session_token(uuid7(), "a@x.com", uuid7()))
        assert payload is not None
        assert "roles" not in payload
        assert "role" not in payload

    def test_expired_token_rejected(self):
        token = create_session_token(
            uuid7(), "a@x.com", None, expires_delta=timedelta(seconds=-1)
        )
        assert decode_token(token) is None

    def test_foreign_signature_rejected(self):
        settings = get_settings()
        forged = jwt.encode(
            {"sub": str(uuid7()), "email": "a@x.com", "type": SESSION_TOKEN_TYPE},
            "x" * 64,
            algorithm=settings.jwt_algorithm,
        )
        assert decode_token(forged) is None


class TestSocialAssertions:
    def test_verified_email_is_accepted(self):
        claims = verify_social_assertion(social_assertion("pat@example.com", name="Pat"))

        assert claims is not None
        assert claims["email"] == "pat@example.com"
        assert claims["name"] == "Pat"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"secret": "y" * 64},
            {"audience": "someone-else"},
            {"expires_in": timedelta(minutes=-1)},
            {"email_verified": False},
        ],
        ids=["foreign-secret", "foreign-audience", "expired", "unverified-email"],
    )
    def test_unproven_assertions_rejected(self, overrides):
        assert verify_social_assertion(social_assertion("pat@example.com", **overrides)) is None

    def test_assertion_without_audience_rejected(self):
        settings = get_settings()
        token = jwt.encode(
            {"email": "pat@example.com", "email_verified": True, "exp": 4102444800},
            settings.social_assertion_secret,
            algorithm=settings.jwt_algorithm,
        )
        assert verify_social_assertion(token) is None

    def test_session_token_is_not_an_assertion(self):
        token = create_session_token(uuid7(), "pat@example.com", None)
        assert verify_social_assertion(token) is None

    def test_rejected_when_not_configured(self, override_settings):
        assertion = social_assertion("pat@example.com")
        override_settings(social_assertion_secret="")

        assert get_settings().social_assertion_secret is None
        assert verify_social_assertion(assertion) is None


def test_email_normalization():
    assert normalize_email("  Jane.Doe@Example.COM ") == "jane.doe@example.com"

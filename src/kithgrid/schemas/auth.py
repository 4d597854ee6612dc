from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from src.kithgrid.core.security.validators import MAX_TENANT_SLUG_LENGTH, validate_tenant_slug_format
from src.kithgrid.schemas.session import SessionRead


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=100)


class RegisterRequest(BaseModel):
    """Self-service registration, optionally joining a community by slug."""

    email: EmailStr
    password: str = Field(min_length=8, max_length=100)
    display_name: str = Field(min_length=1, max_length=100)
    tenant_slug: str | None = Field(default=None, min_length=1, max_length=MAX_TENANT_SLUG_LENGTH)

    @field_validator("tenant_slug")
    @classmethod
    def validate_slug(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return validate_tenant_slug_format(v)


class SocialSignInRequest(BaseModel):
    """Signed assertion from the OAuth callback that verified the email."""

    assertion: str = Field(min_length=1, max_length=4096)


class SwitchTenantRequest(BaseModel):
    tenant_id: UUID


class SessionTokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    session: SessionRead

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

SslMode = Literal["disable", "prefer", "require", "verify-ca", "verify-full"]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App
    app_name: str = "Kithgrid Identity"
    app_env: str = "development"  # development, testing, production
    debug: bool = False
    enable_openapi: bool = True  # Disable in production; also switches to the strict CSP
    csp_production: str = "default-src 'self'; frame-ancestors 'none'"
    cors_origins: list[str] = ["http://localhost:3000"]
    metrics_api_key: str | None = None  # If set, /metrics requires X-Metrics-Key

    # Logging
    log_user_emails: bool = False  # Keep off in production (GDPR)

    # Database
    database_url: str
    database_pool_size: int = 5
    database_max_overflow: int = 10
    database_ssl_mode: SslMode = "prefer"

    # Session tokens and passwords
    jwt_secret_key: str
    jwt_algorithm: str = "HS256"
    session_token_expire_minutes: int = Field(default=60 * 24, ge=1)
    argon2_time_cost: int = 3
    argon2_memory_cost: int = 65536
    argon2_parallelism: int = 1

    # Social sign-in: assertions signed by the OAuth callback with this secret.
    # Unset: /auth/social rejects every request.
    social_assertion_secret: str | None = None
    social_assertion_audience: str = "kithgrid-identity"

    # Allow-listed operator emails; see core.permissions.SuperAdminPolicy
    super_admin_emails: list[str] = []

    # Invitations
    invite_expire_days: int | None = Field(default=7, ge=1)  # None: codes never expire
    invite_code_length: int = Field(default=6, ge=4, le=16)
    invite_code_max_attempts: int = Field(default=5, ge=1)

    # Email (Resend)
    resend_api_key: str | None = None  # Unset: emails are logged, not sent
    email_from: str = "noreply@example.com"
    email_send_timeout_seconds: int = 10
    app_url: str = "http://localhost:3000"  # Frontend base for join links

    @field_validator("jwt_secret_key")
    @classmethod
    def validate_jwt_secret(cls, v: str) -> str:
        if v == "change-this-to-a-secure-random-string":
            raise ValueError(
                "JWT_SECRET_KEY must be changed from default value. "
                "Generate a secure secret with: openssl rand -hex 32"
            )
        if len(v) < 32:
            raise ValueError("JWT_SECRET_KEY must be at least 32 characters")
        return v

    @field_validator("social_assertion_secret")
    @classmethod
    def validate_social_assertion_secret(cls, v: str | None) -> str | None:
        if not v:
            return None
        if len(v) < 32:
            raise ValueError("SOCIAL_ASSERTION_SECRET must be at least 32 characters")
        return v

    @field_validator("cors_origins")
    @classmethod
    def validate_cors_origins(cls, v: list[str]) -> list[str]:
        """Credentials are allowed, so a wildcard origin is rejected."""
        if "*" in v:
            raise ValueError(
                "CORS wildcard '*' is not allowed when allow_credentials=True. "
                "Specify explicit origins instead."
            )
        return v

    @field_validator("super_admin_emails")
    @classmethod
    def normalize_super_admin_emails(cls, v: list[str]) -> list[str]:
        """Lower-case and strip allow-listed emails, dropping blanks."""
        return [email.strip().lower() for email in v if email and email.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()

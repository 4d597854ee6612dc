"""Identity model - the global, cross-tenant account."""

from datetime import datetime
from uuid import UUID, uuid7

from sqlmodel import Field, SQLModel

from src.kithgrid.models.base import utc_now


class Identity(SQLModel, table=True):
    """Global account. Emails are stored lower-cased, so uniqueness is case-insensitive."""

    __tablename__ = "identities"

    id: UUID = Field(default_factory=uuid7, primary_key=True)
    email: str = Field(max_length=255, unique=True, index=True)
    display_name: str = Field(max_length=100)
    avatar_url: str | None = Field(default=None, max_length=500)
    # Null for identities that only ever signed in through a social provider
    hashed_password: str | None = Field(default=None, max_length=255)
    created_at: datetime = Field(default_factory=utc_now)

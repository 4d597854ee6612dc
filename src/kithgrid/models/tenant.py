"""Tenant model - an isolated community."""

from datetime import datetime
from uuid import UUID, uuid7

from sqlmodel import Field, SQLModel

from src.kithgrid.core.security.validators import MAX_TENANT_SLUG_LENGTH
from src.kithgrid.models.base import utc_now


class Tenant(SQLModel, table=True):
    """Community registry.

    Lifecycle and feature configuration are owned elsewhere; the identity
    subsystem only reads ``id`` and ``is_active``.
    """

    __tablename__ = "tenants"

    id: UUID = Field(default_factory=uuid7, primary_key=True)
    name: str = Field(max_length=100, index=True)
    slug: str = Field(max_length=MAX_TENANT_SLUG_LENGTH, unique=True, index=True)
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utc_now)

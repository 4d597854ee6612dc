"""Shared polyfactory base and value helpers."""

from uuid import uuid7

from polyfactory.factories.sqlalchemy_factory import SQLAlchemyFactory

from src.kithgrid.models.base import utc_now

__all__ = ["BaseFactory", "generate_uuid7", "short_suffix", "utc_now"]


def generate_uuid7():
    return uuid7()


def short_suffix() -> str:
    """Eight hex chars, enough to keep slugs and emails unique within a run."""
    return uuid7().hex[-8:]


class BaseFactory(SQLAlchemyFactory):
    """Builds detached model instances; tests wire tenant and identity ids themselves."""

    __is_base_factory__ = True
    __set_relationships__ = False
    __set_foreign_keys__ = False

"""Base factory configuration for polyfactory."""

from uuid import UUID, uuid4

from polyfactory.factories.sqlalchemy_factory import SQLAlchemyFactory

from src.cybertask.models.base import utc_now

__all__ = ["BaseFactory", "generate_uuid", "short_suffix", "utc_now"]


def generate_uuid() -> UUID:
    return uuid4()


def short_suffix() -> str:
    """Eight hex characters for unique emails, usernames and names."""
    return uuid4().hex[-8:]


class BaseFactory(SQLAlchemyFactory):
    """Base factory with common configuration for all models.

    Provides:
    - UUID generation for primary keys
    - Disabled auto-relationship setting (we control relationships manually)
    """

    __is_base_factory__ = True
    __set_relationships__ = False
    __set_foreign_keys__ = False  # We set FK values explicitly

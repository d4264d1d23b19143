from datetime import UTC, datetime
from enum import Enum
from typing import Any

from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB


def utc_now() -> datetime:
    """Return current UTC time as naive datetime (for PostgreSQL TIMESTAMP).

    Database columns use TIMESTAMP WITHOUT TIME ZONE, so we strip tzinfo.
    All times are stored in UTC by convention.
    """
    return datetime.now(UTC).replace(tzinfo=None)


# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


def column_values(values: dict[str, Any]) -> dict[str, Any]:
    """Replace enum members by their values; enum columns are stored as strings."""
    return {key: value.value if isinstance(value, Enum) else value for key, value in values.items()}

"""Response envelope and page-number pagination."""

from datetime import UTC, datetime
from math import ceil
from typing import Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Envelope wrapping every successful response."""

    success: bool = True
    message: str = "OK"
    data: T | None = None


class PaginationMeta(BaseModel):
    current: int = Field(description="Current 1-based page")
    pages: int = Field(description="Total number of pages; 0 when there are no items")
    total: int
    limit: int

    @classmethod
    def from_counts(cls, page: int, limit: int, total: int) -> "PaginationMeta":
        return cls(current=page, pages=ceil(total / limit) if total else 0, total=total, limit=limit)


def to_naive_utc(value: datetime | None) -> datetime | None:
    """Normalize an incoming datetime to naive UTC (the storage convention)."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)

"""Request and response schemas."""

from src.cybertask.schemas.common import ApiResponse, PaginationMeta

__all__ = ["ApiResponse", "PaginationMeta"]

"""Page-number pagination query parameters."""

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Query

from src.cybertask.core.config import get_settings

_settings = get_settings()


@dataclass
class PageParams:
    page: int
    limit: int


def get_page_params(
    page: Annotated[int, Query(ge=1, description="1-based page number")] = 1,
    limit: Annotated[
        int, Query(ge=1, le=_settings.max_page_size, description="Items per page")
    ] = _settings.default_page_size,
) -> PageParams:
    return PageParams(page=page, limit=limit)


Pagination = Annotated[PageParams, Depends(get_page_params)]

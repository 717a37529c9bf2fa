# =============================================================================
# lib/pagination.py - Page Requests and Paged Responses
# =============================================================================
# Every list endpoint returns the same envelope:
#
#   {
#     "pagination": {"current": 1, "limit": 20, "records": 42, "pages": 3},
#     "data": [...]
#   }
#
# PostgREST ranges are inclusive, so page 2 with limit 20 maps to
# .range(20, 39).
# =============================================================================

from __future__ import annotations

import math
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 20


class PageRequest(BaseModel):
    """Page number (1-indexed) and page size."""
    page: int = Field(default=1, ge=1, description="Page number")
    limit: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=100, description="Items per page")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    @property
    def range_end(self) -> int:
        """Inclusive end index for PostgREST .range()."""
        return self.offset + self.limit - 1


class Pagination(BaseModel):
    current: int = Field(..., ge=1)
    limit: int = Field(..., ge=1)
    records: int = Field(..., ge=0, description="Total matching records")
    pages: int = Field(..., ge=0, description="Total number of pages")


class Page(BaseModel, Generic[T]):
    pagination: Pagination
    data: list[T] = Field(default_factory=list)


def build_pagination(total: int, request: PageRequest) -> Pagination:
    return Pagination(
        current=request.page,
        limit=request.limit,
        records=total,
        pages=math.ceil(total / request.limit) if total else 0,
    )


def build_page(rows: list[Any], total: int, request: PageRequest) -> dict[str, Any]:
    """
    Wrap a page of rows in the standard envelope.

    Returned as a dict so routers can validate it against Page[Model].
    """
    return {
        "pagination": build_pagination(total, request).model_dump(),
        "data": rows,
    }


def paginate_query(query: Any, request: PageRequest) -> tuple[list[dict[str, Any]], int]:
    """
    Apply the page window to a query built with count="exact" and run it.

    Returns:
        Tuple of (rows, total count)
    """
    response = query.range(request.offset, request.range_end).execute()
    return response.data or [], response.count or 0

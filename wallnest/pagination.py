import math

from fastapi import Query
from pydantic import BaseModel, Field

from wallnest.config import settings


class PaginationParams(BaseModel):
    page: int = Field(Query(1, ge=1, description="Page number"))
    limit: int = Field(Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE, description="Page size"))


class PaginationMeta(BaseModel):
    page: int
    limit: int
    total: int
    pages: int

    @property
    def has_next(self) -> bool:
        return self.page < self.pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1


def page_count(total: int, limit: int) -> int:
    """Number of pages for `total` rows; an empty result still has one page."""
    if limit <= 0:
        return 1
    return max(1, math.ceil(total / limit))


def build_pagination(page: int, limit: int, total: int) -> PaginationMeta:
    return PaginationMeta(page=page, limit=limit, total=total, pages=page_count(total, limit))


def get_offset(page: int, limit: int) -> int:
    """
    Calculate offset for pagination
    """
    return (max(page, 1) - 1) * limit

from typing import Generic, TypeVar

from pydantic import BaseModel

from telehealth.core.config import settings

T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    page: int
    limit: int
    total: int
    items: list[T]


def resolve_paging(page: int | None, limit: int | None) -> tuple[int, int]:
    """Return (page, limit): page at least 1, limit clamped to [1, max_page_size]."""
    page = max(1, page or 1)
    limit = max(1, min(settings.max_page_size, limit or settings.default_page_size))
    return page, limit

"""Pagination parameters and results shared by list services."""

from dataclasses import dataclass
from typing import Generic, TypeVar

from repositories.utils import total_pages
from services.errors import ValidationError

T = TypeVar("T")

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100


@dataclass(frozen=True)
class PageResult(Generic[T]):
    items: list[T]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return total_pages(self.total, self.limit)


def normalize_pagination(page: int, limit: int) -> tuple[int, int]:
    """Reject page or limit below 1; clamp limit to MAX_LIMIT."""
    if page < 1 or limit < 1:
        raise ValidationError(
            "Invalid pagination parameters: page and limit must be >= 1"
        )
    return page, min(limit, MAX_LIMIT)

"""Helpers shared by the route modules."""

from collections.abc import Callable
from typing import Annotated, Any

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from core.ratelimit import limiter
from schemas import Page, PaginationMeta
from services.errors import (
    BusinessError,
    DependencyError,
    DuplicateError,
    NotFoundError,
    ValidationError,
)
from services.pagination import DEFAULT_LIMIT, DEFAULT_PAGE, PageResult

PageQuery = Annotated[int, Query(description="1-based page number")]
LimitQuery = Annotated[int, Query(description="Page size (capped at 100)")]
SearchQuery = Annotated[
    str | None, Query(description="Case-insensitive substring filter")
]
ExcludeIdQuery = Annotated[
    int | None, Query(alias="excludeId", description="Id to ignore (on edit)")
]

__all__ = [
    "DEFAULT_LIMIT",
    "DEFAULT_PAGE",
    "ApiError",
    "ExcludeIdQuery",
    "LimitQuery",
    "PageQuery",
    "SearchQuery",
    "add_limited_route",
    "http_error",
    "to_page",
]

_STATUS_BY_ERROR: tuple[tuple[type[BusinessError], int], ...] = (
    (NotFoundError, 404),
    (DuplicateError, 409),
    (DependencyError, 409),
    (ValidationError, 400),
)


class ApiError(HTTPException):
    """HTTPException that carries a machine-readable error code."""

    def __init__(self, status_code: int, detail: str, code: str):
        super().__init__(status_code=status_code, detail=detail)
        self.code = code


def http_error(error: BusinessError) -> ApiError:
    """Translate a service-layer exception into its HTTP response."""
    status_code = next(
        (status for cls, status in _STATUS_BY_ERROR if isinstance(error, cls)),
        400,
    )
    return ApiError(status_code, error.message, error.code)


def to_page(result: PageResult[Any], schema: type[BaseModel]) -> Page:
    return Page[schema](
        data=[schema.model_validate(item) for item in result.items],
        meta=PaginationMeta(
            total=result.total,
            total_pages=result.total_pages,
            page=result.page,
            limit=result.limit,
        ),
    )


def add_limited_route(
    router: APIRouter,
    path: str,
    endpoint: Callable[..., Any],
    *,
    name: str,
    method: str,
    limit: str,
    **route_kwargs: Any,
) -> None:
    """Register a generated endpoint under its own name and rate-limit bucket.

    slowapi keys limits (and FastAPI keys operation ids) by function name, so
    endpoints built in a loop are renamed before decoration.
    """
    endpoint.__name__ = name
    endpoint.__qualname__ = name
    router.add_api_route(
        path,
        limiter.limit(limit)(endpoint),
        methods=[method],
        name=name,
        **route_kwargs,
    )

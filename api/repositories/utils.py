"""Repository utility functions for common database operations."""

import math
import time
from collections.abc import Awaitable, Callable, Sequence
from functools import wraps
from typing import Any, ParamSpec, TypeVar

from sqlalchemy import ColumnElement, or_

from core.logger import get_logger
from core.wide_event import set_wide_event_fields

logger = get_logger(__name__)

# Threshold for logging slow queries (milliseconds)
SLOW_QUERY_THRESHOLD_MS = 500

P = ParamSpec("P")
R = TypeVar("R")


def log_slow_query(
    operation_name: str,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Decorator to record slow repository operations and errors.

    Slow queries (over SLOW_QUERY_THRESHOLD_MS) and failures are attached to
    the request's wide event; failures are re-raised unchanged.

    Usage:
        @log_slow_query("estado_get_by_id")
        async def get_by_id(self, item_id: int) -> TipoEstado | None:
            ...
    """

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            start_time = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
                duration_ms = (time.perf_counter() - start_time) * 1000
                if duration_ms > SLOW_QUERY_THRESHOLD_MS:
                    logger.debug(
                        "db.query.slow",
                        operation=operation_name,
                        duration_ms=round(duration_ms, 2),
                    )
                    set_wide_event_fields(
                        db_slow_query=True,
                        db_operation=operation_name,
                        db_duration_ms=round(duration_ms, 2),
                    )
                return result
            except Exception as e:
                duration_ms = (time.perf_counter() - start_time) * 1000
                set_wide_event_fields(
                    db_query_error=True,
                    db_operation=operation_name,
                    db_duration_ms=round(duration_ms, 2),
                    db_error=str(e),
                    db_error_type=type(e).__name__,
                )
                raise

        return wrapper

    return decorator


def build_search_filter(
    columns: Sequence[Any], search: str | None
) -> ColumnElement[bool] | None:
    """Case-insensitive ``col ILIKE '%term%'`` OR-ed across columns.

    Returns None for a missing or blank term so callers can skip the WHERE.
    """
    term = (search or "").strip()
    if not term or not columns:
        return None
    pattern = f"%{term}%"
    return or_(*(column.ilike(pattern) for column in columns))


def page_offset(page: int, limit: int) -> int:
    return (page - 1) * limit


def total_pages(total: int, limit: int) -> int:
    """Number of pages for ``total`` rows; 0 when there are no rows."""
    if total <= 0:
        return 0
    return math.ceil(total / limit)

"""Establishment report endpoints (listing, sorted pages, export)."""

from typing import Annotated, Any, Literal

from fastapi import APIRouter, Query, Request, Response

from core.database import DbSession
from core.ratelimit import READ_LIMIT, limiter
from repositories.estabelecimento_repository import DEFAULT_SORT_KEY
from routes.estabelecimento_routes import SortKeyQuery, SortOrderQuery
from routes.utils import (
    DEFAULT_LIMIT,
    DEFAULT_PAGE,
    LimitQuery,
    PageQuery,
    SearchQuery,
    http_error,
    to_page,
)
from schemas import EstabelecimentoResponse, Page
from services.errors import BusinessError
from services.relatorio_service import (
    get_export_rows,
    get_report,
    get_report_page,
    render_csv,
)

router = APIRouter(prefix="/api/estabelecimentos/relatorio", tags=["relatorio"])


@router.get("", response_model=list[EstabelecimentoResponse])
@limiter.limit(READ_LIMIT)
async def report(
    request: Request, db: DbSession, search: SearchQuery = None
) -> list[Any]:
    return await get_report(db, search)


@router.get(
    "/paginated",
    response_model=Page[EstabelecimentoResponse],
    responses={400: {"description": "Invalid pagination parameters"}},
)
@limiter.limit(READ_LIMIT)
async def report_paginated(
    request: Request,
    db: DbSession,
    page: PageQuery = DEFAULT_PAGE,
    limit: LimitQuery = DEFAULT_LIMIT,
    search: SearchQuery = None,
    sort_key: SortKeyQuery = DEFAULT_SORT_KEY,
    sort_order: SortOrderQuery = "asc",
) -> Page:
    try:
        result = await get_report_page(
            db, page, limit, search, sort_key=sort_key, sort_order=sort_order
        )
    except BusinessError as e:
        raise http_error(e) from e
    return to_page(result, EstabelecimentoResponse)


@router.get(
    "/export",
    response_model=list[EstabelecimentoResponse],
    responses={200: {"content": {"text/csv": {}}, "description": "JSON or CSV"}},
)
@limiter.limit(READ_LIMIT)
async def export(
    request: Request,
    db: DbSession,
    search: SearchQuery = None,
    format: Annotated[Literal["json", "csv"], Query()] = "json",
) -> Any:
    """Every establishment ordered by name, as JSON or ``format=csv``."""
    rows = await get_export_rows(db, search)
    if format == "csv":
        return Response(
            content=render_csv(rows),
            media_type="text/csv; charset=utf-8",
            headers={
                "Content-Disposition": 'attachment; filename="estabelecimentos.csv"'
            },
        )
    return rows

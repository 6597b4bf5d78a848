"""Habilitation type endpoints.

Codes are uppercased before validation, lookup and storage, so the
check-existing endpoints match regardless of the case the client sends.
"""

from typing import Annotated

from fastapi import APIRouter, Query, Request

from core.database import DbSession
from core.ratelimit import READ_LIMIT, limiter
from repositories.lookup_repository import HABILITACAO
from routes.lookup_routes import add_coded_check_route, add_crud_routes, exists_or_400
from routes.utils import ExcludeIdQuery
from schemas import CodedLookupResponse, ExistsResponse, HabilitacaoCreate

router = APIRouter(prefix="/api/tipo-habilitacao", tags=["tipo-habilitacao"])

RequiredText = Annotated[str, Query(min_length=1)]


@router.get(
    "/check-existing-codigo",
    response_model=ExistsResponse,
    responses={400: {"description": "codigo is required"}},
)
@limiter.limit(READ_LIMIT)
async def check_existing_codigo(
    request: Request,
    db: DbSession,
    codigo: RequiredText,
    exclude_id: ExcludeIdQuery = None,
) -> ExistsResponse:
    """Whether a habilitation code is taken (case-insensitive on input)."""
    return await exists_or_400(db, HABILITACAO, {"codigo": codigo}, exclude_id)


@router.get(
    "/check-existing-descricao",
    response_model=ExistsResponse,
    responses={400: {"description": "descricao is required"}},
)
@limiter.limit(READ_LIMIT)
async def check_existing_descricao(
    request: Request,
    db: DbSession,
    descricao: RequiredText,
    exclude_id: ExcludeIdQuery = None,
) -> ExistsResponse:
    return await exists_or_400(db, HABILITACAO, {"descricao": descricao}, exclude_id)


add_coded_check_route(router, HABILITACAO)
add_crud_routes(router, HABILITACAO, HabilitacaoCreate, CodedLookupResponse)

"""Qualification type endpoints. Each qualification belongs to a component."""

from typing import Annotated

from fastapi import APIRouter, Query, Request

from core.database import DbSession
from core.ratelimit import READ_LIMIT, limiter
from repositories.lookup_repository import QUALIFICACAO
from routes.lookup_routes import OptionalText, add_crud_routes, exists_or_400
from routes.utils import ExcludeIdQuery
from schemas import ExistsResponse, QualificacaoCreate, QualificacaoResponse

router = APIRouter(prefix="/api/tipo-qualificacao", tags=["tipo-qualificacao"])


@router.get(
    "/check-existing",
    response_model=ExistsResponse,
    responses={400: {"description": "descricao and componente_id are required"}},
)
@limiter.limit(READ_LIMIT)
async def check_existing_qualificacao(
    request: Request,
    db: DbSession,
    descricao: OptionalText = None,
    componente_id: Annotated[int | None, Query(ge=1)] = None,
    exclude_id: ExcludeIdQuery = None,
) -> ExistsResponse:
    return await exists_or_400(
        db,
        QUALIFICACAO,
        {"descricao": descricao, "componente_id": componente_id},
        exclude_id,
    )


add_crud_routes(router, QUALIFICACAO, QualificacaoCreate, QualificacaoResponse)

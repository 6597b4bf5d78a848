"""Municipality endpoints.

Municipalities belong to a state: responses carry ``estado_descricao`` and
the list endpoints accept an ``estado_id`` filter.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Path, Query, Request

from core.database import DbSession
from core.ratelimit import READ_LIMIT, limiter
from models import TipoMunicipio
from repositories.lookup_repository import MUNICIPIO
from routes.lookup_routes import OptionalText, add_crud_routes, exists_or_400
from routes.utils import (
    DEFAULT_LIMIT,
    DEFAULT_PAGE,
    ExcludeIdQuery,
    LimitQuery,
    PageQuery,
    SearchQuery,
    http_error,
    to_page,
)
from schemas import ExistsResponse, MunicipioCreate, MunicipioResponse, Page
from services.errors import BusinessError
from services.lookup_service import list_lookups, paginate_lookups

router = APIRouter(prefix="/api/municipios", tags=["municipios"])

EstadoFilter = Annotated[int | None, Query(ge=1, description="Only this state")]


@router.get("", response_model=list[MunicipioResponse])
@limiter.limit(READ_LIMIT)
async def list_municipios(
    request: Request,
    db: DbSession,
    search: SearchQuery = None,
    estado_id: EstadoFilter = None,
) -> list[Any]:
    return await list_lookups(
        db, MUNICIPIO, search=search, filters={"estado_id": estado_id}
    )


@router.get(
    "/paginated",
    response_model=Page[MunicipioResponse],
    responses={400: {"description": "Invalid pagination parameters"}},
)
@limiter.limit(READ_LIMIT)
async def paginate_municipios(
    request: Request,
    db: DbSession,
    page: PageQuery = DEFAULT_PAGE,
    limit: LimitQuery = DEFAULT_LIMIT,
    search: SearchQuery = None,
    estado_id: EstadoFilter = None,
) -> Page:
    try:
        result = await paginate_lookups(
            db, MUNICIPIO, page, limit, search, filters={"estado_id": estado_id}
        )
    except BusinessError as e:
        raise http_error(e) from e
    return to_page(result, MunicipioResponse)


@router.get("/by-estado/{estado_id}", response_model=list[MunicipioResponse])
@limiter.limit(READ_LIMIT)
async def list_municipios_by_estado(
    request: Request,
    db: DbSession,
    estado_id: Annotated[int, Path(ge=1)],
) -> list[Any]:
    """Municipalities of one state, alphabetically."""
    return await list_lookups(
        db,
        MUNICIPIO,
        filters={"estado_id": estado_id},
        order_by=(TipoMunicipio.descricao,),
    )


@router.get(
    "/check-existing",
    response_model=ExistsResponse,
    responses={400: {"description": "codigo or descricao+estado_id is required"}},
)
@limiter.limit(READ_LIMIT)
async def check_existing_municipio(
    request: Request,
    db: DbSession,
    codigo: OptionalText = None,
    descricao: OptionalText = None,
    estado_id: EstadoFilter = None,
    exclude_id: ExcludeIdQuery = None,
) -> ExistsResponse:
    """Check ``codigo`` or the (``descricao``, ``estado_id``) pair."""
    return await exists_or_400(
        db,
        MUNICIPIO,
        {"codigo": codigo, "descricao": descricao, "estado_id": estado_id},
        exclude_id,
    )


add_crud_routes(
    router,
    MUNICIPIO,
    MunicipioCreate,
    MunicipioResponse,
    exclude=("list", "paginated"),
)

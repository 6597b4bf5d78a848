"""Health establishment endpoints.

Route ordering note: literal path segments (reference lists, /paginated,
/check-duplicate) are defined before /{estabelecimento_id}.
"""

from collections.abc import Callable
from typing import Annotated, Any

from fastapi import APIRouter, Path, Query, Request
from pydantic import BaseModel

from core.database import DbSession
from core.ratelimit import READ_LIMIT, WRITE_LIMIT, limiter
from repositories.estabelecimento_repository import DEFAULT_SORT_KEY
from repositories.lookup_repository import (
    HABILITACAO,
    NATUREZA,
    QUALIFICACAO,
    TIPO_ESTABELECIMENTO,
    TURNO,
    LookupConfig,
)
from routes.utils import (
    DEFAULT_LIMIT,
    DEFAULT_PAGE,
    LimitQuery,
    PageQuery,
    SearchQuery,
    add_limited_route,
    http_error,
    to_page,
)
from schemas import (
    CheckDuplicateRequest,
    CheckDuplicateResponse,
    EstabelecimentoResponse,
    EstabelecimentoWrite,
    HabilitacaoReferenceItem,
    MessageResponse,
    Page,
    ReferenceItem,
)
from services.errors import BusinessError
from services.estabelecimento_service import (
    check_duplicate,
    create_estabelecimento,
    delete_estabelecimento,
    get_estabelecimento,
    list_estabelecimentos,
    paginate_estabelecimentos,
    update_estabelecimento,
)
from services.lookup_service import list_lookups

router = APIRouter(prefix="/api/estabelecimentos", tags=["estabelecimentos"])

EstabelecimentoId = Annotated[int, Path(ge=1)]
SortKeyQuery = Annotated[
    str, Query(alias="sortKey", description="Column to sort by")
]
SortOrderQuery = Annotated[str, Query(alias="sortOrder", description="asc or desc")]

_WRITE_ERRORS: dict[int | str, dict[str, Any]] = {
    400: {"description": "Missing field, activation without coordinates or bad id"},
    404: {"description": "Establishment not found"},
    409: {"description": "codigo_unidade, cnes or cnpj already registered"},
}


# --- Reference lists for the establishment form ---


def _reference_endpoint(config: LookupConfig) -> Callable[..., Any]:
    async def list_reference(request: Request, db: DbSession) -> list[Any]:
        return await list_lookups(db, config, order_by=(config.model.id,))

    return list_reference


_REFERENCE_LISTS: tuple[tuple[str, LookupConfig, type[BaseModel]], ...] = (
    ("tipo-estabelecimento", TIPO_ESTABELECIMENTO, ReferenceItem),
    ("natureza", NATUREZA, ReferenceItem),
    ("turnos", TURNO, ReferenceItem),
    ("tipo-habilitacao", HABILITACAO, HabilitacaoReferenceItem),
    ("tipo-qualificacao", QUALIFICACAO, ReferenceItem),
)

for _path, _config, _schema in _REFERENCE_LISTS:
    add_limited_route(
        router,
        f"/{_path}",
        _reference_endpoint(_config),
        name=f"estabelecimento_reference_{_config.name}",
        method="GET",
        limit=READ_LIMIT,
        response_model=list[_schema],
    )


# --- Collection endpoints ---


@router.get("", response_model=list[EstabelecimentoResponse])
@limiter.limit(READ_LIMIT)
async def list_estabelecimentos_endpoint(
    request: Request, db: DbSession, search: SearchQuery = None
) -> list[Any]:
    return await list_estabelecimentos(db, search)


@router.get(
    "/paginated",
    response_model=Page[EstabelecimentoResponse],
    responses={400: {"description": "Invalid pagination parameters"}},
)
@limiter.limit(READ_LIMIT)
async def paginate_estabelecimentos_endpoint(
    request: Request,
    db: DbSession,
    page: PageQuery = DEFAULT_PAGE,
    limit: LimitQuery = DEFAULT_LIMIT,
    search: SearchQuery = None,
    sort_key: SortKeyQuery = DEFAULT_SORT_KEY,
    sort_order: SortOrderQuery = "asc",
) -> Page:
    """Sorted page of establishments; unknown sort keys sort by id."""
    try:
        result = await paginate_estabelecimentos(
            db, page, limit, search, sort_key=sort_key, sort_order=sort_order
        )
    except BusinessError as e:
        raise http_error(e) from e
    return to_page(result, EstabelecimentoResponse)


@router.post(
    "/check-duplicate",
    response_model=CheckDuplicateResponse,
    responses={400: {"description": "Unknown field or empty value"}},
)
@limiter.limit(READ_LIMIT)
async def check_duplicate_endpoint(
    request: Request, db: DbSession, body: CheckDuplicateRequest
) -> CheckDuplicateResponse:
    """Whether codigo_unidade, cnes or cnpj is already registered."""
    try:
        is_duplicate = await check_duplicate(
            db, body.field, body.value, body.exclude_id
        )
    except BusinessError as e:
        raise http_error(e) from e
    return CheckDuplicateResponse(is_duplicate=is_duplicate, field=body.field)


@router.post(
    "",
    response_model=EstabelecimentoResponse,
    status_code=201,
    responses=_WRITE_ERRORS,
)
@limiter.limit(WRITE_LIMIT)
async def create_estabelecimento_endpoint(
    request: Request, db: DbSession, body: EstabelecimentoWrite
) -> Any:
    """Create an establishment with its qualifications and habilitations."""
    try:
        return await create_estabelecimento(db, body.model_dump())
    except BusinessError as e:
        raise http_error(e) from e


# --- Item endpoints ---


@router.get(
    "/{estabelecimento_id}",
    response_model=EstabelecimentoResponse,
    responses={404: {"description": "Establishment not found"}},
)
@limiter.limit(READ_LIMIT)
async def get_estabelecimento_endpoint(
    request: Request, db: DbSession, estabelecimento_id: EstabelecimentoId
) -> Any:
    try:
        return await get_estabelecimento(db, estabelecimento_id)
    except BusinessError as e:
        raise http_error(e) from e


@router.put(
    "/{estabelecimento_id}",
    response_model=EstabelecimentoResponse,
    responses=_WRITE_ERRORS,
)
@limiter.limit(WRITE_LIMIT)
async def update_estabelecimento_endpoint(
    request: Request,
    db: DbSession,
    estabelecimento_id: EstabelecimentoId,
    body: EstabelecimentoWrite,
) -> Any:
    """Replace an establishment.

    ``qualificacoes``/``habilitacoes`` omitted or null keep the stored sets;
    an empty list clears them.
    """
    try:
        return await update_estabelecimento(db, estabelecimento_id, body.model_dump())
    except BusinessError as e:
        raise http_error(e) from e


@router.delete(
    "/{estabelecimento_id}",
    response_model=MessageResponse,
    responses={404: {"description": "Establishment not found"}},
)
@limiter.limit(WRITE_LIMIT)
async def delete_estabelecimento_endpoint(
    request: Request, db: DbSession, estabelecimento_id: EstabelecimentoId
) -> MessageResponse:
    try:
        await delete_estabelecimento(db, estabelecimento_id)
    except BusinessError as e:
        raise http_error(e) from e
    return MessageResponse(message="Estabelecimento deleted successfully")

"""CRUD endpoints for the lookup tables.

Every lookup exposes the same set of endpoints, generated from its
LookupConfig by ``add_crud_routes``:

    GET    {prefix}                 all rows (optional search)
    GET    {prefix}/paginated       {data, meta}
    GET    {prefix}/check-existing  {exists}
    GET    {prefix}/{id}
    POST   {prefix}
    PUT    {prefix}/{id}
    DELETE {prefix}/{id}

Route ordering note: literal segments (/paginated, /check-existing, ...) are
registered before /{item_id}. Entity modules add their extra literal routes
first and call ``add_crud_routes`` last.
"""

from collections.abc import Collection
from typing import Annotated, Any

from fastapi import APIRouter, Path, Query, Request
from pydantic import BaseModel

from core.database import DbSession
from core.ratelimit import READ_LIMIT, WRITE_LIMIT
from repositories.lookup_repository import (
    CBO,
    COMPONENTE,
    ESCOLARIDADE,
    ESTADO,
    NATUREZA,
    PAIS,
    RACA,
    TIPO_ESTABELECIMENTO,
    TURNO,
    LookupConfig,
)
from routes.utils import (
    DEFAULT_LIMIT,
    DEFAULT_PAGE,
    ExcludeIdQuery,
    LimitQuery,
    PageQuery,
    SearchQuery,
    add_limited_route,
    http_error,
    to_page,
)
from schemas import (
    CboCreate,
    CodedLookupResponse,
    ComponenteCreate,
    EscolaridadeCreate,
    EstadoCreate,
    ExistsResponse,
    LookupResponse,
    MessageResponse,
    NaturezaCreate,
    Page,
    PaisCreate,
    RacaCreate,
    TipoEstabelecimentoCreate,
    TurnoCreate,
)
from services.errors import BusinessError
from services.lookup_service import (
    check_existing,
    create_lookup,
    delete_lookup,
    get_lookup,
    list_lookups,
    paginate_lookups,
    update_lookup,
)

ItemId = Annotated[int, Path(ge=1)]
OptionalText = Annotated[str | None, Query()]

_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"description": "Invalid input or unknown parent id"},
    404: {"description": "Not found"},
    409: {"description": "Duplicate natural key or row still referenced"},
}


def add_crud_routes(
    router: APIRouter,
    config: LookupConfig,
    write_schema: type[BaseModel],
    response_schema: type[BaseModel],
    *,
    exclude: Collection[str] = (),
) -> APIRouter:
    """Register list/paginate/get/create/update/delete for one lookup.

    Args:
        exclude: Endpoint kinds ("list", "paginated") the caller registers
            itself, e.g. to accept extra filters.
    """
    name = config.name

    if "list" not in exclude:

        async def list_items(
            request: Request, db: DbSession, search: SearchQuery = None
        ) -> list[Any]:
            return await list_lookups(db, config, search=search)

        add_limited_route(
            router,
            "",
            list_items,
            name=f"list_{name}",
            method="GET",
            limit=READ_LIMIT,
            response_model=list[response_schema],
        )

    if "paginated" not in exclude:

        async def paginate_items(
            request: Request,
            db: DbSession,
            page: PageQuery = DEFAULT_PAGE,
            limit: LimitQuery = DEFAULT_LIMIT,
            search: SearchQuery = None,
        ) -> Page:
            try:
                result = await paginate_lookups(db, config, page, limit, search)
            except BusinessError as e:
                raise http_error(e) from e
            return to_page(result, response_schema)

        add_limited_route(
            router,
            "/paginated",
            paginate_items,
            name=f"paginate_{name}",
            method="GET",
            limit=READ_LIMIT,
            response_model=Page[response_schema],
            responses={400: _ERROR_RESPONSES[400]},
        )

    async def get_item(request: Request, db: DbSession, item_id: ItemId) -> Any:
        try:
            return await get_lookup(db, config, item_id)
        except BusinessError as e:
            raise http_error(e) from e

    add_limited_route(
        router,
        "/{item_id}",
        get_item,
        name=f"get_{name}",
        method="GET",
        limit=READ_LIMIT,
        response_model=response_schema,
        responses={404: _ERROR_RESPONSES[404]},
    )

    async def create_item(request: Request, db: DbSession, body: write_schema) -> Any:
        try:
            return await create_lookup(db, config, body.model_dump())
        except BusinessError as e:
            raise http_error(e) from e

    add_limited_route(
        router,
        "",
        create_item,
        name=f"create_{name}",
        method="POST",
        limit=WRITE_LIMIT,
        response_model=response_schema,
        status_code=201,
        responses={400: _ERROR_RESPONSES[400], 409: _ERROR_RESPONSES[409]},
    )

    async def update_item(
        request: Request, db: DbSession, item_id: ItemId, body: write_schema
    ) -> Any:
        try:
            return await update_lookup(db, config, item_id, body.model_dump())
        except BusinessError as e:
            raise http_error(e) from e

    add_limited_route(
        router,
        "/{item_id}",
        update_item,
        name=f"update_{name}",
        method="PUT",
        limit=WRITE_LIMIT,
        response_model=response_schema,
        responses=_ERROR_RESPONSES,
    )

    async def delete_item(
        request: Request, db: DbSession, item_id: ItemId
    ) -> MessageResponse:
        try:
            await delete_lookup(db, config, item_id)
        except BusinessError as e:
            raise http_error(e) from e
        return MessageResponse(message=f"{config.label} deleted successfully")

    add_limited_route(
        router,
        "/{item_id}",
        delete_item,
        name=f"delete_{name}",
        method="DELETE",
        limit=WRITE_LIMIT,
        response_model=MessageResponse,
        responses={404: _ERROR_RESPONSES[404], 409: _ERROR_RESPONSES[409]},
    )

    return router


async def exists_or_400(
    db: DbSession,
    config: LookupConfig,
    values: dict[str, Any],
    exclude_id: int | None,
) -> ExistsResponse:
    try:
        exists = await check_existing(db, config, values, exclude_id)
    except BusinessError as e:
        raise http_error(e) from e
    return ExistsResponse(exists=exists)


def add_descricao_check_route(router: APIRouter, config: LookupConfig) -> None:
    """GET /check-existing?descricao=...&excludeId=..."""

    async def check_descricao(
        request: Request,
        db: DbSession,
        descricao: OptionalText = None,
        exclude_id: ExcludeIdQuery = None,
    ) -> ExistsResponse:
        return await exists_or_400(
            db, config, {"descricao": descricao}, exclude_id
        )

    add_limited_route(
        router,
        "/check-existing",
        check_descricao,
        name=f"check_existing_{config.name}",
        method="GET",
        limit=READ_LIMIT,
        response_model=ExistsResponse,
        responses={400: {"description": "descricao is required"}},
    )


def add_coded_check_route(router: APIRouter, config: LookupConfig) -> None:
    """GET /check-existing?codigo=...|descricao=...; codigo is checked first."""

    async def check_coded(
        request: Request,
        db: DbSession,
        codigo: OptionalText = None,
        descricao: OptionalText = None,
        exclude_id: ExcludeIdQuery = None,
    ) -> ExistsResponse:
        return await exists_or_400(
            db, config, {"codigo": codigo, "descricao": descricao}, exclude_id
        )

    add_limited_route(
        router,
        "/check-existing",
        check_coded,
        name=f"check_existing_{config.name}",
        method="GET",
        limit=READ_LIMIT,
        response_model=ExistsResponse,
        responses={400: {"description": "codigo or descricao is required"}},
    )


def build_descricao_router(
    prefix: str,
    tag: str,
    config: LookupConfig,
    write_schema: type[BaseModel],
) -> APIRouter:
    router = APIRouter(prefix=prefix, tags=[tag])
    add_descricao_check_route(router, config)
    return add_crud_routes(router, config, write_schema, LookupResponse)


def build_coded_router(
    prefix: str,
    tag: str,
    config: LookupConfig,
    write_schema: type[BaseModel],
) -> APIRouter:
    router = APIRouter(prefix=prefix, tags=[tag])
    add_coded_check_route(router, config)
    return add_crud_routes(router, config, write_schema, CodedLookupResponse)


componentes_router = build_descricao_router(
    "/api/componentes", "componentes", COMPONENTE, ComponenteCreate
)
tipo_estabelecimento_router = build_descricao_router(
    "/api/tipo-estabelecimento",
    "tipo-estabelecimento",
    TIPO_ESTABELECIMENTO,
    TipoEstabelecimentoCreate,
)
natureza_router = build_descricao_router(
    "/api/natureza", "natureza", NATUREZA, NaturezaCreate
)
turnos_router = build_descricao_router("/api/turnos", "turnos", TURNO, TurnoCreate)
escolaridades_router = build_descricao_router(
    "/api/escolaridades", "escolaridades", ESCOLARIDADE, EscolaridadeCreate
)
racas_router = build_descricao_router("/api/racas", "racas", RACA, RacaCreate)
paises_router = build_descricao_router("/api/paises", "paises", PAIS, PaisCreate)

estados_router = build_coded_router("/api/estados", "estados", ESTADO, EstadoCreate)
cbo_router = build_coded_router("/api/cbo", "cbo", CBO, CboCreate)

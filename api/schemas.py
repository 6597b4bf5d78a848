"""Pydantic schemas for API request/response validation."""

from datetime import datetime
from typing import Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

T = TypeVar("T")


# =============================================================================
# Shared envelopes
# =============================================================================


class PaginationMeta(BaseModel):
    """Pagination block returned next to every paginated ``data`` list."""

    total: int
    total_pages: int = Field(serialization_alias="totalPages")
    page: int
    limit: int


class Page(BaseModel, Generic[T]):
    """``{data: [...], meta: {total, totalPages, page, limit}}``."""

    data: list[T]
    meta: PaginationMeta


class ExistsResponse(BaseModel):
    exists: bool


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    """Error body shape used by every non-2xx response."""

    detail: str
    code: str | None = None


class _LookupInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)


# =============================================================================
# Descricao-only lookups
# =============================================================================


class LookupResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    descricao: str


class ComponenteCreate(_LookupInput):
    descricao: str = Field(min_length=1, max_length=100)


class TipoEstabelecimentoCreate(_LookupInput):
    descricao: str = Field(min_length=1, max_length=100)


class NaturezaCreate(_LookupInput):
    descricao: str = Field(min_length=1, max_length=100)


class TurnoCreate(_LookupInput):
    descricao: str = Field(min_length=1, max_length=45)


class EscolaridadeCreate(_LookupInput):
    descricao: str = Field(min_length=1, max_length=100)


class RacaCreate(_LookupInput):
    descricao: str = Field(min_length=1, max_length=15)


class PaisCreate(_LookupInput):
    descricao: str = Field(min_length=1, max_length=50)


# =============================================================================
# Coded lookups
# =============================================================================


class CodedLookupResponse(LookupResponse):
    codigo: str


class EstadoCreate(_LookupInput):
    codigo: str = Field(min_length=1, max_length=5)
    descricao: str = Field(min_length=1, max_length=45)


class CboCreate(_LookupInput):
    codigo: str = Field(min_length=1, max_length=15)
    descricao: str = Field(min_length=1, max_length=100)


class HabilitacaoCreate(_LookupInput):
    """Habilitation codes are stored uppercase: letters, digits and hyphens."""

    codigo: str = Field(min_length=1, max_length=20, pattern=r"^[A-Z0-9\-]+$")
    descricao: str = Field(min_length=1, max_length=255)

    @field_validator("codigo", mode="before")
    @classmethod
    def normalize_codigo(cls, v: object) -> object:
        if isinstance(v, str):
            return v.strip().upper()
        return v


class MunicipioCreate(_LookupInput):
    codigo: str = Field(min_length=1, max_length=10)
    descricao: str = Field(min_length=1, max_length=60)
    estado_id: int = Field(ge=1)


class MunicipioResponse(CodedLookupResponse):
    estado_id: int
    estado_descricao: str | None = None


class QualificacaoCreate(_LookupInput):
    descricao: str = Field(min_length=1, max_length=255)
    componente_id: int = Field(ge=1)


class QualificacaoResponse(LookupResponse):
    componente_id: int
    componente_descricao: str | None = None


# =============================================================================
# Estabelecimento
# =============================================================================


class EstabelecimentoWrite(BaseModel):
    """Create/update payload.

    Strings are stripped before length limits apply. Blank-to-null and
    required-field checks happen in the service so that the same rules apply
    however the payload arrives. On update, ``qualificacoes`` and
    ``habilitacoes`` left as null keep the stored associations unchanged. A null
    ``ativo`` is stored as ``N``.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    codigo_unidade: str | None = Field(default=None, max_length=20)
    nome: str | None = Field(default=None, max_length=255)
    cnes: str | None = Field(default=None, max_length=20)
    cnpj: str | None = Field(default=None, max_length=20)
    cidade: str | None = Field(default=None, max_length=100)
    logradouro: str | None = Field(default=None, max_length=255)
    bairro: str | None = Field(default=None, max_length=100)
    numero: str | None = Field(default=None, max_length=20)
    latitude: str | None = Field(default=None, max_length=30)
    longitude: str | None = Field(default=None, max_length=30)
    ativo: Literal["S", "N"] | None = "N"
    tipo_estabelecimento_id: int | None = None
    tipo_natureza_id: int | None = None
    tipo_turno_id: int | None = None
    qualificacoes: list[int] | None = None
    habilitacoes: list[int] | None = None

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def coerce_coordinate(cls, v: object) -> object:
        # Clients send coordinates as numbers or strings
        if isinstance(v, int | float) and not isinstance(v, bool):
            return str(v)
        return v


class HabilitacaoRef(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    codigo: str
    descricao: str


class EstabelecimentoResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    codigo_unidade: str | None = None
    nome: str
    cnes: str | None = None
    cnpj: str | None = None
    cidade: str | None = None
    logradouro: str | None = None
    bairro: str | None = None
    numero: str | None = None
    latitude: str | None = None
    longitude: str | None = None
    ativo: str
    tipo_estabelecimento_id: int
    tipo_natureza_id: int
    tipo_turno_id: int | None = None
    tipo_estabelecimento_descricao: str | None = None
    tipo_natureza_descricao: str | None = None
    tipo_turno_descricao: str | None = None
    habilitacoes: list[HabilitacaoRef] = []
    qualificacoes: list[int] = []
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CheckDuplicateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    field: Literal["codigo_unidade", "cnes", "cnpj"]
    value: str = Field(min_length=1)
    exclude_id: int | None = Field(default=None, alias="excludeId")


class CheckDuplicateResponse(BaseModel):
    is_duplicate: bool = Field(serialization_alias="isDuplicate")
    field: str


class ReferenceItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    descricao: str


class HabilitacaoReferenceItem(ReferenceItem):
    codigo: str


# =============================================================================
# Health
# =============================================================================


class HealthResponse(BaseModel):
    status: str
    service: str


class PoolStatusResponse(BaseModel):
    pool_size: int
    checked_out: int
    overflow: int
    checked_in: int


class DetailedHealthResponse(HealthResponse):
    database: bool
    pool: PoolStatusResponse | None = None

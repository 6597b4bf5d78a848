"""Generic repository for the reference (lookup) tables.

Every lookup table follows the same pattern: list, paginate with search,
get by id, insert, update, delete and natural-key existence checks. A
``LookupConfig`` describes one table; ``LookupRepository`` runs the queries.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import Select, and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from core.database import Base
from models import (
    Componente,
    TipoCbo,
    TipoEscolaridade,
    TipoEstabelecimento,
    TipoEstado,
    TipoHabilitacao,
    TipoMunicipio,
    TipoNatureza,
    TipoPais,
    TipoQualificacao,
    TipoRaca,
    TipoTurno,
)
from repositories.utils import build_search_filter, log_slow_query, page_offset


@dataclass(frozen=True)
class LookupConfig:
    """Describes one lookup table.

    Attributes:
        name: Short identifier used in logs (``"estado"``).
        label: Human label used in error messages (``"Estado"``).
        model: Mapped class.
        unique_keys: Natural keys, each a tuple of attribute names. A key with
            several attributes is unique as a combination.
        search_columns: Columns matched by the ``search`` term.
        order_by: Default ordering for list and paginate.
        search_joins: Relationships joined so search can reach parent columns.
        parents: Foreign-key attribute -> (parent model, parent label), checked
            for existence before writes.
        uppercase_fields: Attributes normalized to uppercase before use.
    """

    name: str
    label: str
    model: type[Base]
    unique_keys: tuple[tuple[str, ...], ...]
    search_columns: tuple[Any, ...]
    order_by: tuple[Any, ...] = ()
    search_joins: tuple[Any, ...] = ()
    parents: Mapping[str, tuple[type[Base], str]] = field(default_factory=dict)
    uppercase_fields: tuple[str, ...] = ()

    @property
    def key_fields(self) -> tuple[str, ...]:
        seen: list[str] = []
        for key in self.unique_keys:
            for attr in key:
                if attr not in seen:
                    seen.append(attr)
        return tuple(seen)

    def column(self, attr: str) -> InstrumentedAttribute:
        return getattr(self.model, attr)


def _descricao_lookup(
    name: str, label: str, model: type[Base], **kwargs
) -> LookupConfig:
    return LookupConfig(
        name=name,
        label=label,
        model=model,
        unique_keys=(("descricao",),),
        search_columns=(model.descricao,),
        order_by=kwargs.pop("order_by", (model.id,)),
        **kwargs,
    )


COMPONENTE = _descricao_lookup("componente", "Componente", Componente)
TIPO_ESTABELECIMENTO = _descricao_lookup(
    "tipo_estabelecimento",
    "Tipo de estabelecimento",
    TipoEstabelecimento,
    order_by=(TipoEstabelecimento.descricao,),
)
NATUREZA = _descricao_lookup("natureza", "Natureza", TipoNatureza)
TURNO = _descricao_lookup("turno", "Turno", TipoTurno)
ESCOLARIDADE = _descricao_lookup("escolaridade", "Escolaridade", TipoEscolaridade)
RACA = _descricao_lookup("raca", "Raça", TipoRaca)
PAIS = _descricao_lookup("pais", "País", TipoPais)

ESTADO = LookupConfig(
    name="estado",
    label="Estado",
    model=TipoEstado,
    unique_keys=(("codigo",), ("descricao",)),
    search_columns=(TipoEstado.codigo, TipoEstado.descricao),
    order_by=(TipoEstado.id,),
)

MUNICIPIO = LookupConfig(
    name="municipio",
    label="Município",
    model=TipoMunicipio,
    unique_keys=(("codigo",), ("descricao", "estado_id")),
    search_columns=(
        TipoMunicipio.codigo,
        TipoMunicipio.descricao,
        TipoEstado.descricao,
    ),
    order_by=(TipoMunicipio.id,),
    search_joins=(TipoMunicipio.estado,),
    parents={"estado_id": (TipoEstado, "Estado")},
)

CBO = LookupConfig(
    name="cbo",
    label="CBO",
    model=TipoCbo,
    unique_keys=(("codigo",), ("descricao",)),
    search_columns=(TipoCbo.codigo, TipoCbo.descricao),
    order_by=(TipoCbo.id,),
)

HABILITACAO = LookupConfig(
    name="habilitacao",
    label="Habilitação",
    model=TipoHabilitacao,
    unique_keys=(("codigo",), ("descricao",)),
    search_columns=(TipoHabilitacao.codigo, TipoHabilitacao.descricao),
    order_by=(TipoHabilitacao.codigo,),
    uppercase_fields=("codigo",),
)

QUALIFICACAO = LookupConfig(
    name="qualificacao",
    label="Qualificação",
    model=TipoQualificacao,
    unique_keys=(("descricao", "componente_id"),),
    search_columns=(TipoQualificacao.descricao, Componente.descricao),
    order_by=(TipoQualificacao.id,),
    search_joins=(TipoQualificacao.componente,),
    parents={"componente_id": (Componente, "Componente")},
)


class LookupRepository:
    """Repository for one lookup table, driven by its LookupConfig."""

    def __init__(self, db: AsyncSession, config: LookupConfig):
        self.db = db
        self.config = config

    def _filtered(
        self,
        stmt: Select,
        search: str | None,
        filters: Mapping[str, Any] | None,
    ) -> Select:
        search_clause = build_search_filter(self.config.search_columns, search)
        if search_clause is not None:
            for relationship in self.config.search_joins:
                stmt = stmt.outerjoin(relationship)
            stmt = stmt.where(search_clause)
        for attr, value in (filters or {}).items():
            if value is not None:
                stmt = stmt.where(self.config.column(attr) == value)
        return stmt

    @log_slow_query("lookup_list")
    async def list_all(
        self,
        search: str | None = None,
        filters: Mapping[str, Any] | None = None,
        order_by: Sequence[Any] | None = None,
    ) -> list[Any]:
        stmt = self._filtered(select(self.config.model), search, filters)
        stmt = stmt.order_by(*(order_by or self.config.order_by))
        result = await self.db.execute(stmt)
        return list(result.scalars().unique().all())

    @log_slow_query("lookup_paginate")
    async def paginate(
        self,
        page: int,
        limit: int,
        search: str | None = None,
        filters: Mapping[str, Any] | None = None,
    ) -> tuple[list[Any], int]:
        """Return one page of rows and the total row count for the filter."""
        count_stmt = self._filtered(
            select(func.count()).select_from(self.config.model), search, filters
        )
        total = (await self.db.execute(count_stmt)).scalar_one()

        stmt = self._filtered(select(self.config.model), search, filters)
        stmt = (
            stmt.order_by(*self.config.order_by)
            .limit(limit)
            .offset(page_offset(page, limit))
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().unique().all()), total

    @log_slow_query("lookup_get_by_id")
    async def get_by_id(self, item_id: int, *, refresh: bool = False) -> Any | None:
        stmt = select(self.config.model).where(self.config.model.id == item_id)
        if refresh:
            stmt = stmt.execution_options(populate_existing=True)
        result = await self.db.execute(stmt)
        return result.scalars().unique().one_or_none()

    @log_slow_query("lookup_exists")
    async def exists(
        self, values: Mapping[str, Any], exclude_id: int | None = None
    ) -> bool:
        """True if a row matches every attribute in ``values`` (minus exclude_id)."""
        model = self.config.model
        conditions = [
            self.config.column(attr) == value for attr, value in values.items()
        ]
        if exclude_id is not None:
            conditions.append(model.id != exclude_id)
        stmt = select(model.id).where(and_(*conditions)).limit(1)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def parent_exists(self, parent_model: type[Base], parent_id: int) -> bool:
        result = await self.db.execute(
            select(parent_model.id).where(parent_model.id == parent_id)
        )
        return result.scalar_one_or_none() is not None

    @log_slow_query("lookup_create")
    async def create(self, values: Mapping[str, Any]) -> Any:
        """Insert a row. Does NOT commit; caller owns the transaction."""
        item = self.config.model(**values)
        self.db.add(item)
        await self.db.flush()
        return await self.get_by_id(item.id, refresh=True)

    @log_slow_query("lookup_update")
    async def update(self, item: Any, values: Mapping[str, Any]) -> Any:
        for attr, value in values.items():
            setattr(item, attr, value)
        await self.db.flush()
        return await self.get_by_id(item.id, refresh=True)

    @log_slow_query("lookup_delete")
    async def delete(self, item: Any) -> None:
        await self.db.delete(item)
        await self.db.flush()

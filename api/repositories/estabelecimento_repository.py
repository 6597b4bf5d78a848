"""Estabelecimento repository for database operations.

Association rows (qualifications, habilitations) are written explicitly here;
the service decides which ids to add and remove.
"""

from collections.abc import Iterable, Mapping
from typing import Any, Literal

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import Base
from models import (
    Estabelecimento,
    EstabelecimentoHabilitacao,
    EstabelecimentoQualificacao,
    TipoEstabelecimento,
    TipoNatureza,
    TipoTurno,
)
from repositories.utils import build_search_filter, log_slow_query, page_offset

SEARCH_COLUMNS = (
    Estabelecimento.nome,
    Estabelecimento.cidade,
    Estabelecimento.cnes,
    Estabelecimento.cnpj,
)

DEFAULT_SORT_KEY = "idestabelecimento"

SORT_COLUMNS = {
    "idestabelecimento": Estabelecimento.id,
    "codigo_unidade": Estabelecimento.codigo_unidade,
    "nome": Estabelecimento.nome,
    "cnes": Estabelecimento.cnes,
    "cnpj": Estabelecimento.cnpj,
    "cidade": Estabelecimento.cidade,
    "logradouro": Estabelecimento.logradouro,
    "bairro": Estabelecimento.bairro,
    "numero": Estabelecimento.numero,
    "latitude": Estabelecimento.latitude,
    "longitude": Estabelecimento.longitude,
    "ativo": Estabelecimento.ativo,
    "tipo_estabelecimento_descricao": TipoEstabelecimento.descricao,
    "tipo_natureza_descricao": TipoNatureza.descricao,
    "tipo_turno_descricao": TipoTurno.descricao,
}

AssociationName = Literal["qualificacoes", "habilitacoes"]

# association -> (junction model, junction column holding the lookup id)
_ASSOCIATIONS = {
    "qualificacoes": (EstabelecimentoQualificacao, "qualificacao_id"),
    "habilitacoes": (EstabelecimentoHabilitacao, "habilitacao_id"),
}


class EstabelecimentoRepository:
    """Repository for Estabelecimento and its association rows."""

    def __init__(self, db: AsyncSession):
        self.db = db

    @log_slow_query("estabelecimento_get_by_id")
    async def get_by_id(
        self, estabelecimento_id: int, *, refresh: bool = False
    ) -> Estabelecimento | None:
        """Get an establishment with descriptions and associations loaded.

        Pass refresh=True after writing association rows so the collections
        already held in the session are reloaded.
        """
        stmt = select(Estabelecimento).where(Estabelecimento.id == estabelecimento_id)
        if refresh:
            stmt = stmt.execution_options(populate_existing=True)
        result = await self.db.execute(stmt)
        return result.scalars().unique().one_or_none()

    @log_slow_query("estabelecimento_list")
    async def list_all(
        self, search: str | None = None, *, order_by_nome: bool = False
    ) -> list[Estabelecimento]:
        stmt = select(Estabelecimento)
        search_clause = build_search_filter(SEARCH_COLUMNS, search)
        if search_clause is not None:
            stmt = stmt.where(search_clause)
        stmt = stmt.order_by(
            Estabelecimento.nome if order_by_nome else Estabelecimento.id
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().unique().all())

    @log_slow_query("estabelecimento_paginate")
    async def paginate(
        self,
        page: int,
        limit: int,
        search: str | None = None,
        sort_key: str = DEFAULT_SORT_KEY,
        sort_order: str = "asc",
    ) -> tuple[list[Estabelecimento], int]:
        """Return one sorted page and the total count.

        Unknown sort keys fall back to idestabelecimento; any sort order other
        than "desc" sorts ascending.
        """
        search_clause = build_search_filter(SEARCH_COLUMNS, search)

        count_stmt = select(func.count()).select_from(Estabelecimento)
        if search_clause is not None:
            count_stmt = count_stmt.where(search_clause)
        total = (await self.db.execute(count_stmt)).scalar_one()

        sort_column = SORT_COLUMNS.get(sort_key, SORT_COLUMNS[DEFAULT_SORT_KEY])
        ordering = sort_column.desc() if sort_order == "desc" else sort_column.asc()

        stmt = (
            select(Estabelecimento)
            .outerjoin(
                TipoEstabelecimento,
                Estabelecimento.tipo_estabelecimento_id == TipoEstabelecimento.id,
            )
            .outerjoin(
                TipoNatureza, Estabelecimento.tipo_natureza_id == TipoNatureza.id
            )
            .outerjoin(TipoTurno, Estabelecimento.tipo_turno_id == TipoTurno.id)
        )
        if search_clause is not None:
            stmt = stmt.where(search_clause)
        stmt = (
            stmt.order_by(ordering, Estabelecimento.id.asc())
            .limit(limit)
            .offset(page_offset(page, limit))
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().unique().all()), total

    @log_slow_query("estabelecimento_value_exists")
    async def value_exists(
        self, field: str, value: str, exclude_id: int | None = None
    ) -> bool:
        """True if another establishment already uses ``value`` for ``field``."""
        column = getattr(Estabelecimento, field)
        stmt = select(Estabelecimento.id).where(column == value)
        if exclude_id is not None:
            stmt = stmt.where(Estabelecimento.id != exclude_id)
        result = await self.db.execute(stmt.limit(1))
        return result.scalar_one_or_none() is not None

    async def reference_exists(self, model: type[Base], item_id: int) -> bool:
        result = await self.db.execute(select(model.id).where(model.id == item_id))
        return result.scalar_one_or_none() is not None

    async def existing_ids(self, model: type[Base], ids: Iterable[int]) -> set[int]:
        """Subset of ``ids`` present in ``model``'s table."""
        wanted = set(ids)
        if not wanted:
            return set()
        result = await self.db.execute(select(model.id).where(model.id.in_(wanted)))
        return set(result.scalars().all())

    @log_slow_query("estabelecimento_create")
    async def create(self, values: Mapping[str, Any]) -> Estabelecimento:
        """Insert the main row. Does NOT commit; caller owns the transaction."""
        estabelecimento = Estabelecimento(**values)
        self.db.add(estabelecimento)
        await self.db.flush()
        return estabelecimento

    @log_slow_query("estabelecimento_update")
    async def update(
        self, estabelecimento: Estabelecimento, values: Mapping[str, Any]
    ) -> Estabelecimento:
        for attr, value in values.items():
            setattr(estabelecimento, attr, value)
        await self.db.flush()
        return estabelecimento

    @log_slow_query("estabelecimento_association_ids")
    async def get_association_ids(
        self, estabelecimento_id: int, association: AssociationName
    ) -> set[int]:
        link_model, id_attr = _ASSOCIATIONS[association]
        result = await self.db.execute(
            select(getattr(link_model, id_attr)).where(
                link_model.estabelecimento_id == estabelecimento_id
            )
        )
        return set(result.scalars().all())

    @log_slow_query("estabelecimento_add_associations")
    async def add_associations(
        self,
        estabelecimento_id: int,
        association: AssociationName,
        ids: Iterable[int],
    ) -> None:
        link_model, id_attr = _ASSOCIATIONS[association]
        links = [
            link_model(estabelecimento_id=estabelecimento_id, **{id_attr: item_id})
            for item_id in sorted(set(ids))
        ]
        if not links:
            return
        self.db.add_all(links)
        await self.db.flush()

    @log_slow_query("estabelecimento_remove_associations")
    async def remove_associations(
        self,
        estabelecimento_id: int,
        association: AssociationName,
        ids: Iterable[int] | None = None,
    ) -> int:
        """Delete association rows; all of them when ``ids`` is None."""
        link_model, id_attr = _ASSOCIATIONS[association]
        stmt = delete(link_model).where(
            link_model.estabelecimento_id == estabelecimento_id
        )
        if ids is not None:
            wanted = set(ids)
            if not wanted:
                return 0
            stmt = stmt.where(getattr(link_model, id_attr).in_(wanted))
        result = await self.db.execute(stmt)
        return result.rowcount or 0

    @log_slow_query("estabelecimento_delete")
    async def delete(self, estabelecimento: Estabelecimento) -> None:
        """Delete association rows, then the establishment itself."""
        for association in _ASSOCIATIONS:
            await self.remove_associations(estabelecimento.id, association)
        await self.db.delete(estabelecimento)
        await self.db.flush()

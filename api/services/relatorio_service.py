"""Establishment report: full listing, sorted pages and export.

The report reads the same rows as the CRUD listing. Export is ordered by
name and can be rendered as CSV for spreadsheet users.
"""

import csv
import io
import logging
from collections.abc import Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from models import Estabelecimento
from services.estabelecimento_service import (
    list_estabelecimentos,
    paginate_estabelecimentos,
)
from services.pagination import PageResult

logger = logging.getLogger(__name__)

CSV_COLUMNS = (
    "idestabelecimento",
    "codigo_unidade",
    "nome",
    "cnes",
    "cnpj",
    "cidade",
    "logradouro",
    "bairro",
    "numero",
    "latitude",
    "longitude",
    "ativo",
    "tipo_estabelecimento",
    "natureza",
    "turno",
    "habilitacoes",
    "qualificacoes",
)


async def get_report(
    db: AsyncSession, search: str | None = None
) -> list[Estabelecimento]:
    return await list_estabelecimentos(db, search)


async def get_report_page(
    db: AsyncSession,
    page: int,
    limit: int,
    search: str | None = None,
    sort_key: str = "idestabelecimento",
    sort_order: str = "asc",
) -> PageResult[Estabelecimento]:
    return await paginate_estabelecimentos(
        db, page, limit, search, sort_key=sort_key, sort_order=sort_order
    )


async def get_export_rows(
    db: AsyncSession, search: str | None = None
) -> list[Estabelecimento]:
    rows = await list_estabelecimentos(db, search, order_by_nome=True)
    logger.info("relatorio.exported", extra={"rows": len(rows), "search": search})
    return rows


def _csv_row(estabelecimento: Estabelecimento) -> list[str]:
    return [
        str(estabelecimento.id),
        estabelecimento.codigo_unidade or "",
        estabelecimento.nome,
        estabelecimento.cnes or "",
        estabelecimento.cnpj or "",
        estabelecimento.cidade or "",
        estabelecimento.logradouro or "",
        estabelecimento.bairro or "",
        estabelecimento.numero or "",
        estabelecimento.latitude or "",
        estabelecimento.longitude or "",
        estabelecimento.ativo,
        estabelecimento.tipo_estabelecimento_descricao or "",
        estabelecimento.tipo_natureza_descricao or "",
        estabelecimento.tipo_turno_descricao or "",
        ";".join(h.codigo for h in estabelecimento.habilitacoes),
        ";".join(str(q) for q in estabelecimento.qualificacoes),
    ]


def render_csv(estabelecimentos: Iterable[Estabelecimento]) -> str:
    """Render establishments as CSV with a header row.

    Multi-valued columns (habilitation codes, qualification ids) are joined
    with ``;``.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for estabelecimento in estabelecimentos:
        writer.writerow(_csv_row(estabelecimento))
    return buffer.getvalue()

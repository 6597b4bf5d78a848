"""Estabelecimento service: the aggregate write path and its read models.

Create and update run entirely on the request session, so every step below
commits or rolls back together:

    trim -> required fields -> activation rule -> duplicate keys
        -> type/nature/shift references -> main row -> association sets

Association sets (qualifications, habilitations) are reconciled by set
difference: only ids that were added or removed touch the junction tables.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.telemetry import track_operation
from core.wide_event import set_wide_event_fields
from models import (
    Estabelecimento,
    TipoEstabelecimento,
    TipoHabilitacao,
    TipoNatureza,
    TipoQualificacao,
    TipoTurno,
)
from repositories.estabelecimento_repository import (
    DEFAULT_SORT_KEY,
    AssociationName,
    EstabelecimentoRepository,
)
from services.errors import DuplicateError, NotFoundError, ValidationError
from services.pagination import PageResult, normalize_pagination

logger = logging.getLogger(__name__)

LABEL = "Estabelecimento"

STRING_FIELDS = (
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
)

MAIN_FIELDS = STRING_FIELDS + (
    "ativo",
    "tipo_estabelecimento_id",
    "tipo_natureza_id",
    "tipo_turno_id",
)

UNIQUE_FIELDS = {
    "codigo_unidade": "Código da unidade",
    "cnes": "CNES",
    "cnpj": "CNPJ",
}

_REFERENCES = (
    ("tipo_estabelecimento_id", TipoEstabelecimento, "Tipo de estabelecimento"),
    ("tipo_natureza_id", TipoNatureza, "Natureza"),
    ("tipo_turno_id", TipoTurno, "Turno"),
)

_ASSOCIATION_TARGETS: dict[AssociationName, tuple[type, str]] = {
    "qualificacoes": (TipoQualificacao, "Qualificação"),
    "habilitacoes": (TipoHabilitacao, "Habilitação"),
}


@dataclass(frozen=True)
class AssociationDiff:
    """Junction rows to insert and delete to reach the desired id set."""

    to_add: frozenset[int]
    to_remove: frozenset[int]

    @property
    def unchanged(self) -> bool:
        return not self.to_add and not self.to_remove


def diff_association_ids(
    current: Iterable[int], desired: Iterable[int]
) -> AssociationDiff:
    current_set = frozenset(current)
    desired_set = frozenset(desired)
    return AssociationDiff(
        to_add=desired_set - current_set,
        to_remove=current_set - desired_set,
    )


def trim_fields(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Strip surrounding whitespace from strings; blank strings become None."""
    trimmed: dict[str, Any] = {}
    for key, value in payload.items():
        if isinstance(value, str):
            value = value.strip() or None
        trimmed[key] = value
    return trimmed


def validate_rules(data: Mapping[str, Any]) -> None:
    """Required fields and the activation rule.

    Raises:
        ValidationError: With every violated rule in one message.
    """
    errors: list[str] = []
    if not data.get("nome"):
        errors.append("Nome is required")
    if data.get("tipo_estabelecimento_id") is None:
        errors.append("Tipo de estabelecimento is required")
    if data.get("tipo_natureza_id") is None:
        errors.append("Natureza is required")
    if (data.get("ativo") or "N") not in ("S", "N"):
        errors.append("Ativo must be 'S' or 'N'")
    if data.get("ativo") == "S" and (
        not data.get("latitude") or not data.get("longitude")
    ):
        errors.append("Latitude and longitude are required to activate")
    if errors:
        raise ValidationError("; ".join(errors))


async def _ensure_no_duplicates(
    repo: EstabelecimentoRepository,
    data: Mapping[str, Any],
    exclude_id: int | None = None,
) -> None:
    for field, label in UNIQUE_FIELDS.items():
        value = data.get(field)
        if not value:
            continue
        if await repo.value_exists(field, value, exclude_id):
            raise DuplicateError(
                f"{label} '{value}' is already registered to another establishment",
                field=field,
            )


async def _ensure_references_exist(
    repo: EstabelecimentoRepository, data: Mapping[str, Any]
) -> None:
    for attr, model, label in _REFERENCES:
        ref_id = data.get(attr)
        if ref_id is None:
            continue
        if not await repo.reference_exists(model, ref_id):
            raise ValidationError(f"{label} {ref_id} does not exist")


async def reconcile_association(
    repo: EstabelecimentoRepository,
    estabelecimento_id: int,
    association: AssociationName,
    desired: Iterable[int],
) -> AssociationDiff:
    """Bring one association set to ``desired`` with minimal row changes.

    Raises:
        ValidationError: An id to be added does not exist in its lookup table.
    """
    current = await repo.get_association_ids(estabelecimento_id, association)
    diff = diff_association_ids(current, desired)
    if diff.unchanged:
        return diff

    model, label = _ASSOCIATION_TARGETS[association]
    missing = diff.to_add - await repo.existing_ids(model, diff.to_add)
    if missing:
        ids = ", ".join(str(i) for i in sorted(missing))
        raise ValidationError(f"{label} not found: {ids}")

    await repo.remove_associations(estabelecimento_id, association, diff.to_remove)
    await repo.add_associations(estabelecimento_id, association, diff.to_add)
    return diff


def _main_values(data: Mapping[str, Any]) -> dict[str, Any]:
    values = {field: data.get(field) for field in MAIN_FIELDS}
    values["ativo"] = values["ativo"] or "N"
    return values


async def _write_main_row(
    repo: EstabelecimentoRepository,
    data: Mapping[str, Any],
    estabelecimento: Estabelecimento | None = None,
) -> Estabelecimento:
    values = _main_values(data)
    try:
        if estabelecimento is None:
            return await repo.create(values)
        return await repo.update(estabelecimento, values)
    except IntegrityError as e:
        # A concurrent writer took codigo_unidade/cnes/cnpj after our check
        raise DuplicateError(
            "Código da unidade, CNES or CNPJ is already registered "
            "to another establishment"
        ) from e


@track_operation("estabelecimento_create")
async def create_estabelecimento(
    db: AsyncSession, payload: Mapping[str, Any]
) -> Estabelecimento:
    """Create an establishment with its qualification and habilitation sets.

    Raises:
        ValidationError: Required field missing, activation without
            coordinates, or a referenced id that does not exist.
        DuplicateError: codigo_unidade, cnes or cnpj already in use.
    """
    data = trim_fields(payload)
    validate_rules(data)

    repo = EstabelecimentoRepository(db)
    await _ensure_no_duplicates(repo, data)
    await _ensure_references_exist(repo, data)

    estabelecimento = await _write_main_row(repo, data)

    for association in _ASSOCIATION_TARGETS:
        await reconcile_association(
            repo, estabelecimento.id, association, data.get(association) or ()
        )

    logger.info(
        "estabelecimento.created",
        extra={"estabelecimento_id": estabelecimento.id},
    )
    set_wide_event_fields(estabelecimento_id=estabelecimento.id)
    created = await repo.get_by_id(estabelecimento.id, refresh=True)
    assert created is not None
    return created


@track_operation("estabelecimento_update")
async def update_estabelecimento(
    db: AsyncSession, estabelecimento_id: int, payload: Mapping[str, Any]
) -> Estabelecimento:
    """Replace an establishment's fields and reconcile its association sets.

    An association given as None is left untouched; an empty list clears it.

    Raises:
        NotFoundError: No establishment with this id.
        ValidationError: As for create.
        DuplicateError: As for create, ignoring the establishment itself.
    """
    repo = EstabelecimentoRepository(db)
    estabelecimento = await repo.get_by_id(estabelecimento_id)
    if estabelecimento is None:
        raise NotFoundError(LABEL, estabelecimento_id)

    data = trim_fields(payload)
    validate_rules(data)

    await _ensure_no_duplicates(repo, data, exclude_id=estabelecimento_id)
    await _ensure_references_exist(repo, data)

    await _write_main_row(repo, data, estabelecimento)

    changes: dict[str, int] = {}
    for association in _ASSOCIATION_TARGETS:
        desired = data.get(association)
        if desired is None:
            continue
        diff = await reconcile_association(
            repo, estabelecimento_id, association, desired
        )
        changes[f"{association}_added"] = len(diff.to_add)
        changes[f"{association}_removed"] = len(diff.to_remove)

    logger.info(
        "estabelecimento.updated",
        extra={"estabelecimento_id": estabelecimento_id, **changes},
    )
    set_wide_event_fields(estabelecimento_id=estabelecimento_id)
    updated = await repo.get_by_id(estabelecimento_id, refresh=True)
    assert updated is not None
    return updated


@track_operation("estabelecimento_delete")
async def delete_estabelecimento(db: AsyncSession, estabelecimento_id: int) -> None:
    """Delete an establishment and its association rows.

    Raises:
        NotFoundError: No establishment with this id.
    """
    repo = EstabelecimentoRepository(db)
    estabelecimento = await repo.get_by_id(estabelecimento_id)
    if estabelecimento is None:
        raise NotFoundError(LABEL, estabelecimento_id)

    await repo.delete(estabelecimento)
    logger.info(
        "estabelecimento.deleted", extra={"estabelecimento_id": estabelecimento_id}
    )
    set_wide_event_fields(estabelecimento_id=estabelecimento_id)


async def get_estabelecimento(
    db: AsyncSession, estabelecimento_id: int
) -> Estabelecimento:
    estabelecimento = await EstabelecimentoRepository(db).get_by_id(estabelecimento_id)
    if estabelecimento is None:
        raise NotFoundError(LABEL, estabelecimento_id)
    return estabelecimento


async def list_estabelecimentos(
    db: AsyncSession, search: str | None = None, *, order_by_nome: bool = False
) -> list[Estabelecimento]:
    return await EstabelecimentoRepository(db).list_all(
        search, order_by_nome=order_by_nome
    )


async def paginate_estabelecimentos(
    db: AsyncSession,
    page: int,
    limit: int,
    search: str | None = None,
    sort_key: str = DEFAULT_SORT_KEY,
    sort_order: str = "asc",
) -> PageResult[Estabelecimento]:
    page, limit = normalize_pagination(page, limit)
    items, total = await EstabelecimentoRepository(db).paginate(
        page,
        limit,
        search=search,
        sort_key=sort_key,
        sort_order=sort_order.lower(),
    )
    return PageResult(items=items, total=total, page=page, limit=limit)


async def check_duplicate(
    db: AsyncSession, field: str, value: str, exclude_id: int | None = None
) -> bool:
    """Whether ``value`` is already used for codigo_unidade, cnes or cnpj.

    Raises:
        ValidationError: Unknown field or blank value.
    """
    if field not in UNIQUE_FIELDS:
        raise ValidationError(
            f"field must be one of: {', '.join(UNIQUE_FIELDS)}"
        )
    value = value.strip()
    if not value:
        raise ValidationError("value is required")
    return await EstabelecimentoRepository(db).value_exists(field, value, exclude_id)

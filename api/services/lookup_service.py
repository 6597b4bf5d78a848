"""Generic CRUD service for the lookup tables.

One set of functions serves every lookup; the ``LookupConfig`` passed in
decides the table, natural keys, parents and search columns. Natural-key and
parent checks run on the caller's session, so they share the transaction of
the write that follows them. Database constraint violations that still occur
(a concurrent insert of the same key, a delete of a referenced row) are
translated into the same domain errors.
"""

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.wide_event import set_wide_event_fields
from repositories.lookup_repository import LookupConfig, LookupRepository
from services.errors import (
    DependencyError,
    DuplicateError,
    NotFoundError,
    ValidationError,
)
from services.pagination import PageResult, normalize_pagination

logger = logging.getLogger(__name__)


def _normalize(config: LookupConfig, values: Mapping[str, Any]) -> dict[str, Any]:
    normalized: dict[str, Any] = {}
    for attr, value in values.items():
        if isinstance(value, str):
            value = value.strip()
            if attr in config.uppercase_fields:
                value = value.upper()
        normalized[attr] = value
    return normalized


def _duplicate_message(config: LookupConfig, key_values: Mapping[str, Any]) -> str:
    described = ", ".join(f"{attr}={value!r}" for attr, value in key_values.items())
    return f"{config.label} already exists ({described})"


async def _ensure_parents_exist(
    repo: LookupRepository, values: Mapping[str, Any]
) -> None:
    for attr, (parent_model, parent_label) in repo.config.parents.items():
        parent_id = values.get(attr)
        if parent_id is None:
            continue
        if not await repo.parent_exists(parent_model, parent_id):
            raise ValidationError(f"{parent_label} {parent_id} does not exist")


async def _ensure_unique(
    repo: LookupRepository,
    values: Mapping[str, Any],
    exclude_id: int | None = None,
) -> None:
    for key in repo.config.unique_keys:
        if any(values.get(attr) is None for attr in key):
            continue
        key_values = {attr: values[attr] for attr in key}
        if await repo.exists(key_values, exclude_id):
            raise DuplicateError(
                _duplicate_message(repo.config, key_values), field=key[0]
            )


async def list_lookups(
    db: AsyncSession,
    config: LookupConfig,
    search: str | None = None,
    filters: Mapping[str, Any] | None = None,
    order_by: Sequence[Any] | None = None,
) -> list[Any]:
    repo = LookupRepository(db, config)
    return await repo.list_all(search=search, filters=filters, order_by=order_by)


async def paginate_lookups(
    db: AsyncSession,
    config: LookupConfig,
    page: int,
    limit: int,
    search: str | None = None,
    filters: Mapping[str, Any] | None = None,
) -> PageResult[Any]:
    page, limit = normalize_pagination(page, limit)
    repo = LookupRepository(db, config)
    items, total = await repo.paginate(page, limit, search=search, filters=filters)
    return PageResult(items=items, total=total, page=page, limit=limit)


async def get_lookup(db: AsyncSession, config: LookupConfig, item_id: int) -> Any:
    item = await LookupRepository(db, config).get_by_id(item_id)
    if item is None:
        raise NotFoundError(config.label, item_id)
    return item


async def create_lookup(
    db: AsyncSession, config: LookupConfig, values: Mapping[str, Any]
) -> Any:
    """Insert a lookup row after parent and natural-key checks.

    Raises:
        ValidationError: A referenced parent row does not exist.
        DuplicateError: A natural key is already taken.
    """
    repo = LookupRepository(db, config)
    values = _normalize(config, values)

    await _ensure_parents_exist(repo, values)
    await _ensure_unique(repo, values)

    try:
        item = await repo.create(values)
    except IntegrityError as e:
        raise DuplicateError(
            f"{config.label} conflicts with an existing record"
        ) from e

    logger.info("lookup.created", extra={"lookup": config.name, "lookup_id": item.id})
    set_wide_event_fields(lookup=config.name, lookup_id=item.id)
    return item


async def update_lookup(
    db: AsyncSession,
    config: LookupConfig,
    item_id: int,
    values: Mapping[str, Any],
) -> Any:
    repo = LookupRepository(db, config)
    item = await repo.get_by_id(item_id)
    if item is None:
        raise NotFoundError(config.label, item_id)

    values = _normalize(config, values)
    await _ensure_parents_exist(repo, values)
    await _ensure_unique(repo, values, exclude_id=item_id)

    try:
        item = await repo.update(item, values)
    except IntegrityError as e:
        raise DuplicateError(
            f"{config.label} conflicts with an existing record"
        ) from e

    logger.info("lookup.updated", extra={"lookup": config.name, "lookup_id": item_id})
    set_wide_event_fields(lookup=config.name, lookup_id=item_id)
    return item


async def delete_lookup(db: AsyncSession, config: LookupConfig, item_id: int) -> None:
    """Delete a lookup row.

    Raises:
        NotFoundError: No row with this id.
        DependencyError: Other rows still reference this one.
    """
    repo = LookupRepository(db, config)
    item = await repo.get_by_id(item_id)
    if item is None:
        raise NotFoundError(config.label, item_id)

    try:
        await repo.delete(item)
    except IntegrityError as e:
        logger.info(
            "lookup.delete.blocked",
            extra={"lookup": config.name, "lookup_id": item_id},
        )
        raise DependencyError(
            f"{config.label} {item_id} is referenced by other records "
            "and cannot be deleted"
        ) from e

    logger.info("lookup.deleted", extra={"lookup": config.name, "lookup_id": item_id})
    set_wide_event_fields(lookup=config.name, lookup_id=item_id)


async def check_existing(
    db: AsyncSession,
    config: LookupConfig,
    values: Mapping[str, Any],
    exclude_id: int | None = None,
) -> bool:
    """Check whether a natural key is already taken.

    ``values`` may hold any subset of the key attributes; blank strings count
    as missing. The first natural key (in config order) whose attributes are
    all present is checked, so ``codigo`` wins over ``descricao`` when both
    are supplied.

    Raises:
        ValidationError: No natural key can be built from ``values``.
    """
    supplied = {
        attr: value
        for attr, value in _normalize(config, values).items()
        if value is not None and value != ""
    }
    if not supplied:
        raise ValidationError(
            f"Provide at least one of: {', '.join(config.key_fields)}"
        )

    repo = LookupRepository(db, config)
    for key in config.unique_keys:
        if all(attr in supplied for attr in key):
            return await repo.exists({attr: supplied[attr] for attr in key}, exclude_id)

    required = " or ".join("+".join(key) for key in config.unique_keys)
    raise ValidationError(f"Incomplete key: provide {required}")

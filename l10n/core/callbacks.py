"""Localization hooks for the persistence client.

Reads are scoped to the requested locale, creates and updates are stamped
with the write locale, and after a write the sync columns of the record are
pushed to its other locale variants.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy.exc import SQLAlchemyError

from .availability import recompute
from .capabilities import DELETED_AT, LANGUAGE_CODE, Capabilities, classify, set_locale
from .context import L10nContext, Mode, global_locale, resolve_query_locale, resolve_write_locale
from .errors import CreationRejected, PropagationFailure
from .scope import rewrite

if TYPE_CHECKING:
    from ..infra.client import Client, Statement

log = logging.getLogger(__name__)


async def before_query(client: "Client", stmt: "Statement") -> None:
    caps = classify(stmt.model)
    if not caps.localizable:
        return
    locale, is_locale = resolve_query_locale(stmt.ctx)
    scoped = rewrite(
        stmt.model, stmt.ctx.mode, locale, is_locale,
        has_soft_delete=caps.soft_delete, unscoped=stmt.unscoped,
    )
    stmt.where.extend(scoped.where)
    stmt.order_by.extend(scoped.order_by)


async def before_create(client: "Client", stmt: "Statement") -> None:
    caps = classify(stmt.model)
    if not caps.localizable:
        return

    locale, is_locale = resolve_write_locale(stmt.ctx)
    if is_locale:
        await recompute(client, stmt, locale)
        # tables without a primary field only hold translations
        if caps.locale_creatable or caps.primary_field is None:
            set_locale(stmt.instance, locale)
        else:
            log.warning("Rejected creating %s in %s", stmt.model.__name__, locale)
            raise CreationRejected(stmt.model.__name__, locale)
    else:
        await recompute(client, stmt, global_locale())
        set_locale(stmt.instance, global_locale())


async def before_update(client: "Client", stmt: "Statement") -> None:
    caps = classify(stmt.model)
    if not caps.localizable:
        return

    locale, _ = resolve_write_locale(stmt.ctx)
    await recompute(client, stmt, "")

    if stmt.ctx.mode is not Mode.UNSCOPED:
        stmt.where.append(stmt.table.c[LANGUAGE_CODE] == locale)
        set_locale(stmt.instance, locale)


async def after_write(client: "Client", stmt: "Statement") -> None:
    caps = classify(stmt.model)
    if not caps.localizable:
        return

    locale, is_locale = resolve_write_locale(stmt.ctx)

    if is_locale and stmt.rows_affected == 0 and caps.primary_field is None:
        if await materialize_locale(client, stmt.instance, locale, stmt.ctx) is not None:
            stmt.rows_affected = 1

    if caps.sync_columns and stmt.ctx.mode is not Mode.UNSCOPED and stmt.rows_affected > 0:
        await propagate_sync_columns(client, stmt, caps, locale)


async def before_delete(client: "Client", stmt: "Statement") -> None:
    if not classify(stmt.model).localizable:
        return
    locale, is_locale = resolve_query_locale(stmt.ctx)
    if is_locale:
        stmt.where.append(stmt.table.c[LANGUAGE_CODE] == locale)


async def materialize_locale(client: "Client", record: Any, locale: str, ctx: L10nContext) -> Optional[Any]:
    """Create ``record`` in ``locale`` unless a live variant already exists.

    Soft-deleted variants in that locale are removed first so the new row
    does not collide with them.
    """
    caps = classify(record)
    model = type(record)
    table = model.__table__
    match = [table.c[name] == value for name, value in caps.identity_values(record).items()]
    match.append(table.c[LANGUAGE_CODE] == locale)

    if caps.soft_delete:
        purged = await client.raw.delete(model, *match, table.c[DELETED_AT].is_not(None))
        if purged:
            log.debug("Purged %d soft-deleted %s row(s) in %s", purged, model.__name__, locale)
        match.append(table.c[DELETED_AT].is_(None))

    if await client.raw.count(model, *match) > 0:
        return None

    log.info("Materializing %s %s in %s", model.__name__, caps.identity_values(record), locale)
    await client.create(record, ctx=ctx.localized_to(locale))
    return record


async def propagate_sync_columns(client: "Client", stmt: "Statement", caps: Capabilities, locale: str) -> int:
    """Copy sync column values to every other locale variant of the record."""
    if stmt.values is not None:
        attrs = {name: stmt.values[name] for name in caps.sync_columns if name in stmt.values}
    else:
        attrs = {name: caps.get(stmt.instance, name) for name in caps.sync_columns}
    if not attrs:
        return 0

    identity = {name: value for name, value in caps.identity_values(stmt.instance).items() if value is not None}
    if not identity:
        log.warning("Skipped syncing %s: record has no identity values", stmt.model.__name__)
        return 0

    table = stmt.table
    where = [table.c[name] == value for name, value in identity.items()]
    where.append(table.c[LANGUAGE_CODE] != locale)
    try:
        synced = await client.raw.update_columns(stmt.model, attrs, *where)
    except SQLAlchemyError as exc:
        log.error("Syncing %s of %s %s failed: %s", list(attrs), stmt.model.__name__, identity, exc)
        raise PropagationFailure(stmt.model.__name__, locale, list(attrs)) from exc

    log.debug("Synced %s of %s %s to %d other variant(s)", list(attrs), stmt.model.__name__, identity, synced)
    return synced


HOOKS = (
    ("create", "l10n:before_create", before_create, {"before": "core:create"}),
    ("create", "l10n:after_create", after_write, {"after": "core:create"}),
    ("update", "l10n:before_update", before_update, {"before": "core:update"}),
    ("update", "l10n:after_update", after_write, {"after": "core:update"}),
    ("delete", "l10n:before_delete", before_delete, {"before": "core:delete"}),
    ("query", "l10n:before_query", before_query, {"before": "core:query"}),
    ("row", "l10n:before_query", before_query, {"before": "core:row_query"}),
)


def register_callbacks(client: "Client") -> None:
    """Register the localization hooks on ``client``; safe to call repeatedly."""
    for kind, name, fn, position in HOOKS:
        processor = client.callbacks[kind]
        if processor.get(name) is None:
            processor.register(name, fn, **position)

"""Locale-aware predicates and ordering for read queries."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import ColumnElement, Table, and_, exists, or_

from .capabilities import DELETED_AT, LANGUAGE_CODE, classify
from .context import Mode, global_locale

log = logging.getLogger(__name__)


@dataclass
class Rewrite:
    where: list[ColumnElement[Any]] = field(default_factory=list)
    order_by: list[ColumnElement[Any]] = field(default_factory=list)


def _missing_variant(table: Table, identity: tuple[str, ...], locale: str, live_only: bool) -> ColumnElement[bool]:
    """True for rows whose identity has no row in ``locale``."""
    t2 = table.alias("t2")
    conds = [t2.c[name] == table.c[name] for name in identity]
    conds.append(t2.c[LANGUAGE_CODE] == locale)
    if live_only:
        conds.append(t2.c[DELETED_AT].is_(None))
    return ~exists().where(*conds)


def rewrite(
    entity: Any,
    mode: Mode | str | None,
    locale: str,
    is_locale: bool,
    *,
    has_soft_delete: bool,
    unscoped: bool,
) -> Rewrite:
    caps = classify(entity)
    table: Table = entity.__table__
    code = table.c[LANGUAGE_CODE]
    live_only = has_soft_delete and not unscoped
    mode = Mode(mode) if mode else Mode.FALLBACK
    out = Rewrite()

    if mode is Mode.UNSCOPED:
        pass
    elif mode is Mode.GLOBAL:
        out.where.append(code == global_locale())
    elif mode is Mode.LOCALE:
        out.where.append(code == locale)
    elif mode is Mode.REVERSE:
        out.where.append(
            and_(_missing_variant(table, caps.identity, locale, live_only), code == global_locale())
        )
    elif is_locale:
        canonical = and_(_missing_variant(table, caps.identity, locale, live_only), code == global_locale())
        out.where.append(or_(canonical, code == locale))
        if live_only:
            out.where.append(table.c[DELETED_AT].is_(None))
        # exact locale matches first
        out.order_by.append((code == locale).desc())
    else:
        out.where.append(code == global_locale())

    log.debug("Rewrote %s query: mode=%s locale=%s specific=%s", table.name, mode.value, locale, is_locale)
    return out

"""Localization capabilities of mapped classes.

Capabilities are derived from the mixins a class uses and from column
``info`` tags, then cached per class so hooks never re-inspect the mapper.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from sqlalchemy import inspect

from ..infra.models import Locale, LocaleCodes

log = logging.getLogger(__name__)

LANGUAGE_CODE = "language_code"
DELETED_AT = "deleted_at"
AVAILABLE_CODES = "language_available_code"
PRIMARY_FIELD = "id"


@dataclass(frozen=True)
class Capabilities:
    localizable: bool = False
    locale_creatable: bool = False
    tracks_availability: bool = False
    soft_delete: bool = False
    primary_field: Optional[str] = None
    identity: tuple[str, ...] = ()
    sync_columns: tuple[str, ...] = ()
    # column name -> attribute key
    keys: dict[str, str] = field(default_factory=dict)

    def get(self, obj: Any, column: str) -> Any:
        return getattr(obj, self.keys.get(column, column))

    def set(self, obj: Any, column: str, value: Any) -> None:
        setattr(obj, self.keys.get(column, column), value)

    def identity_values(self, obj: Any) -> dict[str, Any]:
        return {name: self.get(obj, name) for name in self.identity}


_cache: dict[type, Capabilities] = {}


def _tag_options(info: dict) -> set[str]:
    raw = info.get("l10n") or ""
    return {opt.strip().upper() for opt in str(raw).split(",") if opt.strip()}


def _inspect_class(cls: type) -> Capabilities:
    mapper = inspect(cls, raiseerr=False)
    if mapper is None or not hasattr(mapper, "column_attrs"):
        return Capabilities()

    keys: dict[str, str] = {}
    sync: list[str] = []
    for prop in mapper.column_attrs:
        column = prop.columns[0]
        keys[column.name] = prop.key
        if "SYNC" in _tag_options(column.info):
            sync.append(column.name)

    pk_names = [c.name for c in mapper.primary_key]
    primary_field = PRIMARY_FIELD if PRIMARY_FIELD in pk_names else None
    localizable = issubclass(cls, Locale) and LANGUAGE_CODE in keys

    return Capabilities(
        localizable=localizable,
        locale_creatable=localizable and bool(getattr(cls, "__l10n_locale_creatable__", False)),
        tracks_availability=localizable and issubclass(cls, LocaleCodes),
        soft_delete=DELETED_AT in keys,
        primary_field=primary_field,
        identity=tuple(n for n in pk_names if n != LANGUAGE_CODE),
        sync_columns=tuple(sync),
        keys=keys,
    )


def classify(entity: Any) -> Capabilities:
    cls = entity if isinstance(entity, type) else type(entity)
    caps = _cache.get(cls)
    if caps is None:
        caps = _inspect_class(cls)
        _cache[cls] = caps
        log.debug("Classified %s: %s", cls.__name__, caps)
    return caps


def is_localizable(entity: Any) -> bool:
    return classify(entity).localizable


def is_locale_creatable(entity: Any) -> bool:
    return classify(entity).locale_creatable


def set_locale(obj: Any, locale: str) -> None:
    classify(obj).set(obj, LANGUAGE_CODE, locale)

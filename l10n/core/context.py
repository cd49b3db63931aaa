"""Per-operation localization context.

Every client operation carries an :class:`L10nContext` naming the query mode,
the locale rows are read in and the locale writes are targeted at. Hosts that
resolve the locale once per request can install it with :func:`use_context`;
an explicit context passed to an operation always takes precedence.
"""

from __future__ import annotations

import enum
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, replace
from typing import Iterator, Optional

from .config import settings


class Mode(str, enum.Enum):
    UNSCOPED = "unscoped"
    GLOBAL = "global"
    LOCALE = "locale"
    REVERSE = "reverse"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class L10nContext:
    mode: Mode = Mode.FALLBACK
    locale: Optional[str] = None
    localize_to: Optional[str] = None

    def __post_init__(self) -> None:
        # unset mode means fallback
        object.__setattr__(self, "mode", Mode(self.mode) if self.mode else Mode.FALLBACK)

    def with_mode(self, mode: Mode | str) -> "L10nContext":
        return replace(self, mode=Mode(mode))

    def with_locale(self, locale: Optional[str]) -> "L10nContext":
        return replace(self, locale=locale)

    def localized_to(self, locale: Optional[str]) -> "L10nContext":
        return replace(self, localize_to=locale)


_current: ContextVar[Optional[L10nContext]] = ContextVar("l10n_context", default=None)


def current_context() -> L10nContext:
    """Return the ambient context of the running task, or the default one."""
    return _current.get() or L10nContext()


@contextmanager
def use_context(ctx: L10nContext) -> Iterator[L10nContext]:
    token = _current.set(ctx)
    try:
        yield ctx
    finally:
        _current.reset(token)


def global_locale() -> str:
    return settings.GLOBAL_LOCALE


def resolve_query_locale(ctx: L10nContext) -> tuple[str, bool]:
    """Locale rows are read in, and whether it differs from Global."""
    if ctx.locale:
        return ctx.locale, ctx.locale != global_locale()
    return global_locale(), False


def resolve_write_locale(ctx: L10nContext) -> tuple[str, bool]:
    """Locale writes target; falls back to the query locale."""
    if ctx.localize_to:
        return ctx.localize_to, ctx.localize_to != global_locale()
    return resolve_query_locale(ctx)

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, DateTime, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from ..core.config import settings


class Base(DeclarativeBase):
    pass


def _global_locale() -> str:
    return settings.GLOBAL_LOCALE


class Locale:
    """Mix into a mapped class to make its rows localizable.

    ``language_code`` joins the primary key, so a record is identified by its
    remaining key columns plus the locale.
    """

    language_code: Mapped[str] = mapped_column(String(20), primary_key=True, default=_global_locale)

    def is_global(self) -> bool:
        return self.language_code == settings.GLOBAL_LOCALE

    def set_locale(self, locale: str) -> None:
        self.language_code = locale


class LocaleCreatable(Locale):
    """Allow records to be created directly in a non-global locale.

    Without it new records may only be created in the Global locale.
    """

    __l10n_locale_creatable__ = True


class LocaleCodes:
    # Shared by every variant of a record through the sync tag
    language_available_code: Mapped[list[str]] = mapped_column(JSON, default=list, info={"l10n": "sync"})

    def available_locales(self) -> list[str]:
        return list(self.language_available_code or [])


class SoftDelete:
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True, default=None)

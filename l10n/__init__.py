"""Row-level localization for SQLAlchemy models."""

from .core.callbacks import register_callbacks
from .core.capabilities import classify, is_locale_creatable, is_localizable
from .core.context import L10nContext, Mode, current_context, resolve_query_locale, resolve_write_locale, use_context
from .core.errors import CreationRejected, L10nError, PropagationFailure
from .infra.client import Client, LocalizeRequest, RawClient, localized
from .infra.models import Base, Locale, LocaleCodes, LocaleCreatable, SoftDelete

__all__ = [
    "Base",
    "Client",
    "CreationRejected",
    "L10nContext",
    "L10nError",
    "Locale",
    "LocaleCodes",
    "LocaleCreatable",
    "LocalizeRequest",
    "Mode",
    "PropagationFailure",
    "RawClient",
    "SoftDelete",
    "classify",
    "current_context",
    "is_locale_creatable",
    "is_localizable",
    "localized",
    "register_callbacks",
    "resolve_query_locale",
    "resolve_write_locale",
    "use_context",
]

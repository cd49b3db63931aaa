from __future__ import annotations


class L10nError(Exception):
    """Base class for errors raised by the localization hooks."""


class CreationRejected(L10nError):
    def __init__(self, entity: str, locale: str) -> None:
        self.entity = entity
        self.locale = locale
        super().__init__(f"the resource {entity} cannot be created in {locale}")


class PropagationFailure(L10nError):
    """The sync-column update to the other locale variants failed.

    The primary write has already been executed in the caller's session, so
    the data is only partially consistent until the caller rolls back.
    """

    def __init__(self, entity: str, locale: str, columns: list[str]) -> None:
        self.entity = entity
        self.locale = locale
        self.columns = columns
        super().__init__(
            f"failed to propagate {', '.join(columns)} of {entity} to locales other than {locale}"
        )

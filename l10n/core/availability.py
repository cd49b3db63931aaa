from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from .capabilities import AVAILABLE_CODES, LANGUAGE_CODE, classify
from .context import Mode

if TYPE_CHECKING:
    from ..infra.client import Client, Statement

log = logging.getLogger(__name__)


async def recompute(client: "Client", stmt: "Statement", additional_locale: str) -> Optional[list[str]]:
    """Refresh the record's list of locales that have a variant.

    Existing codes are read for the record's identity, then
    ``additional_locale`` is appended. Duplicates are kept.
    """
    caps = classify(stmt.model)
    if not caps.tracks_availability:
        return None

    codes: list[str] = []
    identity = caps.identity_values(stmt.instance)
    if identity and all(identity.values()):
        table = stmt.table
        where = [table.c[name] == value for name, value in identity.items()]
        codes = await client.pluck(stmt.model, LANGUAGE_CODE, *where, ctx=stmt.ctx.with_mode(Mode.UNSCOPED))

    if additional_locale:
        codes.append(additional_locale)

    caps.set(stmt.instance, AVAILABLE_CODES, codes)
    log.debug("Available locales for %s %s: %s", stmt.model.__name__, identity, codes)
    return codes

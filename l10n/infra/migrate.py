from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import MetaData

from . import db
from .models import Base

log = logging.getLogger(__name__)


async def migrate(metadata: Optional[MetaData] = None) -> None:
    """Create the tables of ``metadata`` (all mapped models by default)."""
    assert db.engine is not None, "Engine not initialized"
    metadata = metadata if metadata is not None else Base.metadata
    async with db.engine.begin() as conn:  # type: ignore
        await conn.run_sync(metadata.create_all)
    await db.set_sqlite_pragmas()
    log.info("Created %d table(s)", len(metadata.tables))

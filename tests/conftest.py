"""
Pytest configuration and shared fixtures for the localization tests.
"""
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from l10n import Client, L10nContext, localized
from l10n.infra import db
from l10n.infra.migrate import migrate

from tests import models  # noqa: F401  registers the sample tables


@pytest_asyncio.fixture
async def engine(tmp_path):
    """Fresh on-disk SQLite database per test."""
    await db.init_engine(f"sqlite+aiosqlite:///{tmp_path / 'l10n.db'}")
    db.init_sessionmaker()
    await migrate()
    yield db.engine
    await db.dispose_engine()


@pytest_asyncio.fixture
async def session(engine) -> AsyncGenerator[AsyncSession, None]:
    async with db.SessionLocal() as s:  # type: ignore
        yield s


@pytest.fixture
def client(session) -> Client:
    return localized(session)


@pytest.fixture
def fr() -> L10nContext:
    """Context writing to and reading in fr-FR."""
    return L10nContext(locale="fr-FR", localize_to="fr-FR")

from __future__ import annotations

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, async_sessionmaker, AsyncSession

from ..core.config import settings


engine: Optional[AsyncEngine] = None
SessionLocal: Optional[async_sessionmaker[AsyncSession]] = None


async def init_engine(dsn: Optional[str] = None) -> None:
    global engine
    if engine is None:
        engine = create_async_engine(dsn or settings.DATABASE_URL, future=True, echo=False)


def init_sessionmaker() -> None:
    global SessionLocal
    if SessionLocal is None:
        assert engine is not None, "Engine not initialized"
        SessionLocal = async_sessionmaker(engine, expire_on_commit=False)


async def set_sqlite_pragmas() -> None:
    assert engine is not None
    if engine.url.get_backend_name() != "sqlite" or not engine.url.database:
        return
    async with engine.begin() as conn:  # type: ignore
        await conn.exec_driver_sql("PRAGMA journal_mode=WAL;")
        await conn.exec_driver_sql("PRAGMA foreign_keys=ON;")


async def dispose_engine() -> None:
    global engine, SessionLocal
    if engine is not None:
        await engine.dispose()
    engine = None
    SessionLocal = None

"""Async SQLAlchemy engine and session factory."""
from __future__ import annotations

import logging
from collections.abc import AsyncIterator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from .config import get_settings

logger = logging.getLogger(__name__)


def build_engine(url: str, echo: bool = False, **kwargs) -> AsyncEngine:
    """Create an async engine; SQLite connections get foreign keys enabled."""
    if url.startswith("sqlite"):
        new_engine = create_async_engine(url, echo=echo, **kwargs)

        @event.listens_for(new_engine.sync_engine, "connect")
        def _enable_sqlite_fks(dbapi_connection, connection_record):  # pragma: no cover
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return new_engine
    return create_async_engine(url, echo=echo, pool_pre_ping=True, **kwargs)


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=bind, expire_on_commit=False, autoflush=False)


_settings = get_settings()

engine: AsyncEngine = build_engine(_settings.database_url, echo=_settings.db_echo)

SessionFactory: async_sessionmaker[AsyncSession] = build_session_factory(engine)


async def get_session() -> AsyncIterator[AsyncSession]:  # pragma: no cover
    """FastAPI dependency to get an async DB session."""
    async with SessionFactory() as session:
        yield session


async def init_db(bind: AsyncEngine | None = None) -> None:
    """Create all tables that do not exist yet."""
    # Import models so they are registered on Base.metadata
    from affiliate.models import Base

    target = bind or engine
    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema ready", extra={"count": len(Base.metadata.tables)})

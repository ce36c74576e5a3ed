"""
DocVault Database Layer

Async SQLAlchemy 2.0 engine and sessions for PostgreSQL + pgvector.

The engine is created lazily on first use so that importing the package
(tests, alembic, scripts) never opens a connection. Services never reach
for these helpers themselves; the API layer or a script opens a session
and passes it down explicitly.

Usage::

    # request scope
    @router.get("/files/{file_id}")
    async def get_file(file_id: UUID, db: AsyncSession = Depends(get_db)):
        ...

    # script scope
    async with session_scope() as session:
        await FileRepository().find_stale_files(session, cutoff)
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from docvault.core.config import settings
from docvault.core.errors import ExternalServiceError

logger = logging.getLogger(__name__)

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    global _engine  # noqa: PLW0603
    if _engine is None:
        _engine = create_async_engine(
            settings.DATABASE_URL,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_pre_ping=True,
        )
        logger.info(
            "Database engine created for %s on %s:%s",
            settings.POSTGRES_DB,
            settings.POSTGRES_HOST,
            settings.POSTGRES_PORT,
        )
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """
    Shared session maker.

    ``expire_on_commit=False`` keeps ``FileRecord`` attributes readable
    after the repositories commit, which the API responses rely on.
    """
    global _session_factory  # noqa: PLW0603
    if _session_factory is None:
        _session_factory = async_sessionmaker(get_engine(), expire_on_commit=False)
    return _session_factory


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding a request-scoped session."""
    async with get_session_factory()() as session:
        yield session


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """Session for scripts; rolls back whatever is pending if the body raises."""
    async with get_session_factory()() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def check_connection(engine: AsyncEngine | None = None) -> None:
    """Round-trip ``SELECT 1``; ``ExternalServiceError`` if the database is unreachable."""
    engine = engine or get_engine()
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as exc:
        raise ExternalServiceError(
            f"Database unreachable: {exc}", provider_name="postgres"
        ) from exc
    logger.info("Database connection verified")


async def dispose_engine() -> None:
    global _engine, _session_factory  # noqa: PLW0603
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None
        logger.info("Database engine disposed")

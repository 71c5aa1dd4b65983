"""
Database engine, session factory and request-scoped sessions.

PostgreSQL (asyncpg) is the production store: row locks taken by the seat
ledger serialize concurrent holds on the same seat. A SQLite file (aiosqlite)
is supported for local runs and tests; there every transaction starts with
``BEGIN IMMEDIATE`` so writers queue behind each other instead of racing.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from redis.exceptions import RedisError
from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from .cache import close_cache, init_cache
from .config import get_settings
from .models.base import Base

logger = logging.getLogger(__name__)

# Process-wide engine used by the API
engine: Optional[AsyncEngine] = None
async_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def create_database_engine(database_url: Optional[str] = None) -> AsyncEngine:
    """
    Create an async engine for the configured store.

    Args:
        database_url: Overrides ``settings.database_url``

    Returns:
        Engine with bounded pool and statement timeouts
    """
    settings = get_settings()
    url = make_url(database_url or settings.database_url)

    if url.get_backend_name() == "sqlite":
        sqlite_engine = create_async_engine(
            url,
            echo=settings.debug,
            # Seconds a writer waits for the database lock
            connect_args={"timeout": settings.database_command_timeout_seconds},
        )
        _serialize_sqlite_transactions(sqlite_engine)
        return sqlite_engine

    return create_async_engine(
        url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        pool_timeout=settings.database_pool_timeout_seconds,
        pool_pre_ping=True,
        pool_recycle=3600,
        echo=settings.debug,
        connect_args={
            "command_timeout": settings.database_command_timeout_seconds,
            "server_settings": {"application_name": "showtime_booking_platform"},
        },
    )


def _serialize_sqlite_transactions(sqlite_engine: AsyncEngine) -> None:
    """Take the SQLite write lock when a transaction begins."""

    @event.listens_for(sqlite_engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(sqlite_engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Sessions keep loaded state after commit so responses can be built from it."""
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=True,
    )


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get the session factory created by init_database()."""
    if async_session_factory is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")
    return async_session_factory


async def init_database() -> None:
    """Create the engine, ensure the schema exists and connect the cache."""
    global engine, async_session_factory

    if engine is None:
        engine = create_database_engine()
        async_session_factory = create_session_factory(engine)
        logger.info(f"Database engine created for {engine.url.render_as_string(hide_password=True)}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    # Without Redis every cache lookup is a miss
    try:
        await init_cache()
    except RedisError as e:
        logger.warning(f"Redis unavailable, continuing without cache: {e}")


async def close_database() -> None:
    """Dispose of the engine and disconnect the cache."""
    global engine, async_session_factory

    if engine is not None:
        await engine.dispose()
        engine = None
        async_session_factory = None
        logger.info("Database connections closed")

    await close_cache()


@asynccontextmanager
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Open a session that commits when the block exits cleanly.

    Usage:
        async with get_db_session() as session:
            await CatalogService(session).create_movie(movie_data)
    """
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding one session per request."""
    async with get_db_session() as session:
        yield session

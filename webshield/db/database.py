"""
WebShield - Database Configuration
===================================
Database connection with SQLAlchemy async support.
Supports both PostgreSQL (production) and SQLite (development).
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool, StaticPool


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def normalize_database_url(url: str) -> str:
    """Point plain driver URLs at their async drivers."""
    if url.startswith("sqlite://") and "+aiosqlite" not in url:
        return url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


def build_engine(url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine with per-dialect pool settings."""
    url = normalize_database_url(url)
    engine_kwargs = {"echo": echo}

    if url.startswith("postgresql"):
        engine_kwargs.update({
            "pool_pre_ping": True,
            "pool_size": 10,
            "max_overflow": 20,
            "pool_timeout": 30,
            "pool_recycle": 1800,  # Recycle connections after 30 minutes
        })
    elif "sqlite" in url:
        # An in-memory database only exists on its one connection
        in_memory = ":memory:" in url or url.rstrip("/").endswith("sqlite+aiosqlite:")
        engine_kwargs.update({
            "poolclass": StaticPool if in_memory else NullPool,
            "connect_args": {"check_same_thread": False},
        })

    return create_async_engine(url, **engine_kwargs)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


@asynccontextmanager
async def session_scope(
    factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Unit of work: commit on success, roll back on any error."""
    session = factory()
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


async def create_tables(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def check_db_health(
    engine: AsyncEngine,
    factory: async_sessionmaker[AsyncSession],
) -> dict:
    """
    Check database health and return pool statistics.

    Returns:
        dict with pool stats and connection status
    """
    try:
        async with factory() as session:
            result = await session.execute(text("SELECT 1"))
            result.scalar()

        pool_stats = {}
        if hasattr(engine.pool, "size"):
            pool_stats = {
                "pool_size": engine.pool.size(),
                "checked_in": engine.pool.checkedin(),
                "checked_out": engine.pool.checkedout(),
                "overflow": engine.pool.overflow(),
            }

        return {
            "connected": True,
            "backend": "database",
            "database_type": engine.dialect.name,
            **pool_stats,
        }

    except Exception as e:
        return {
            "connected": False,
            "backend": "database",
            "error": str(e),
        }

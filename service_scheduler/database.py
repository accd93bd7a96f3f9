"""Database configuration and connection management."""

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from service_scheduler.config import settings


def async_database_url(url: str) -> str:
    """Convert a sync database URL to its async driver form."""
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url.startswith("sqlite://"):
        return url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return url


def build_engine(url: str, **overrides: Any) -> AsyncEngine:
    """
    Create an async engine for the given URL.

    PostgreSQL gets a sized connection pool; SQLite gets foreign keys
    switched on and a busy timeout so concurrent writers queue instead
    of failing with "database is locked".
    """
    url = async_database_url(url)
    options: dict[str, Any] = {"echo": settings.debug, "pool_pre_ping": True}

    if url.startswith("sqlite"):
        options["connect_args"] = {"timeout": 30}
    else:
        options["connect_args"] = {
            "server_settings": {
                "application_name": settings.app_name,
            },
        }
        if "poolclass" not in overrides:
            options.update(
                pool_size=settings.database_pool_size,
                max_overflow=settings.database_max_overflow,
                pool_recycle=3600,
            )

    options.update(overrides)
    new_engine = create_async_engine(url, **options)

    if url.startswith("sqlite"):

        @event.listens_for(new_engine.sync_engine, "connect")
        def set_sqlite_pragma(dbapi_conn: Any, connection_record: Any) -> None:
            """Enable foreign keys on every new SQLite connection."""
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return new_engine


engine: AsyncEngine = build_engine(settings.database_url)

# Async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting async database sessions."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def check_database_connection() -> bool:
    """Check if database connection is healthy."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception:
        return False

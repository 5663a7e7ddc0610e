"""Async database engine, session factory and FastAPI session dependency.

Bid-session writes take row locks (SELECT ... FOR UPDATE) inside one
transaction per operation. The engine layer owns `db.begin()`; this module
only hands out one AsyncSession per request or sweep.
"""

from collections.abc import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from config.settings import settings


class Base(DeclarativeBase):
    """Declarative base for the ORM-mapped users table; everything else is raw SQL."""


def _server_settings() -> dict[str, str]:
    # asyncpg applies these on every pooled connection
    return {
        "application_name": settings.APP_NAME,
        "lock_timeout": str(settings.DB_LOCK_TIMEOUT_MS),
        "timezone": "UTC",
    }


engine: AsyncEngine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_size=settings.DB_POOL_SIZE,
    max_overflow=settings.DB_MAX_OVERFLOW,
    pool_pre_ping=True,
    connect_args={"server_settings": _server_settings()},
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        yield session


async def ping_database() -> None:
    """Fail fast at startup if PostgreSQL is unreachable."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))

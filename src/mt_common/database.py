"""Async engine and session plumbing for PostgreSQL.

Sessions run with timezone UTC so that date arithmetic in SQL (monthly
reports, range filters) agrees with the UTC bounds computed in Python.
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
    """Declarative base shared by the persons and transactions mappings."""


engine: AsyncEngine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_size=settings.DB_POOL_SIZE,
    max_overflow=settings.DB_MAX_OVERFLOW,
    pool_pre_ping=True,
    connect_args={
        "server_settings": {"application_name": settings.APP_NAME, "timezone": "UTC"}
    },
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def ping() -> None:
    """Fail fast at startup if the database is unreachable."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one session per request.

    Ledger writes commit/rollback explicitly in the application service;
    anything left uncommitted is rolled back when the session closes.
    """
    async with async_session_factory() as session:
        yield session

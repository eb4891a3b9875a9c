"""
DevMatch — Async Database Engine & Session Factory

Builds a single ``asyncpg``-backed engine from ``DATABASE_URL`` and exposes:

* ``Base`` – the declarative base shared by every ORM model,
* ``async_session_factory`` – used directly by the real-time gateway,
* ``get_db`` – the FastAPI dependency that yields one session per request,
* ``bounded`` – the timeout guard every persistence call goes through, so an
  unresponsive database fails the triggering request instead of hanging it.
"""

from __future__ import annotations

import asyncio
from typing import AsyncGenerator, Awaitable, TypeVar

import structlog
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.config import get_settings
from app.exceptions import ServerError

logger = structlog.get_logger("devmatch.database")

T = TypeVar("T")


# ------------------------------------------------------------------ #
# Declarative base for all ORM models
# ------------------------------------------------------------------ #

class Base(DeclarativeBase):
    """Parent of the developers, matches and messages tables."""


# ------------------------------------------------------------------ #
# Engine construction
# ------------------------------------------------------------------ #

_POOL_KWARGS = {
    "pool_size": 10,
    "max_overflow": 5,
    "pool_timeout": 30,
    "pool_recycle": 1800,
    "pool_pre_ping": True,
}


def _normalise_url(url: str) -> str:
    # Developers rarely remember the asyncpg dialect prefix.
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+asyncpg://", 1)
    return url


def _create_engine():
    settings = get_settings()
    engine = create_async_engine(
        _normalise_url(settings.DATABASE_URL),
        echo=(settings.LOG_LEVEL == "DEBUG"),
        **_POOL_KWARGS,
    )
    logger.info("database_engine_created")
    return engine


# ------------------------------------------------------------------ #
# Module-level engine & session factory
# ------------------------------------------------------------------ #

engine = _create_engine()

async_session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ------------------------------------------------------------------ #
# Bounded persistence calls
# ------------------------------------------------------------------ #

async def bounded(awaitable: Awaitable[T], timeout: float | None = None) -> T:
    """Await a persistence call, failing with ``ServerError`` on timeout."""
    limit = timeout if timeout is not None else get_settings().DB_CALL_TIMEOUT_SECONDS
    try:
        return await asyncio.wait_for(awaitable, timeout=limit)
    except asyncio.TimeoutError as exc:
        logger.error("persistence_timeout", timeout=limit)
        raise ServerError("The data store did not respond in time.") from exc


# ------------------------------------------------------------------ #
# FastAPI dependency
# ------------------------------------------------------------------ #

async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session; committed on success, rolled back on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await bounded(session.commit())
        except Exception:
            await session.rollback()
            raise

"""
Database Session Management - Async SQLAlchemy engines per role.

Quota, cache and card writes go to the primary. The health check reads
through the replica when one is configured.
"""

from collections.abc import AsyncGenerator
from typing import Literal

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ticker.config import settings

Role = Literal["write", "read"]

_engines: dict[Role, AsyncEngine] = {}
_session_factories: dict[Role, async_sessionmaker[AsyncSession]] = {}


def _url_for(role: Role) -> str:
    return settings.database_url if role == "write" else settings.read_database_url


def get_engine(role: Role = "write") -> AsyncEngine:
    """Get or lazily create the engine for a role."""
    engine = _engines.get(role)
    if engine is None:
        engine = create_async_engine(
            _url_for(role),
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_timeout=settings.database_pool_timeout,
            pool_recycle=settings.database_pool_recycle,
            # Dead pooled connections would otherwise surface as quota retries
            pool_pre_ping=True,
            echo=settings.log_level.upper() == "DEBUG",
        )
        _engines[role] = engine
    return engine


def get_session_factory(role: Role = "write") -> async_sessionmaker[AsyncSession]:
    factory = _session_factories.get(role)
    if factory is None:
        factory = async_sessionmaker(get_engine(role), class_=AsyncSession, expire_on_commit=False)
        _session_factories[role] = factory
    return factory


def get_write_engine() -> AsyncEngine:
    return get_engine("write")


def get_write_session_factory() -> async_sessionmaker[AsyncSession]:
    """Factory handed to the stores; each operation opens its own session."""
    return get_session_factory("write")


async def get_read_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency for a read-only session.

    Usage:
        @router.get("/health")
        async def health(db: AsyncSession = Depends(get_read_db)):
            ...
    """
    async with get_session_factory("read")() as session:
        yield session


async def close_engines() -> None:
    """Dispose every engine (graceful shutdown)."""
    for role in list(_engines):
        await _engines.pop(role).dispose()
    _session_factories.clear()

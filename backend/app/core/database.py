"""Async engine and the request-scoped session.

``get_db`` hands each request one AsyncSession. Routers commit once their
writes have gone through; whatever is still pending is committed when the
request ends, and an exception rolls the whole request back.
"""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.core.config import settings


def build_engine(url: str | None = None, **kwargs: object) -> AsyncEngine:
    """Create an asyncpg engine for ``url`` (default: the configured database)."""
    kwargs.setdefault("pool_pre_ping", True)
    return create_async_engine(url or settings.database_url, **kwargs)


engine = build_engine(echo=settings.log_level.upper() == "DEBUG")

async_session_factory = async_sessionmaker(engine, expire_on_commit=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        else:
            await session.commit()


async def dispose_engine() -> None:
    """Close pooled connections on shutdown."""
    await engine.dispose()

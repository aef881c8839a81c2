"""Database engine and session factories.

One AsyncEngine (and connection pool) per database URL, shared by every
orchestrator in the process.

Usage:
    from fedicore.db.engine import get_async_session

    Session = get_async_session("postgresql://fedi@db/fedi")
    async with Session() as session:
        ...
"""

from __future__ import annotations

from functools import lru_cache

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)


ASYNC_DRIVER = "postgresql+asyncpg://"

# Schemes that mean "PostgreSQL" without naming the async driver
_PLAIN_SCHEMES = ("postgres://", "postgresql://")

_engine_cache: dict[str, AsyncEngine] = {}


def normalize_database_url(database_url: str) -> str:
    """Point a plain PostgreSQL URL at the asyncpg driver.

    URLs that already name a driver are returned unchanged.

    Raises:
        ValueError: The URL is empty
    """
    url = database_url.strip()
    if not url:
        raise ValueError("database_url is not configured")
    for scheme in _PLAIN_SCHEMES:
        if url.startswith(scheme):
            return ASYNC_DRIVER + url[len(scheme) :]
    return url


def get_engine(database_url: str | None = None) -> AsyncEngine:
    """Get the engine for a database URL, creating it on first use.

    Args:
        database_url: Connection URL. If None, uses settings.database_url.
    """
    if database_url is None:
        from fedicore.config.settings import get_settings

        database_url = get_settings().database_url

    url = normalize_database_url(database_url)
    if url not in _engine_cache:
        _engine_cache[url] = create_async_engine(url, pool_pre_ping=True)
    return _engine_cache[url]


@lru_cache(maxsize=8)
def get_async_session(
    database_url: str | None = None,
) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to get_engine(database_url).

    Objects stay readable after commit; the media store maps rows to
    immutable values right after each statement.
    """
    return async_sessionmaker(bind=get_engine(database_url), expire_on_commit=False)


async def dispose_engines() -> None:
    """Close every cached connection pool. Call once at shutdown."""
    for engine in _engine_cache.values():
        await engine.dispose()
    _engine_cache.clear()
    get_async_session.cache_clear()

"""Async SQLAlchemy engine and session factory.

Uses psycopg3 which supports both sync and async with the same
``postgresql+psycopg://`` URL.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine


def create_engine(database_url: str, **kwargs: object) -> AsyncEngine:
    """Create an async SQLAlchemy engine with production-ready pool settings.

    Every graph fetch is a short burst of sequential round trips, so the pool
    is sized for many concurrent short requests rather than long sessions:

    - **pool_size=10**: baseline connections kept open.
    - **max_overflow=20**: burst capacity when many canvases load at once.
    - **pool_pre_ping=True**: test connections before checkout to handle
      server-side disconnects (PG restarts, idle timeouts).
    - **pool_recycle=1800**: recycle connections after 30 minutes.

    All defaults can be overridden via *kwargs* (the CLI repair command
    passes ``poolclass=NullPool``).
    """
    defaults = {
        "echo": False,
        "pool_size": 10,
        "max_overflow": 20,
        "pool_pre_ping": True,
        "pool_recycle": 1800,
    }
    if "poolclass" in kwargs:
        for key in ("pool_size", "max_overflow", "pool_recycle"):
            defaults.pop(key)
    defaults.update(kwargs)  # type: ignore[arg-type]
    return create_async_engine(database_url, **defaults)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory bound to *engine*.

    ``expire_on_commit=False`` so that ORM instances remain usable after
    commit without triggering lazy loads.  The materializer commits between
    its container insert and reference insert and keeps using the returned
    rows afterwards.
    """
    return async_sessionmaker(engine, expire_on_commit=False)

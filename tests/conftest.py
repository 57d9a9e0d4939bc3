"""Shared test fixtures: testcontainers PostgreSQL and caller tokens.

Integration tests use a real PostgreSQL container managed by
testcontainers-python. The container is session-scoped (started once per
test run). Each test function gets an isolated DB session (via savepoint
rollback).

Requires Docker to be available. Tests needing the container should be
marked with ``@pytest.mark.integration``.
"""

from __future__ import annotations

import os
from collections.abc import AsyncIterator, Callable, Iterator
from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import NullPool
from testcontainers.postgres import PostgresContainer

from mindmesh.graph_runtime.auth import create_access_token
from mindmesh.graph_runtime.settings import _get_settings_cached

TEST_JWT_SECRET = "test-secret-do-not-use-in-production"  # noqa: S105


def _set_env(key: str, value: str) -> None:
    """Set an env var and invalidate the settings cache."""
    os.environ[key] = value
    _get_settings_cached.cache_clear()


_set_env("MINDMESH_JWT_SECRET", TEST_JWT_SECRET)


# ---------------------------------------------------------------------------
# Caller identity
# ---------------------------------------------------------------------------


@pytest.fixture
def auth_headers() -> Callable[..., dict[str, str]]:
    """Build ``Authorization`` headers for a user (optionally with roles)."""

    def _make(user_id: str, *roles: str) -> dict[str, str]:
        token = create_access_token(user_id, TEST_JWT_SECRET, roles=list(roles))
        return {"Authorization": f"Bearer {token}"}

    return _make


# ---------------------------------------------------------------------------
# Session-scoped: container (started once, shared across all tests)
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def pg_container() -> Iterator[PostgresContainer]:
    """Start a PostgreSQL 17 container for the test session."""
    with PostgresContainer(
        image="postgres:17",
        username="test",
        password="test",
        dbname="mindmesh_test",
        driver="psycopg",
    ) as pg:
        yield pg


# ---------------------------------------------------------------------------
# Session-scoped: connection URL and schema migration
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def pg_url(pg_container: PostgresContainer) -> str:
    """PostgreSQL URL (psycopg3 dialect) with Alembic migrations applied."""
    url = pg_container.get_connection_url()
    _set_env("MINDMESH_DATABASE_URL", url)

    # Apply all migrations using the packaged alembic.ini (same config as CLI).
    from alembic import command
    from alembic.config import Config

    ini_path = Path(__file__).parent.parent / "mindmesh" / "graph_runtime" / "alembic.ini"
    cfg = Config(str(ini_path))
    command.upgrade(cfg, "head")

    return url


# ---------------------------------------------------------------------------
# Session-scoped: async engine (shared across all tests)
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def async_engine(pg_url: str) -> Iterator[AsyncEngine]:
    """Session-scoped async SQLAlchemy engine.

    ``NullPool`` because every test runs on its own event loop and pooled
    psycopg connections must not outlive the loop that opened them.
    """
    engine = create_async_engine(pg_url, poolclass=NullPool)
    yield engine
    engine.sync_engine.dispose()


# ---------------------------------------------------------------------------
# Function-scoped: DB session with savepoint rollback for test isolation
# ---------------------------------------------------------------------------


@pytest.fixture
async def db_session(async_engine: AsyncEngine) -> AsyncIterator[AsyncSession]:
    """Async SQLAlchemy session; all changes rolled back after the test.

    Uses ``join_transaction_mode="create_savepoint"`` so that session.commit()
    inside tested code only commits a savepoint, while the outer transaction
    is rolled back at teardown -- giving each test a clean database state.
    """
    async with async_engine.connect() as conn:
        await conn.begin()
        session = AsyncSession(bind=conn, join_transaction_mode="create_savepoint", expire_on_commit=False)
        yield session
        await session.close()
        await conn.rollback()

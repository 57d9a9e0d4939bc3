"""Service configuration loaded from MINDMESH_* environment variables."""

from __future__ import annotations

import secrets

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class MindMeshSettings(BaseSettings):
    """Mind Mesh Graph Runtime settings.

    All fields are read from environment variables with the ``MINDMESH_``
    prefix.  For example, ``MINDMESH_LOG_LEVEL=DEBUG`` maps to ``log_level``.

    The canonical planning tables (projects, tracks) live in the same
    database but are owned by another service; nothing here configures them.
    """

    model_config = SettingsConfigDict(
        env_prefix="MINDMESH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # -- Logging ---------------------------------------------------------------
    log_level: str = "INFO"
    log_json: bool = False
    """Emit serialized JSON records instead of the coloured console format."""

    # -- Infrastructure --------------------------------------------------------
    database_url: str | None = None
    """PostgreSQL connection string (psycopg3).  Required for full operation."""

    # -- Auth ------------------------------------------------------------------
    jwt_secret: SecretStr | None = None
    """HS256 secret used to verify caller tokens.  Auto-generated if empty."""

    jwt_algorithm: str = "HS256"

    admin_role: str = "admin"
    """Role claim required to run the duplicate/orphan repair job."""

    # -- Graph engine ----------------------------------------------------------
    query_chunk_size: int = 50
    """Maximum ids per ``IN (...)`` query when loading ports and references."""

    # -- Canvas lock -----------------------------------------------------------
    lock_default_seconds: int = 300
    lock_max_seconds: int = 3600

    # -- Plan execution collaborator -------------------------------------------
    plan_executor_url: str | None = None
    """Base URL of the service that owns plan history and performs rollbacks."""

    plan_executor_timeout: float = 30.0

    # -- Server ----------------------------------------------------------------
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 8000

    # -- Helpers ---------------------------------------------------------------

    def resolve_jwt_secret(self) -> str:
        """Return the configured secret or generate a random one (once)."""
        if self.jwt_secret is None:
            self.jwt_secret = SecretStr(secrets.token_urlsafe(32))
        return self.jwt_secret.get_secret_value()


def get_settings() -> MindMeshSettings:
    """Return a cached settings instance.

    Reads from environment variables and ``.env`` on first call, then returns
    the same object.  Call ``get_settings.cache_clear()`` in tests to force a
    re-read after overriding env vars.
    """
    return _get_settings_cached()


def _get_settings_cached() -> MindMeshSettings:
    """Inner function wrapped by lru_cache (allows type-safe cache_clear)."""
    return MindMeshSettings()


# Apply lru_cache at runtime so the function is only called once.
from functools import lru_cache  # noqa: E402

_get_settings_cached = lru_cache(maxsize=1)(_get_settings_cached)

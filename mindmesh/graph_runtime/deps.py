"""FastAPI dependency injection for DB sessions, callers and the plan executor.

Usage in route handlers::

    @router.get("/{workspace_id}/graph")
    async def fetch_graph(workspace_id: str, db: DbSession, caller: CurrentCaller) -> GraphSnapshot:
        ...

Dependencies raise HTTP 503 if the backing service was not configured
(MINDMESH_DATABASE_URL / MINDMESH_PLAN_EXECUTOR_URL unset) and HTTP 401/403
when the caller cannot be identified or lacks the admin role.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from mindmesh.graph_runtime.auth import Caller, decode_access_token, require_admin
from mindmesh.graph_runtime.errors import AdminRequiredError, AuthenticationError
from mindmesh.graph_runtime.execution.base import PlanExecutor
from mindmesh.graph_runtime.settings import MindMeshSettings

_bearer = HTTPBearer(auto_error=False)


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """Yield an async SQLAlchemy session, closing it after the request.

    Managers commit their own writes.  If the handler raises, the session is
    simply closed and the implicit transaction is rolled back.
    """
    session_factory = request.app.state.db_session_factory
    if session_factory is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database not configured (MINDMESH_DATABASE_URL is unset).",
        )
    session: AsyncSession = session_factory()
    try:
        yield session
    finally:
        await session.close()


def get_app_settings(request: Request) -> MindMeshSettings:
    return request.app.state.settings


async def get_caller(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer)],
) -> Caller:
    """Resolve the bearer token into a ``Caller`` or fail with 401."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(
            status.HTTP_401_UNAUTHORIZED,
            detail="Missing authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )
    settings: MindMeshSettings = request.app.state.settings
    try:
        return decode_access_token(
            credentials.credentials,
            settings.resolve_jwt_secret(),
            algorithm=settings.jwt_algorithm,
        )
    except AuthenticationError as exc:
        raise HTTPException(
            status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
            headers={"WWW-Authenticate": "Bearer"},
        ) from None


async def get_admin_caller(
    request: Request,
    caller: Annotated[Caller, Depends(get_caller)],
) -> Caller:
    """Like ``get_caller`` but additionally requires the admin role."""
    settings: MindMeshSettings = request.app.state.settings
    try:
        return require_admin(caller, settings.admin_role)
    except AdminRequiredError:
        raise HTTPException(status.HTTP_403_FORBIDDEN, detail="Administrative role required.") from None


async def get_plan_executor(request: Request) -> PlanExecutor:
    """Return the shared plan-execution collaborator."""
    executor: PlanExecutor | None = request.app.state.plan_executor
    if executor is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Plan executor not configured (MINDMESH_PLAN_EXECUTOR_URL is unset).",
        )
    return executor


# -- Annotated type aliases for concise route signatures ---------------------

DbSession = Annotated[AsyncSession, Depends(get_db)]
"""Annotated dependency: async SQLAlchemy session (auto-closed after request)."""

Settings = Annotated[MindMeshSettings, Depends(get_app_settings)]

CurrentCaller = Annotated[Caller, Depends(get_caller)]
"""Annotated dependency: authenticated caller (401 otherwise)."""

AdminCaller = Annotated[Caller, Depends(get_admin_caller)]
"""Annotated dependency: authenticated caller holding the admin role."""

PlanExecutorDep = Annotated[PlanExecutor, Depends(get_plan_executor)]
"""Annotated dependency: shared plan-execution collaborator."""

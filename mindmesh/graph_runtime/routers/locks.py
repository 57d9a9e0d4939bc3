"""Canvas lock endpoints (RPC-style)."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from mindmesh.graph_runtime.deps import CurrentCaller, DbSession, Settings
from mindmesh.graph_runtime.errors import (
    AuthorizationError,
    LockDurationError,
    NotFoundError,
    WorkspaceLockedError,
)
from mindmesh.graph_runtime.managers import locks as lock_manager
from mindmesh.graph_runtime.managers.workspaces import authorize_workspace
from mindmesh.graph_runtime.models.api import LockAcquire
from mindmesh.graph_runtime.models.graph import LockView

router = APIRouter(prefix="/workspaces", tags=["locks"])


@router.get("/{workspace_id}/lock/get", response_model=LockView | None)
async def get_lock(workspace_id: str, db: DbSession, caller: CurrentCaller) -> LockView | None:
    """Return the active lock, or null when the workspace is free."""
    try:
        await authorize_workspace(db, workspace_id, caller)
    except NotFoundError:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=f"Workspace '{workspace_id}' not found.") from None
    except AuthorizationError as exc:
        raise HTTPException(status.HTTP_403_FORBIDDEN, detail=str(exc)) from None
    lock = await lock_manager.get_active_lock(db, workspace_id)
    return LockView.model_validate(lock) if lock is not None else None


@router.post("/{workspace_id}/lock/acquire", response_model=LockView)
async def acquire_lock(
    workspace_id: str,
    body: LockAcquire,
    db: DbSession,
    caller: CurrentCaller,
    settings: Settings,
) -> LockView:
    """Acquire a free or expired lock, or renew the caller's own."""
    duration = body.duration_seconds if body.duration_seconds is not None else settings.lock_default_seconds
    try:
        lock = await lock_manager.acquire_lock(
            db,
            workspace_id,
            caller,
            duration,
            max_seconds=settings.lock_max_seconds,
        )
    except LockDurationError as exc:
        raise HTTPException(422, detail=str(exc)) from None
    except NotFoundError:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=f"Workspace '{workspace_id}' not found.") from None
    except AuthorizationError as exc:
        raise HTTPException(status.HTTP_403_FORBIDDEN, detail=str(exc)) from None
    except WorkspaceLockedError as exc:
        raise HTTPException(status.HTTP_409_CONFLICT, detail=str(exc)) from None
    return LockView.model_validate(lock)


@router.post("/{workspace_id}/lock/release", status_code=status.HTTP_204_NO_CONTENT)
async def release_lock(workspace_id: str, db: DbSession, caller: CurrentCaller) -> None:
    """Release the caller's own lock.  No-op when the caller holds none."""
    try:
        await lock_manager.release_lock(db, workspace_id, caller)
    except NotFoundError:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=f"Workspace '{workspace_id}' not found.") from None
    except AuthorizationError as exc:
        raise HTTPException(status.HTTP_403_FORBIDDEN, detail=str(exc)) from None

"""Workspace endpoints (RPC-style).

Thin HTTP adapter -- delegates to ``managers.workspaces``.
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Response, status

from mindmesh.graph_runtime.db.tables import Workspace
from mindmesh.graph_runtime.deps import CurrentCaller, DbSession
from mindmesh.graph_runtime.errors import AuthorizationError, NotFoundError
from mindmesh.graph_runtime.managers import workspaces as workspace_manager
from mindmesh.graph_runtime.models.api import WorkspaceCreate, WorkspaceResponse

router = APIRouter(prefix="/workspaces", tags=["workspaces"])


@router.post("/create", response_model=WorkspaceResponse, status_code=status.HTTP_201_CREATED)
async def create_workspace(body: WorkspaceCreate, db: DbSession, caller: CurrentCaller, response: Response) -> Workspace:
    """Provision the workspace of an owned project (returns the existing one with 200)."""
    try:
        workspace, created = await workspace_manager.create_workspace(db, body, caller)
    except NotFoundError:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=f"Project '{body.project_id}' not found.") from None
    except AuthorizationError as exc:
        raise HTTPException(status.HTTP_403_FORBIDDEN, detail=str(exc)) from None
    if not created:
        response.status_code = status.HTTP_200_OK
    return workspace


@router.get("/{workspace_id}/get", response_model=WorkspaceResponse)
async def get_workspace(workspace_id: str, db: DbSession, caller: CurrentCaller) -> Workspace:
    """Get a single workspace by ID (project owner only)."""
    try:
        return await workspace_manager.authorize_workspace(db, workspace_id, caller)
    except NotFoundError:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=f"Workspace '{workspace_id}' not found.") from None
    except AuthorizationError as exc:
        raise HTTPException(status.HTTP_403_FORBIDDEN, detail=str(exc)) from None

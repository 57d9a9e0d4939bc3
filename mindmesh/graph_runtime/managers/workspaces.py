"""Workspace provisioning and ownership checks.

A workspace mirrors exactly one canonical project and is owned through it:
whoever owns the project owns the workspace.
"""

from __future__ import annotations

import uuid

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mindmesh.graph_runtime.auth import Caller
from mindmesh.graph_runtime.db.tables import Project, Workspace
from mindmesh.graph_runtime.errors import (
    ProjectAccessDeniedError,
    ProjectNotFoundError,
    WorkspaceNotFoundError,
)
from mindmesh.graph_runtime.models.api import WorkspaceCreate


async def get_workspace(db: AsyncSession, workspace_id: str) -> Workspace:
    """Get a workspace by ID.  Raises ``WorkspaceNotFoundError`` if missing."""
    workspace = await db.get(Workspace, workspace_id)
    if workspace is None:
        raise WorkspaceNotFoundError(workspace_id)
    return workspace


async def get_project(db: AsyncSession, project_id: str) -> Project:
    """Get a canonical project by ID.  Raises ``ProjectNotFoundError`` if missing."""
    project = await db.get(Project, project_id)
    if project is None:
        raise ProjectNotFoundError(project_id)
    return project


def ensure_project_owner(project: Project | None, caller: Caller) -> None:
    if project is None or project.user_id != caller.user_id:
        raise ProjectAccessDeniedError(
            f"User {caller.user_id} does not own project {project.project_id if project else '<missing>'}",
        )


async def authorize_workspace(db: AsyncSession, workspace_id: str, caller: Caller) -> Workspace:
    """Load a workspace and check the caller owns its project.

    Raises ``WorkspaceNotFoundError`` or ``ProjectAccessDeniedError``.
    """
    workspace = await get_workspace(db, workspace_id)
    project = await db.get(Project, workspace.master_project_id)
    ensure_project_owner(project, caller)
    return workspace


async def create_workspace(db: AsyncSession, body: WorkspaceCreate, caller: Caller) -> tuple[Workspace, bool]:
    """Create the workspace for an owned project, or return the existing one.

    Returns ``(workspace, created)``.  Two concurrent creations for the same
    project both end up with the single row the unique constraint on
    ``master_project_id`` admits.
    """
    project = await get_project(db, body.project_id)
    ensure_project_owner(project, caller)

    stmt = select(Workspace).where(Workspace.master_project_id == project.project_id)
    existing = await db.scalar(stmt)
    if existing is not None:
        return existing, False

    workspace = Workspace(
        workspace_id=str(uuid.uuid4()),
        master_project_id=project.project_id,
        metadata_=body.metadata or {},
    )
    db.add(workspace)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        existing = await db.scalar(stmt)
        if existing is None:
            raise
        return existing, False

    await db.refresh(workspace)
    logger.info("Created workspace {} for project {}", workspace.workspace_id, project.project_id)
    return workspace, True

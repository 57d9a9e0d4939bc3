"""Lock-gated plan endpoints.

Thin HTTP adapter -- the executor's answer is passed through untouched.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, status

from mindmesh.graph_runtime.deps import CurrentCaller, DbSession, PlanExecutorDep
from mindmesh.graph_runtime.errors import LockRequiredError
from mindmesh.graph_runtime.managers.plans import rollback_last_plan

router = APIRouter(prefix="/workspaces", tags=["plans"])


@router.post("/{workspace_id}/plans/rollback")
async def handle_rollback(
    workspace_id: str,
    db: DbSession,
    caller: CurrentCaller,
    executor: PlanExecutorDep,
) -> dict[str, Any]:
    """Roll back the last applied plan; requires the caller's live canvas lock."""
    try:
        return await rollback_last_plan(db, workspace_id, caller, executor)
    except LockRequiredError as exc:
        raise HTTPException(status.HTTP_403_FORBIDDEN, detail=str(exc)) from None

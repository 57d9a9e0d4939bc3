"""Lock-gated plan mutations delegated to the plan executor."""

from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from mindmesh.graph_runtime.auth import Caller
from mindmesh.graph_runtime.execution.base import PlanExecutor
from mindmesh.graph_runtime.managers.locks import require_lock_holder


async def rollback_last_plan(
    db: AsyncSession,
    workspace_id: str,
    caller: Caller,
    executor: PlanExecutor,
) -> dict[str, Any]:
    """Roll back the last plan if the caller holds the canvas lock.

    Raises ``LockRequiredError`` before the executor is contacted.  The
    executor's result is returned as-is.
    """
    await require_lock_holder(db, workspace_id, caller)
    return await executor.rollback_last_plan(workspace_id, caller.user_id)

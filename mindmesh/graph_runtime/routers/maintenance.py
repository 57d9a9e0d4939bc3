"""Maintenance endpoints (admin only)."""

from __future__ import annotations

from fastapi import APIRouter
from loguru import logger

from mindmesh.graph_runtime.deps import AdminCaller, DbSession
from mindmesh.graph_runtime.managers.repair import run_repair
from mindmesh.graph_runtime.models.api import RepairRequest
from mindmesh.graph_runtime.models.repair import RepairResult

router = APIRouter(prefix="/maintenance", tags=["maintenance"])


@router.post("/repair-duplicates", response_model=RepairResult)
async def handle_repair(body: RepairRequest, db: DbSession, caller: AdminCaller) -> RepairResult:
    """Detect and heal duplicate and orphaned containers.  Dry-run unless ``dryRun`` is false."""
    logger.info("Repair requested by {} (dry_run={}, workspace={})", caller.user_id, body.dry_run, body.workspace_id)
    return await run_repair(db, dry_run=body.dry_run, workspace_id=body.workspace_id)

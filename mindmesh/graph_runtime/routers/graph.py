"""Graph fetch endpoint.

Besides the usual 401/403/404, two failures carry structured payloads in
``detail``: duplicate containers (data integrity) and failed batch queries.
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from mindmesh.graph_runtime.deps import CurrentCaller, DbSession, Settings
from mindmesh.graph_runtime.errors import (
    AuthorizationError,
    DataIntegrityError,
    NotFoundError,
    TransientStoreError,
)
from mindmesh.graph_runtime.managers.graph import fetch_graph
from mindmesh.graph_runtime.models.graph import GraphSnapshot

router = APIRouter(prefix="/workspaces", tags=["graph"])

RECOVERY_INSTRUCTIONS = (
    "Run the duplicate repair job (POST /api/maintenance/repair-duplicates, dryRun first) "
    "to keep the oldest container per entity, then reload the workspace."
)


def integrity_error_payload(exc: DataIntegrityError) -> dict:
    return {
        "error": "Mind Mesh data integrity issue: Duplicate containers detected",
        "details": {
            "message": str(exc),
            "duplicateCount": len(exc.duplicates),
            "duplicates": [
                {**group.model_dump(by_alias=True), "containerCount": group.container_count}
                for group in exc.duplicates
            ],
            "workspaceId": exc.workspace_id,
        },
        "recoveryInstructions": RECOVERY_INSTRUCTIONS,
    }


def transient_error_payload(exc: TransientStoreError) -> dict:
    return {
        "error": "batch_query_failed",
        "details": {
            "message": str(exc),
            "table": exc.table,
            "batchSize": exc.batch_size,
            "totalIds": exc.total_ids,
            "batchIndex": exc.batch_index,
            "totalBatches": exc.total_batches,
        },
    }


@router.get("/{workspace_id}/graph", response_model=GraphSnapshot)
async def handle_fetch_graph(
    workspace_id: str,
    db: DbSession,
    caller: CurrentCaller,
    settings: Settings,
) -> GraphSnapshot:
    """Return the workspace snapshot, materializing missing ghosts first."""
    try:
        return await fetch_graph(db, workspace_id, caller, chunk_size=settings.query_chunk_size)
    except NotFoundError:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=f"Workspace '{workspace_id}' not found.") from None
    except AuthorizationError as exc:
        raise HTTPException(status.HTTP_403_FORBIDDEN, detail=str(exc)) from None
    except DataIntegrityError as exc:
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, detail=integrity_error_payload(exc)) from None
    except TransientStoreError as exc:
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, detail=transient_error_payload(exc)) from None

"""Graph assembler: one consistent read of a workspace's canvas state.

``fetch_graph`` runs every step sequentially on one session:

    authorize -> containers -> ports -> references -> reconciliation
      -> ghost materialization -> nodes -> active lock -> visibility

A failure at any step aborts the rest.  Although this is a read, ghost
materialization may write new containers and references; repeated fetches
converge to the same container set.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from typing import Any, TypeVar

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from mindmesh.graph_runtime.auth import Caller
from mindmesh.graph_runtime.db.tables import Base, Container, ContainerReference, Node, Port
from mindmesh.graph_runtime.errors import AuthenticationError, DataIntegrityError, TransientStoreError
from mindmesh.graph_runtime.managers.locks import get_active_lock
from mindmesh.graph_runtime.managers.materializer import materialize_ghosts
from mindmesh.graph_runtime.managers.reconciliation import build_reconciliation_map
from mindmesh.graph_runtime.managers.workspaces import authorize_workspace
from mindmesh.graph_runtime.models.api import WorkspaceResponse
from mindmesh.graph_runtime.models.graph import (
    GraphSnapshot,
    LockView,
    NodeView,
    PortView,
    ReferenceView,
    container_to_view,
)

DEFAULT_CHUNK_SIZE = 50

RowT = TypeVar("RowT", bound=Base)


async def fetch_in_chunks(
    db: AsyncSession,
    model: type[RowT],
    column: InstrumentedAttribute[Any],
    ids: Sequence[str],
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    order_by: Sequence[InstrumentedAttribute[Any]] = (),
) -> list[RowT]:
    """Load ``model`` rows whose *column* is in *ids*, ``chunk_size`` ids per query.

    Any failed batch aborts the whole load with ``TransientStoreError``.
    """
    if not ids:
        return []
    table = model.__tablename__
    total_batches = math.ceil(len(ids) / chunk_size)
    rows: list[RowT] = []
    for batch_index in range(total_batches):
        batch = list(ids[batch_index * chunk_size : (batch_index + 1) * chunk_size])
        logger.debug("Loading {} batch {}/{} ({} ids)", table, batch_index + 1, total_batches, len(batch))
        try:
            result = await db.execute(select(model).where(column.in_(batch)).order_by(*order_by))
        except SQLAlchemyError as exc:
            logger.error(
                "Batch query on {} failed at batch {}/{} ({} ids total): {}",
                table,
                batch_index + 1,
                total_batches,
                len(ids),
                exc,
            )
            raise TransientStoreError(
                f"Failed to load {table}: {exc}",
                table=table,
                batch_size=chunk_size,
                total_ids=len(ids),
                batch_index=batch_index,
                total_batches=total_batches,
            ) from exc
        rows.extend(result.scalars().all())
    return rows


async def load_containers(db: AsyncSession, workspace_id: str) -> list[Container]:
    """Live (non-archived) containers, oldest first."""
    stmt = (
        select(Container)
        .where(Container.workspace_id == workspace_id, Container.archived_at.is_(None))
        .order_by(Container.created_at, Container.container_id)
    )
    return list((await db.scalars(stmt)).all())


async def load_nodes(db: AsyncSession, workspace_id: str) -> list[Node]:
    stmt = select(Node).where(Node.workspace_id == workspace_id).order_by(Node.created_at, Node.node_id)
    return list((await db.scalars(stmt)).all())


async def fetch_graph(
    db: AsyncSession,
    workspace_id: str,
    caller: Caller | None,
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> GraphSnapshot:
    """Assemble the full snapshot for *workspace_id*.

    Raises ``AuthenticationError``, ``WorkspaceNotFoundError``,
    ``ProjectAccessDeniedError``, ``TransientStoreError`` or
    ``DataIntegrityError``.
    """
    if caller is None:
        raise AuthenticationError("Caller identity required")
    workspace = await authorize_workspace(db, workspace_id, caller)
    workspace_view = WorkspaceResponse.model_validate(workspace)

    containers = await load_containers(db, workspace_id)
    container_ids = [c.container_id for c in containers]
    ports = await fetch_in_chunks(
        db,
        Port,
        Port.container_id,
        container_ids,
        chunk_size=chunk_size,
        order_by=(Port.created_at, Port.port_id),
    )
    references = await fetch_in_chunks(
        db,
        ContainerReference,
        ContainerReference.container_id,
        container_ids,
        chunk_size=chunk_size,
        order_by=(ContainerReference.created_at, ContainerReference.reference_id),
    )

    reconciliation = build_reconciliation_map(references)
    if not reconciliation.is_consistent:
        raise DataIntegrityError(workspace_id, reconciliation.duplicates)

    # Materialization commits (and may roll back), which expires loaded rows.
    container_views = [container_to_view(c) for c in containers]
    port_views = [PortView.model_validate(p) for p in ports]
    reference_views = [ReferenceView.model_validate(r) for r in references]

    materialized = await materialize_ghosts(
        db,
        workspace_id,
        workspace_view.master_project_id,
        reconciliation,
        container_views,
    )
    container_views.extend(materialized.containers)
    reference_views.extend(materialized.references)

    nodes = await load_nodes(db, workspace_id)
    lock = await get_active_lock(db, workspace_id)

    logger.info(
        "Fetched graph for workspace {}: {} containers ({} new ghosts), {} ports, {} references",
        workspace_id,
        len(container_views),
        len(materialized.containers),
        len(port_views),
        len(reference_views),
    )
    return GraphSnapshot(
        workspace=workspace_view,
        containers=container_views,
        nodes=[NodeView.model_validate(n) for n in nodes],
        ports=port_views,
        references=reference_views,
        current_lock=LockView.model_validate(lock) if lock is not None else None,
        visibility={view.id: True for view in container_views},
    )

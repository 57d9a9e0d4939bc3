"""Ghost materializer.

Makes sure every top-level track and subtrack of a project has exactly one
container, creating placeholder ("ghost") containers for the ones that do
not.  No lock is taken.  Concurrent callers may both insert containers for
the same track; the partial unique index on primary references lets exactly
one reference in, and each caller deletes the containers whose reference
did not make it:

0. Delete primary references that still point at archived containers.
1. Insert all ghost containers in one statement and commit.
2. Insert one primary reference per new container in one
   ``ON CONFLICT DO NOTHING ... RETURNING`` statement.  The returned rows
   are the confirmed winners.
3. Hard-delete every new container without a confirmed reference (all of
   them when step 2 fails outright).
"""

from __future__ import annotations

import uuid
from collections import defaultdict
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field

from loguru import logger
from sqlalchemy import delete, insert, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from mindmesh.graph_runtime.db.tables import (
    PRIMARY_REFERENCE_PREDICATE,
    Container,
    ContainerReference,
    Track,
)
from mindmesh.graph_runtime.models.enums import EntityType
from mindmesh.graph_runtime.models.graph import ContainerView, ReconciliationMap, ReferenceView, container_to_view

# -- Grid layout -------------------------------------------------------------

GRID_ORIGIN_X = 100.0
GRID_ORIGIN_Y = 100.0
COLUMN_SPACING = 400.0
ROW_SPACING = 1200.0
ROW_WRAP_X = 1200.0
SUBTRACK_INDENT = 50.0
SUBTRACK_SPACING = 300.0
GHOST_WIDTH = 300.0
GHOST_HEIGHT = 200.0


@dataclass(frozen=True)
class GhostPlacement:
    """Where (and as what) a missing track should be materialized."""

    entity_id: str
    title: str
    body: str | None
    x: float
    y: float
    entity_type: str = EntityType.TRACK


@dataclass
class MaterializationResult:
    containers: list[ContainerView] = field(default_factory=list)
    references: list[ReferenceView] = field(default_factory=list)
    attempted: int = 0
    discarded: int = 0


def _track_order(track: Track) -> tuple[int, str]:
    return (track.ordering_index or 0, track.track_id)


def plan_ghost_layout(
    tracks: Iterable[Track],
    reconciliation: ReconciliationMap,
    anchors: Mapping[str, tuple[float, float]] | None = None,
) -> list[GhostPlacement]:
    """Compute deterministic grid positions for tracks without a container.

    Top-level tracks go left to right, ``COLUMN_SPACING`` apart, wrapping to
    a new row once x passes ``ROW_WRAP_X``.  A track's missing subtracks are
    stacked below it, indented by ``SUBTRACK_INDENT``.

    *anchors* maps track ids to the position of their existing container.
    Missing subtracks of an anchored parent are stacked below the parent's
    existing subtracks and consume no grid column.  Without an anchor they
    get the next free column.  Subtracks whose parent is not a top-level
    track of the same project are ignored.
    """
    anchors = anchors or {}
    top_level: list[Track] = []
    children: dict[str, list[Track]] = defaultdict(list)
    for track in tracks:
        if track.parent_track_id is None:
            top_level.append(track)
        else:
            children[track.parent_track_id].append(track)

    placements: list[GhostPlacement] = []
    x, y = GRID_ORIGIN_X, GRID_ORIGIN_Y
    for track in sorted(top_level, key=_track_order):
        track_missing = not reconciliation.has_container(EntityType.TRACK, track.track_id)
        subtracks = sorted(children.get(track.track_id, []), key=_track_order)
        missing_subtracks = [
            sub for sub in subtracks if not reconciliation.has_container(EntityType.TRACK, sub.track_id)
        ]
        if not track_missing and not missing_subtracks:
            continue

        anchor = None if track_missing else anchors.get(track.track_id)
        if anchor is not None:
            base_x, base_y = anchor
            offset = len(subtracks) - len(missing_subtracks)
        else:
            base_x, base_y = x, y
            offset = 0

        if track_missing:
            placements.append(
                GhostPlacement(entity_id=track.track_id, title=track.name, body=track.description, x=x, y=y),
            )
        for k, sub in enumerate(missing_subtracks, start=offset + 1):
            placements.append(
                GhostPlacement(
                    entity_id=sub.track_id,
                    title=sub.name,
                    body=sub.description,
                    x=base_x + SUBTRACK_INDENT,
                    y=base_y + SUBTRACK_SPACING * k,
                ),
            )

        if anchor is not None:
            continue
        x += COLUMN_SPACING
        if x > ROW_WRAP_X:
            x = GRID_ORIGIN_X
            y += ROW_SPACING

    return placements


# -- Store operations --------------------------------------------------------


async def load_project_tracks(db: AsyncSession, project_id: str) -> Sequence[Track]:
    stmt = (
        select(Track)
        .where(Track.master_project_id == project_id)
        .order_by(Track.ordering_index, Track.track_id)
    )
    return (await db.scalars(stmt)).all()


async def _delete_containers(db: AsyncSession, workspace_id: str, container_ids: list[str]) -> None:
    """Hard-delete never-acknowledged ghosts.  Failures are logged only.

    The reference insert has already decided the winner; a leftover loser is
    an unreferenced ghost that no later materialization depends on.
    """
    if not container_ids:
        return
    try:
        await db.execute(
            delete(Container).where(
                Container.workspace_id == workspace_id,
                Container.container_id.in_(container_ids),
            ),
        )
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception(
            "Failed to delete {} unreferenced ghost containers in workspace {}: {}",
            len(container_ids),
            workspace_id,
            container_ids,
        )
    else:
        logger.warning(
            "Deleted {} ghost containers that lost the reference race in workspace {}",
            len(container_ids),
            workspace_id,
        )


def build_reference_rows(
    workspace_id: str,
    container_ids: Sequence[str],
    placements: Sequence[GhostPlacement],
) -> list[dict]:
    """One primary reference row per new container, in placement order."""
    return [
        {
            "reference_id": str(uuid.uuid4()),
            "workspace_id": workspace_id,
            "container_id": container_id,
            "entity_type": str(p.entity_type),
            "entity_id": p.entity_id,
            "is_primary": True,
        }
        for container_id, p in zip(container_ids, placements, strict=True)
    ]


async def release_archived_references(db: AsyncSession, workspace_id: str, entity_ids: Sequence[str]) -> int:
    """Delete primary track references that still point at archived containers.

    Archival is terminal, so such a reference no longer represents the
    entity; left in place it would win every ``ON CONFLICT`` against the new
    ghost and the track would never get a live container.
    """
    if not entity_ids:
        return 0
    archived = select(Container.container_id).where(
        Container.workspace_id == workspace_id,
        Container.archived_at.is_not(None),
    )
    stmt = (
        delete(ContainerReference)
        .where(
            ContainerReference.workspace_id == workspace_id,
            ContainerReference.entity_type == EntityType.TRACK,
            ContainerReference.entity_id.in_(list(entity_ids)),
            ContainerReference.container_id.in_(archived),
        )
        .returning(ContainerReference.reference_id)
    )
    released = (await db.execute(stmt)).scalars().all()
    await db.commit()
    if released:
        logger.warning(
            "Released {} references to archived containers in workspace {}",
            len(released),
            workspace_id,
        )
    return len(released)


async def insert_ghosts(
    db: AsyncSession,
    workspace_id: str,
    placements: Sequence[GhostPlacement],
) -> MaterializationResult:
    """Insert containers and primary references for *placements*, then compensate."""
    result = MaterializationResult(attempted=len(placements))
    if not placements:
        return result

    container_rows = [
        {
            "container_id": str(uuid.uuid4()),
            "workspace_id": workspace_id,
            "title": p.title,
            "body": p.body,
            "is_ghost": True,
            "x_position": p.x,
            "y_position": p.y,
            "width": GHOST_WIDTH,
            "height": GHOST_HEIGHT,
            "metadata_": {"entity_id": p.entity_id, "entity_type": str(p.entity_type)},
        }
        for p in placements
    ]
    created = await db.scalars(insert(Container).returning(Container), container_rows)
    views = {c.container_id: container_to_view(c) for c in created}
    created_ids = [row["container_id"] for row in container_rows]
    await db.commit()
    logger.info("Inserted {} ghost containers in workspace {}", len(views), workspace_id)

    stmt = (
        pg_insert(ContainerReference)
        .values(build_reference_rows(workspace_id, created_ids, placements))
        .on_conflict_do_nothing(
            index_elements=["workspace_id", "entity_type", "entity_id"],
            index_where=PRIMARY_REFERENCE_PREDICATE,
        )
        .returning(ContainerReference)
    )
    try:
        confirmed = [ReferenceView.model_validate(ref) for ref in await db.scalars(stmt)]
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.warning(
            "Reference insert failed for {} ghosts in workspace {}, discarding all: {}",
            len(created_ids),
            workspace_id,
            exc,
        )
        await _delete_containers(db, workspace_id, created_ids)
        result.discarded = len(created_ids)
        return result

    confirmed_ids = {ref.container_id for ref in confirmed}
    result.containers = [views[container_id] for container_id in created_ids if container_id in confirmed_ids]
    result.references = confirmed

    losers = [container_id for container_id in created_ids if container_id not in confirmed_ids]
    if losers:
        logger.warning(
            "{} of {} ghosts in workspace {} lost the reference race",
            len(losers),
            len(created_ids),
            workspace_id,
        )
        await _delete_containers(db, workspace_id, losers)

    result.discarded = len(losers)
    logger.info(
        "Materialized ghosts in workspace {}: attempted={}, confirmed={}, discarded={}",
        workspace_id,
        result.attempted,
        len(result.containers),
        result.discarded,
    )
    return result


async def materialize_ghosts(
    db: AsyncSession,
    workspace_id: str,
    project_id: str,
    reconciliation: ReconciliationMap,
    existing: Sequence[ContainerView] = (),
) -> MaterializationResult:
    """Create ghost containers for every project track missing from *reconciliation*.

    *existing* are the workspace's live containers; entity-backed track
    containers among them anchor the placement of their missing subtracks.
    Only containers with a confirmed primary reference are returned.
    """
    tracks = await load_project_tracks(db, project_id)
    anchors = {
        view.entity_id: (view.x, view.y)
        for view in existing
        if view.entity_type == EntityType.TRACK and view.entity_id is not None
    }
    placements = plan_ghost_layout(tracks, reconciliation, anchors)
    if not placements:
        logger.debug("Workspace {} has no tracks to materialize", workspace_id)
        return MaterializationResult()
    await release_archived_references(db, workspace_id, [p.entity_id for p in placements])
    return await insert_ghosts(db, workspace_id, placements)

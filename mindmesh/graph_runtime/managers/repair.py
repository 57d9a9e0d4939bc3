"""Duplicate and orphan repair job.

Run out of band (HTTP maintenance endpoint or ``mindmesh repair``), never on
the read path.  For every entity referenced by more than one container the
oldest live container is kept; the others are archived and every reference in
the group not pointing at the kept container is deleted.  Non-ghost
containers without any reference are archived as orphans.

Each duplicate group commits on its own, so one failing group does not stop
the rest.  Dry-run computes and reports exactly the same decisions without
issuing any write.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence

from loguru import logger
from sqlalchemy import Row, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from mindmesh.graph_runtime.db.tables import Container, ContainerReference
from mindmesh.graph_runtime.managers.reconciliation import group_references
from mindmesh.graph_runtime.models.graph import DuplicateGroup
from mindmesh.graph_runtime.models.repair import CleanupAction, RepairResult

GroupKey = tuple[str, str, str]
"""``(workspace_id, entity_type, entity_id)``"""


async def load_references(db: AsyncSession, workspace_id: str | None = None) -> list[Row]:
    """Reference rows in scope as plain rows, so per-group rollbacks cannot expire them."""
    stmt = select(
        ContainerReference.reference_id,
        ContainerReference.workspace_id,
        ContainerReference.container_id,
        ContainerReference.entity_type,
        ContainerReference.entity_id,
    ).order_by(ContainerReference.created_at, ContainerReference.reference_id)
    if workspace_id is not None:
        stmt = stmt.where(ContainerReference.workspace_id == workspace_id)
    return list((await db.execute(stmt)).all())


def find_duplicate_groups(references: Sequence[Row]) -> dict[GroupKey, list[Row]]:
    """Reference rows per entity, keeping only entities with more than one container."""
    by_workspace: dict[str, list[Row]] = defaultdict(list)
    for ref in references:
        by_workspace[ref.workspace_id].append(ref)

    groups: dict[GroupKey, list[Row]] = {}
    for workspace_id, refs in by_workspace.items():
        for (entity_type, entity_id), container_ids in group_references(refs).items():
            if len(container_ids) < 2:
                continue
            groups[(workspace_id, entity_type, entity_id)] = [
                ref for ref in refs if ref.entity_type == entity_type and ref.entity_id == entity_id
            ]
    return groups


async def detect_duplicates(db: AsyncSession, workspace_id: str | None = None) -> list[DuplicateGroup]:
    """Duplicate groups currently in the store (read-only)."""
    groups = find_duplicate_groups(await load_references(db, workspace_id))
    return [
        DuplicateGroup(
            entity_type=entity_type,
            entity_id=entity_id,
            container_ids=list(dict.fromkeys(ref.container_id for ref in refs)),
        )
        for (_, entity_type, entity_id), refs in groups.items()
    ]


async def detect_orphans(db: AsyncSession, workspace_id: str | None = None) -> list[str]:
    """Ids of live non-ghost containers that no reference points at.

    Ghosts are excluded: the materializer removes its own unreferenced ghosts.
    """
    referenced = select(ContainerReference.container_id)
    stmt = select(Container.container_id).where(
        Container.is_ghost.is_(False),
        Container.archived_at.is_(None),
        Container.container_id.not_in(referenced),
    )
    if workspace_id is not None:
        stmt = stmt.where(Container.workspace_id == workspace_id)
    stmt = stmt.order_by(Container.created_at, Container.container_id)
    return list((await db.scalars(stmt)).all())


async def plan_group_cleanup(
    db: AsyncSession,
    key: GroupKey,
    refs: Sequence[Row],
) -> CleanupAction | None:
    """Decide which container of a duplicate group survives.  Read-only.

    The oldest live container wins; an archived one is kept only when the
    whole group is already archived.
    """
    workspace_id, entity_type, entity_id = key
    container_ids = list(dict.fromkeys(ref.container_id for ref in refs))
    stmt = (
        select(Container)
        .where(Container.container_id.in_(container_ids))
        .order_by(Container.archived_at.is_not(None), Container.created_at, Container.container_id)
    )
    containers = list((await db.scalars(stmt)).all())
    if not containers:
        return None

    kept = containers[0]
    return CleanupAction(
        entity_type=entity_type,
        entity_id=entity_id,
        workspace_id=workspace_id,
        kept_container_id=kept.container_id,
        kept_container_created_at=kept.created_at,
        removed_container_ids=[c.container_id for c in containers[1:]],
        removed_reference_ids=[ref.reference_id for ref in refs if ref.container_id != kept.container_id],
    )


async def apply_group_cleanup(db: AsyncSession, action: CleanupAction) -> None:
    """Archive the losing containers and delete their references in one transaction."""
    if action.removed_container_ids:
        await db.execute(
            update(Container)
            .where(
                Container.container_id.in_(action.removed_container_ids),
                Container.archived_at.is_(None),
            )
            .values(archived_at=func.now()),
        )
    if action.removed_reference_ids:
        await db.execute(
            delete(ContainerReference).where(ContainerReference.reference_id.in_(action.removed_reference_ids)),
        )
    await db.commit()


async def archive_orphans(db: AsyncSession, container_ids: Sequence[str]) -> None:
    await db.execute(
        update(Container).where(Container.container_id.in_(list(container_ids))).values(archived_at=func.now()),
    )
    await db.commit()


async def run_repair(db: AsyncSession, *, dry_run: bool = True, workspace_id: str | None = None) -> RepairResult:
    """Detect and (unless *dry_run*) heal duplicate groups and orphaned containers."""
    logger.info(
        "Starting repair ({} mode) for {}",
        "dry-run" if dry_run else "execute",
        f"workspace {workspace_id}" if workspace_id else "all workspaces",
    )
    references = await load_references(db, workspace_id)
    groups = find_duplicate_groups(references)
    orphans = await detect_orphans(db, workspace_id)
    logger.info("Found {} duplicate groups and {} orphaned containers", len(groups), len(orphans))

    result = RepairResult(
        success=True,
        dry_run=dry_run,
        total_duplicate_groups=len(groups),
        total_orphaned_containers=len(orphans),
        orphaned_container_ids=orphans,
    )

    for key, refs in groups.items():
        _, entity_type, entity_id = key
        try:
            action = await plan_group_cleanup(db, key, refs)
            if action is None:
                continue
            if not dry_run:
                await apply_group_cleanup(db, action)
        except Exception as exc:  # noqa: BLE001
            await db.rollback()
            message = f"Failed to process group {entity_type}:{entity_id}: {exc}"
            logger.error("{}", message)
            result.errors.append(message)
            continue

        result.actions.append(action)
        result.groups_processed += 1
        result.total_containers_removed += len(action.removed_container_ids)
        result.total_references_removed += len(action.removed_reference_ids)

    if orphans and not dry_run:
        try:
            await archive_orphans(db, orphans)
        except Exception as exc:  # noqa: BLE001
            await db.rollback()
            message = f"Failed to archive {len(orphans)} orphaned containers: {exc}"
            logger.error("{}", message)
            result.errors.append(message)

    result.success = not result.errors
    logger.info(
        "Repair finished: groups={}/{}, containers_removed={}, references_removed={}, orphans={}, errors={}",
        result.groups_processed,
        result.total_duplicate_groups,
        result.total_containers_removed,
        result.total_references_removed,
        result.total_orphaned_containers,
        len(result.errors),
    )
    return result

"""Canvas lock: a per-workspace, time-boxed, single-owner edit permission.

At most one row per workspace (unique ``workspace_id``).  Expiry is only ever
compared, never enforced by a timer: an expired row stays in the table until
the next acquisition overwrites it.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta

from loguru import logger
from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from mindmesh.graph_runtime.auth import Caller
from mindmesh.graph_runtime.db.tables import CanvasLock
from mindmesh.graph_runtime.errors import LockDurationError, LockRequiredError, WorkspaceLockedError
from mindmesh.graph_runtime.managers.workspaces import authorize_workspace


def _utcnow() -> datetime:
    return datetime.now(UTC)


def is_held_by(lock: CanvasLock | None, user_id: str, now: datetime) -> bool:
    """True when *lock* is live at *now* and owned by *user_id*."""
    return lock is not None and lock.user_id == user_id and lock.expires_at > now


def validate_duration(duration_seconds: int, max_seconds: int) -> None:
    if duration_seconds <= 0:
        raise LockDurationError(f"Lock duration must be positive, got {duration_seconds}")
    if duration_seconds > max_seconds:
        raise LockDurationError(f"Lock duration {duration_seconds}s exceeds maximum of {max_seconds}s")


async def get_active_lock(db: AsyncSession, workspace_id: str, *, now: datetime | None = None) -> CanvasLock | None:
    """Return the workspace's non-expired lock, or ``None``."""
    now = now or _utcnow()
    stmt = select(CanvasLock).where(CanvasLock.workspace_id == workspace_id, CanvasLock.expires_at > now)
    return await db.scalar(stmt)


async def acquire_lock(
    db: AsyncSession,
    workspace_id: str,
    caller: Caller,
    duration_seconds: int,
    *,
    max_seconds: int = 3600,
) -> CanvasLock:
    """Take a free or expired lock, or renew the caller's own.

    Raises ``LockDurationError`` for an out-of-range duration,
    ``WorkspaceNotFoundError`` / ``ProjectAccessDeniedError`` when the
    caller does not own the workspace, and ``WorkspaceLockedError`` when
    someone else holds a live lock.
    """
    validate_duration(duration_seconds, max_seconds)
    await authorize_workspace(db, workspace_id, caller)

    now = _utcnow()
    stmt = pg_insert(CanvasLock).values(
        lock_id=str(uuid.uuid4()),
        workspace_id=workspace_id,
        user_id=caller.user_id,
        expires_at=now + timedelta(seconds=duration_seconds),
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["workspace_id"],
        set_={"user_id": stmt.excluded.user_id, "expires_at": stmt.excluded.expires_at},
        where=(CanvasLock.expires_at <= now) | (CanvasLock.user_id == stmt.excluded.user_id),
    ).returning(CanvasLock)

    lock = await db.scalar(stmt, execution_options={"populate_existing": True})
    if lock is None:
        await db.rollback()
        holder = await get_active_lock(db, workspace_id)
        logger.info("Lock on workspace {} refused for user {}", workspace_id, caller.user_id)
        raise WorkspaceLockedError(workspace_id, holder.user_id if holder else None)

    await db.commit()
    logger.info("User {} holds lock on workspace {} until {}", caller.user_id, workspace_id, lock.expires_at)
    return lock


async def release_lock(db: AsyncSession, workspace_id: str, caller: Caller) -> bool:
    """Delete the caller's own lock row.  Returns whether one existed."""
    await authorize_workspace(db, workspace_id, caller)
    stmt = (
        delete(CanvasLock)
        .where(CanvasLock.workspace_id == workspace_id, CanvasLock.user_id == caller.user_id)
        .returning(CanvasLock.lock_id)
    )
    released = await db.scalar(stmt)
    await db.commit()
    if released is not None:
        logger.info("User {} released lock on workspace {}", caller.user_id, workspace_id)
    return released is not None


async def require_lock_holder(db: AsyncSession, workspace_id: str, caller: Caller) -> CanvasLock:
    """Return the caller's live lock or raise ``LockRequiredError``.

    No retry, no waiting: an absent, expired, or foreign lock is rejected
    immediately.
    """
    now = _utcnow()
    lock = await get_active_lock(db, workspace_id, now=now)
    if not is_held_by(lock, caller.user_id, now):
        logger.warning("Rejected lock-gated mutation on workspace {} by user {}", workspace_id, caller.user_id)
        raise LockRequiredError(workspace_id)
    return lock

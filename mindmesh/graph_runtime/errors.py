"""Domain exception taxonomy for the graph runtime.

Managers raise these; routers translate them into HTTP responses.  None of
them carry HTTP semantics themselves so the CLI can reuse the managers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mindmesh.graph_runtime.models.graph import DuplicateGroup


class MindMeshError(Exception):
    """Base class for all graph-runtime domain errors."""


class AuthenticationError(MindMeshError):
    """Missing, malformed, or expired caller identity."""


class AuthorizationError(MindMeshError):
    """Caller is known but may not perform the operation."""


class NotFoundError(MindMeshError, LookupError):
    """Requested workspace or entity does not exist."""


class DataIntegrityError(MindMeshError):
    """More than one container represents the same canonical entity.

    Raised on the read path instead of silently picking a winner.  The only
    sanctioned remedy is the out-of-band repair job.
    """

    def __init__(self, workspace_id: str, duplicates: list[DuplicateGroup]) -> None:
        self.workspace_id = workspace_id
        self.duplicates = duplicates
        super().__init__(f"{len(duplicates)} duplicate container group(s) in workspace {workspace_id}")


class TransientStoreError(MindMeshError):
    """A batched store query failed; nothing was committed, safe to retry."""

    def __init__(
        self,
        message: str,
        *,
        table: str,
        batch_size: int,
        total_ids: int,
        batch_index: int,
        total_batches: int,
    ) -> None:
        self.table = table
        self.batch_size = batch_size
        self.total_ids = total_ids
        self.batch_index = batch_index
        self.total_batches = total_batches
        super().__init__(message)


# -- Authorization -----------------------------------------------------------


class ProjectAccessDeniedError(AuthorizationError):
    """Caller does not own the canonical project backing the workspace."""


class LockRequiredError(AuthorizationError):
    """Mutation requires the caller to hold a live canvas lock."""

    MESSAGE = "Canvas lock required: acquire the workspace lock before rolling back"

    def __init__(self, workspace_id: str) -> None:
        self.workspace_id = workspace_id
        super().__init__(self.MESSAGE)


class AdminRequiredError(AuthorizationError):
    """Operation is restricted to administrative callers."""


# -- Lookup ------------------------------------------------------------------


class WorkspaceNotFoundError(NotFoundError):
    pass


class ProjectNotFoundError(NotFoundError):
    pass


# -- Canvas lock -------------------------------------------------------------


class WorkspaceLockedError(MindMeshError):
    """Another caller holds a live canvas lock on the workspace."""

    def __init__(self, workspace_id: str, holder_id: str | None = None) -> None:
        self.workspace_id = workspace_id
        self.holder_id = holder_id
        super().__init__(f"Workspace {workspace_id} is locked by another user")


class LockDurationError(MindMeshError, ValueError):
    """Requested lock duration is outside ``(0, lock_max_seconds]``."""

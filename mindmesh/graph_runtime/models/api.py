"""API request / response schemas for the HTTP endpoints.

These thin schemas sit between HTTP and the ORM layer:

- **Request** schemas validate user input and provide defaults.
- **Response** schemas serialize ORM rows via ``from_attributes``.

The repair endpoint keeps the camelCase wire names its operators' tooling
already sends (``dryRun``, ``workspaceId``); everything else is snake_case.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# ---------------------------------------------------------------------------
# Workspace
# ---------------------------------------------------------------------------


class WorkspaceCreate(BaseModel):
    """Input for provisioning the workspace of a canonical project."""

    project_id: str = Field(description="Canonical project the workspace mirrors; one workspace per project.")
    metadata: dict | None = None


class WorkspaceResponse(BaseModel):
    """Serialized workspace returned to clients.

    The ORM attribute is ``metadata_`` (``metadata`` is reserved on
    declarative classes), so we use ``validation_alias`` to read it.
    """

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    workspace_id: str
    master_project_id: str
    metadata: dict | None = Field(default=None, validation_alias="metadata_")
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------------------
# Canvas lock
# ---------------------------------------------------------------------------


class LockAcquire(BaseModel):
    """Input for acquiring (or renewing) the workspace canvas lock."""

    duration_seconds: int | None = Field(
        default=None,
        description="Lock lifetime; defaults to MINDMESH_LOCK_DEFAULT_SECONDS.",
    )


# ---------------------------------------------------------------------------
# Repair
# ---------------------------------------------------------------------------


class RepairRequest(BaseModel):
    """Input for the duplicate/orphan repair job."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    dry_run: bool = Field(default=True, description="Report decisions without mutating anything.")
    workspace_id: str | None = Field(default=None, description="Restrict the run to one workspace.")

"""Repair job result models.

Serialized with camelCase aliases (``totalDuplicateGroups``, ...), matching
the report format operators already consume.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CleanupAction(_CamelModel):
    """What the repair job decided (or did) for one duplicate group."""

    entity_type: str
    entity_id: str
    workspace_id: str
    kept_container_id: str
    kept_container_created_at: datetime
    removed_container_ids: list[str] = Field(default_factory=list)
    removed_reference_ids: list[str] = Field(default_factory=list)


class RepairResult(_CamelModel):
    success: bool
    dry_run: bool
    total_duplicate_groups: int = 0
    groups_processed: int = 0
    total_containers_removed: int = 0
    total_references_removed: int = 0
    total_orphaned_containers: int = 0
    actions: list[CleanupAction] = Field(default_factory=list)
    orphaned_container_ids: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)

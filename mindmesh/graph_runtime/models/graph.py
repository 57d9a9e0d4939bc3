"""Graph snapshot and reconciliation data models.

The persisted container row and the container view model deliberately differ:
rows keep the backing entity identity inside the ``metadata`` JSONB column,
while the view flattens it to top-level ``entity_type`` / ``entity_id`` and
derives ``state`` from ``is_ghost``.  ``container_to_view`` is the only place
that conversion happens.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from mindmesh.graph_runtime.models.api import WorkspaceResponse
from mindmesh.graph_runtime.models.enums import (
    PORT_CAPABLE_ENTITY_TYPES,
    ContainerState,
    PortType,
    RelationshipDirection,
    SpawnStrategy,
)

if TYPE_CHECKING:
    from mindmesh.graph_runtime.db.tables import Container

EntityKey = tuple[str, str]
"""``(entity_type, entity_id)`` identity of a canonical entity."""


# -- Reconciliation ----------------------------------------------------------


class DuplicateGroup(BaseModel):
    """One canonical entity represented by more than one container."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    entity_type: str
    entity_id: str
    container_ids: list[str]

    @property
    def container_count(self) -> int:
        return len(self.container_ids)


@dataclass
class ReconciliationMap:
    """Authoritative entity -> container mapping for one workspace.

    Rebuilt from reference rows on every graph fetch; never persisted.
    """

    entity_to_container: dict[EntityKey, str] = field(default_factory=dict)
    duplicates: list[DuplicateGroup] = field(default_factory=list)

    def container_for(self, entity_type: str, entity_id: str) -> str | None:
        return self.entity_to_container.get((entity_type, entity_id))

    def has_container(self, entity_type: str, entity_id: str) -> bool:
        return (entity_type, entity_id) in self.entity_to_container

    @property
    def is_consistent(self) -> bool:
        return not self.duplicates


# -- View models ---------------------------------------------------------------


class ContainerView(BaseModel):
    """Container as returned to the canvas."""

    id: str
    workspace_id: str
    entity_type: str | None = None
    entity_id: str | None = None
    state: ContainerState
    x: float
    y: float
    width: float
    height: float
    title: str = ""
    body: str = ""
    spawn_strategy: SpawnStrategy
    user_positioned: bool
    layout_broken: bool = False
    port_capable: bool = False
    last_interaction_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


def container_to_view(row: Container) -> ContainerView:
    """Map a persisted container row to its view model.

    Ghosts were placed by the materializer's grid layout; every other
    container is treated as user-positioned.  Freeform containers have no
    backing entity and map to ``None`` identity fields.
    """
    metadata = row.metadata_ or {}
    entity_type = metadata.get("entity_type") or None
    entity_id = metadata.get("entity_id") or None
    return ContainerView(
        id=row.container_id,
        workspace_id=row.workspace_id,
        entity_type=entity_type,
        entity_id=entity_id,
        state=ContainerState.GHOST if row.is_ghost else ContainerState.ACTIVE,
        x=float(row.x_position),
        y=float(row.y_position),
        width=float(row.width),
        height=float(row.height),
        title=row.title or "",
        body=row.body or "",
        spawn_strategy=SpawnStrategy.VERTICAL_STACK if row.is_ghost else SpawnStrategy.MANUAL,
        user_positioned=not row.is_ghost,
        port_capable=entity_type in PORT_CAPABLE_ENTITY_TYPES,
        last_interaction_at=row.updated_at,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class ReferenceView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    reference_id: str
    workspace_id: str
    container_id: str
    entity_type: str
    entity_id: str
    is_primary: bool
    created_at: datetime | None = None


class PortView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    port_id: str
    container_id: str
    port_type: PortType
    label: str | None = None
    created_at: datetime | None = None


class NodeView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    node_id: str
    workspace_id: str
    source_port_id: str
    target_port_id: str
    relationship_type: str
    relationship_direction: RelationshipDirection
    auto_generated: bool
    created_at: datetime | None = None


class LockView(BaseModel):
    """An active (non-expired) canvas lock."""

    model_config = ConfigDict(from_attributes=True)

    lock_id: str
    workspace_id: str
    user_id: str
    expires_at: datetime
    created_at: datetime | None = None


class GraphSnapshot(BaseModel):
    """One consistent read of a workspace's canvas state."""

    workspace: WorkspaceResponse
    containers: list[ContainerView] = Field(default_factory=list)
    nodes: list[NodeView] = Field(default_factory=list)
    ports: list[PortView] = Field(default_factory=list)
    references: list[ReferenceView] = Field(default_factory=list)
    current_lock: LockView | None = None
    visibility: dict[str, bool] = Field(default_factory=dict, description="container id -> visible")

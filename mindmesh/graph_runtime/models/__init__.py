"""Data models for the graph runtime."""

from mindmesh.graph_runtime.models.api import (
    LockAcquire,
    RepairRequest,
    WorkspaceCreate,
    WorkspaceResponse,
)
from mindmesh.graph_runtime.models.enums import (
    PORT_CAPABLE_ENTITY_TYPES,
    ContainerState,
    EntityType,
    PortType,
    RelationshipDirection,
    SpawnStrategy,
)
from mindmesh.graph_runtime.models.graph import (
    ContainerView,
    DuplicateGroup,
    EntityKey,
    GraphSnapshot,
    LockView,
    NodeView,
    PortView,
    ReconciliationMap,
    ReferenceView,
    container_to_view,
)
from mindmesh.graph_runtime.models.repair import CleanupAction, RepairResult

__all__ = [
    "PORT_CAPABLE_ENTITY_TYPES",
    # Repair
    "CleanupAction",
    # Enums
    "ContainerState",
    # Graph
    "ContainerView",
    "DuplicateGroup",
    "EntityKey",
    "EntityType",
    "GraphSnapshot",
    # API schemas
    "LockAcquire",
    "LockView",
    "NodeView",
    "PortType",
    "PortView",
    "ReconciliationMap",
    "ReferenceView",
    "RelationshipDirection",
    "RepairRequest",
    "RepairResult",
    "SpawnStrategy",
    "WorkspaceCreate",
    "WorkspaceResponse",
    "container_to_view",
]

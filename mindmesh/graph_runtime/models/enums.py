"""Shared enumerations used across the graph runtime."""

from __future__ import annotations

from enum import StrEnum

# -- Entities ----------------------------------------------------------------


class EntityType(StrEnum):
    """Canonical planning entity kinds a container can mirror."""

    TRACK = "track"
    TASK = "task"
    EVENT = "event"
    ROADMAP_ITEM = "roadmap_item"


# Entity kinds whose containers are expected to carry ports.  Tracks and
# subtracks use containment instead of port-based connections.
PORT_CAPABLE_ENTITY_TYPES = frozenset({EntityType.TASK, EntityType.EVENT, EntityType.ROADMAP_ITEM})


# -- Containers --------------------------------------------------------------


class ContainerState(StrEnum):
    GHOST = "ghost"
    ACTIVE = "active"


class SpawnStrategy(StrEnum):
    """How a container got its position."""

    MANUAL = "manual"
    VERTICAL_STACK = "vertical_stack"


# -- Ports and nodes ---------------------------------------------------------


class PortType(StrEnum):
    FREE = "free"
    INPUT = "input"
    OUTPUT = "output"


class RelationshipDirection(StrEnum):
    FORWARD = "forward"
    BACKWARD = "backward"
    BIDIRECTIONAL = "bidirectional"

"""SQLAlchemy ORM models for PostgreSQL.

These are the single source of truth for the database schema. Alembic reads
``Base.metadata`` to autogenerate migration scripts.

Two groups of tables live here:

- **Canonical planning data** (``master_projects``, ``guardrails_tracks``):
  owned by the planning service.  The graph runtime only ever reads them;
  they are declared so queries are typed and so the test database can be
  built from the same migrations.
- **Mind Mesh tables** (``mindmesh_*``): workspaces, containers, references,
  ports, nodes and canvas locks, owned by this service.

Uses SQLAlchemy 2.0 declarative style with ``Mapped`` type annotations.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Float, ForeignKey, Index, Text, func, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Timezone-aware timestamp type for all datetime columns.
TimestampTZ = DateTime(timezone=True)

# Predicate of the partial unique index on references.  Shared with the
# materializer's ON CONFLICT clause, which must name the same predicate for
# PostgreSQL to infer the index.
PRIMARY_REFERENCE_PREDICATE = text("is_primary")


class Base(DeclarativeBase):
    """Declarative base with naming convention for constraints."""

    pass


# Apply naming convention to the metadata for deterministic constraint names.
Base.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


# ---------------------------------------------------------------------------
# Canonical planning data (read-only)
# ---------------------------------------------------------------------------


class Project(Base):
    __tablename__ = "master_projects"

    project_id: Mapped[str] = mapped_column(primary_key=True)
    user_id: Mapped[str]
    name: Mapped[str | None]
    created_at: Mapped[datetime] = mapped_column(TimestampTZ, server_default=func.now())


class Track(Base):
    __tablename__ = "guardrails_tracks"
    __table_args__ = (Index("ix_guardrails_tracks_project_order", "master_project_id", "ordering_index"),)

    track_id: Mapped[str] = mapped_column(primary_key=True)
    master_project_id: Mapped[str] = mapped_column(
        ForeignKey("master_projects.project_id", ondelete="CASCADE"),
    )
    parent_track_id: Mapped[str | None] = mapped_column(
        ForeignKey("guardrails_tracks.track_id", ondelete="CASCADE"),
    )
    name: Mapped[str]
    description: Mapped[str | None] = mapped_column(Text)
    ordering_index: Mapped[int] = mapped_column(default=0, server_default="0")
    created_at: Mapped[datetime] = mapped_column(TimestampTZ, server_default=func.now())


# ---------------------------------------------------------------------------
# Mind Mesh
# ---------------------------------------------------------------------------


class Workspace(Base):
    __tablename__ = "mindmesh_workspaces"

    workspace_id: Mapped[str] = mapped_column(primary_key=True)
    master_project_id: Mapped[str] = mapped_column(
        ForeignKey("master_projects.project_id", ondelete="CASCADE"),
        unique=True,
    )
    metadata_: Mapped[dict] = mapped_column("metadata", JSONB, nullable=False, server_default="{}")
    created_at: Mapped[datetime] = mapped_column(TimestampTZ, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(TimestampTZ, server_default=func.now(), onupdate=func.now())


class Container(Base):
    __tablename__ = "mindmesh_containers"
    __table_args__ = (
        Index("ix_mindmesh_containers_workspace_id", "workspace_id"),
        CheckConstraint("title IS NOT NULL OR body IS NOT NULL", name="has_content"),
    )

    container_id: Mapped[str] = mapped_column(primary_key=True)
    workspace_id: Mapped[str] = mapped_column(
        ForeignKey("mindmesh_workspaces.workspace_id", ondelete="CASCADE"),
    )
    title: Mapped[str | None] = mapped_column(Text)
    body: Mapped[str | None] = mapped_column(Text)
    is_ghost: Mapped[bool] = mapped_column(default=False, server_default="false")
    x_position: Mapped[float] = mapped_column(Float, default=0.0, server_default="0")
    y_position: Mapped[float] = mapped_column(Float, default=0.0, server_default="0")
    width: Mapped[float] = mapped_column(Float, default=300.0, server_default="300")
    height: Mapped[float] = mapped_column(Float, default=200.0, server_default="200")

    # Backing entity identity for entity-backed containers:
    # {"entity_type": "track", "entity_id": "..."}.  Empty for freeform notes.
    metadata_: Mapped[dict] = mapped_column("metadata", JSONB, nullable=False, server_default="{}")

    archived_at: Mapped[datetime | None] = mapped_column(TimestampTZ)
    created_at: Mapped[datetime] = mapped_column(TimestampTZ, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(TimestampTZ, server_default=func.now(), onupdate=func.now())


class ContainerReference(Base):
    __tablename__ = "mindmesh_container_references"
    __table_args__ = (
        Index("ix_mindmesh_container_references_container_id", "container_id"),
        Index("ix_mindmesh_container_references_entity", "entity_type", "entity_id"),
        # At most one live (primary) reference per entity per workspace.
        Index(
            "uq_mindmesh_container_references_primary_entity",
            "workspace_id",
            "entity_type",
            "entity_id",
            unique=True,
            postgresql_where=PRIMARY_REFERENCE_PREDICATE,
        ),
    )

    reference_id: Mapped[str] = mapped_column(primary_key=True)
    workspace_id: Mapped[str] = mapped_column(
        ForeignKey("mindmesh_workspaces.workspace_id", ondelete="CASCADE"),
    )
    container_id: Mapped[str] = mapped_column(
        ForeignKey("mindmesh_containers.container_id", ondelete="CASCADE"),
    )
    entity_type: Mapped[str]
    entity_id: Mapped[str]
    is_primary: Mapped[bool] = mapped_column(default=False, server_default="false")
    created_at: Mapped[datetime] = mapped_column(TimestampTZ, server_default=func.now())


class Port(Base):
    __tablename__ = "mindmesh_ports"
    __table_args__ = (Index("ix_mindmesh_ports_container_id", "container_id"),)

    port_id: Mapped[str] = mapped_column(primary_key=True)
    container_id: Mapped[str] = mapped_column(
        ForeignKey("mindmesh_containers.container_id", ondelete="CASCADE"),
    )
    port_type: Mapped[str] = mapped_column(server_default="free")
    label: Mapped[str | None]
    created_at: Mapped[datetime] = mapped_column(TimestampTZ, server_default=func.now())


class Node(Base):
    __tablename__ = "mindmesh_nodes"
    __table_args__ = (
        Index("ix_mindmesh_nodes_workspace_id", "workspace_id"),
        CheckConstraint("source_port_id <> target_port_id", name="different_ports"),
    )

    node_id: Mapped[str] = mapped_column(primary_key=True)
    workspace_id: Mapped[str] = mapped_column(
        ForeignKey("mindmesh_workspaces.workspace_id", ondelete="CASCADE"),
    )
    source_port_id: Mapped[str] = mapped_column(ForeignKey("mindmesh_ports.port_id", ondelete="CASCADE"))
    target_port_id: Mapped[str] = mapped_column(ForeignKey("mindmesh_ports.port_id", ondelete="CASCADE"))
    relationship_type: Mapped[str] = mapped_column(server_default="generic")
    relationship_direction: Mapped[str] = mapped_column(server_default="forward")
    auto_generated: Mapped[bool] = mapped_column(default=False, server_default="false")
    created_at: Mapped[datetime] = mapped_column(TimestampTZ, server_default=func.now())


class CanvasLock(Base):
    __tablename__ = "mindmesh_canvas_locks"

    lock_id: Mapped[str] = mapped_column(primary_key=True)
    workspace_id: Mapped[str] = mapped_column(
        ForeignKey("mindmesh_workspaces.workspace_id", ondelete="CASCADE"),
        unique=True,
    )
    user_id: Mapped[str]
    expires_at: Mapped[datetime] = mapped_column(TimestampTZ)
    created_at: Mapped[datetime] = mapped_column(TimestampTZ, server_default=func.now())

"""initial schema

Revision ID: 0001
Revises:
Create Date: 2025-12-17 09:30:22

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # -- Canonical planning data (read-only to the graph runtime) -------------
    op.create_table(
        "master_projects",
        sa.Column("project_id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("project_id", name=op.f("pk_master_projects")),
    )
    op.create_table(
        "guardrails_tracks",
        sa.Column("track_id", sa.String(), nullable=False),
        sa.Column("master_project_id", sa.String(), nullable=False),
        sa.Column("parent_track_id", sa.String(), nullable=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("ordering_index", sa.Integer(), server_default="0", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(
            ["master_project_id"],
            ["master_projects.project_id"],
            name=op.f("fk_guardrails_tracks_master_project_id_master_projects"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["parent_track_id"],
            ["guardrails_tracks.track_id"],
            name=op.f("fk_guardrails_tracks_parent_track_id_guardrails_tracks"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("track_id", name=op.f("pk_guardrails_tracks")),
    )
    op.create_index(
        "ix_guardrails_tracks_project_order",
        "guardrails_tracks",
        ["master_project_id", "ordering_index"],
    )

    # -- Workspaces ------------------------------------------------------------
    op.create_table(
        "mindmesh_workspaces",
        sa.Column("workspace_id", sa.String(), nullable=False),
        sa.Column("master_project_id", sa.String(), nullable=False),
        sa.Column("metadata", postgresql.JSONB(astext_type=sa.Text()), server_default="{}", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(
            ["master_project_id"],
            ["master_projects.project_id"],
            name=op.f("fk_mindmesh_workspaces_master_project_id_master_projects"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("workspace_id", name=op.f("pk_mindmesh_workspaces")),
        sa.UniqueConstraint("master_project_id", name=op.f("uq_mindmesh_workspaces_master_project_id")),
    )

    # -- Containers ------------------------------------------------------------
    op.create_table(
        "mindmesh_containers",
        sa.Column("container_id", sa.String(), nullable=False),
        sa.Column("workspace_id", sa.String(), nullable=False),
        sa.Column("title", sa.Text(), nullable=True),
        sa.Column("body", sa.Text(), nullable=True),
        sa.Column("is_ghost", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("x_position", sa.Float(), server_default="0", nullable=False),
        sa.Column("y_position", sa.Float(), server_default="0", nullable=False),
        sa.Column("width", sa.Float(), server_default="300", nullable=False),
        sa.Column("height", sa.Float(), server_default="200", nullable=False),
        sa.Column("metadata", postgresql.JSONB(astext_type=sa.Text()), server_default="{}", nullable=False),
        sa.Column("archived_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.CheckConstraint(
            "title IS NOT NULL OR body IS NOT NULL",
            name=op.f("ck_mindmesh_containers_has_content"),
        ),
        sa.ForeignKeyConstraint(
            ["workspace_id"],
            ["mindmesh_workspaces.workspace_id"],
            name=op.f("fk_mindmesh_containers_workspace_id_mindmesh_workspaces"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("container_id", name=op.f("pk_mindmesh_containers")),
    )
    op.create_index("ix_mindmesh_containers_workspace_id", "mindmesh_containers", ["workspace_id"])

    # -- Container references ----------------------------------------------------
    op.create_table(
        "mindmesh_container_references",
        sa.Column("reference_id", sa.String(), nullable=False),
        sa.Column("workspace_id", sa.String(), nullable=False),
        sa.Column("container_id", sa.String(), nullable=False),
        sa.Column("entity_type", sa.String(), nullable=False),
        sa.Column("entity_id", sa.String(), nullable=False),
        sa.Column("is_primary", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(
            ["container_id"],
            ["mindmesh_containers.container_id"],
            name=op.f("fk_mindmesh_container_references_container_id_mindmesh_containers"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["workspace_id"],
            ["mindmesh_workspaces.workspace_id"],
            name=op.f("fk_mindmesh_container_references_workspace_id_mindmesh_workspaces"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("reference_id", name=op.f("pk_mindmesh_container_references")),
    )
    op.create_index(
        "ix_mindmesh_container_references_container_id",
        "mindmesh_container_references",
        ["container_id"],
    )
    op.create_index(
        "ix_mindmesh_container_references_entity",
        "mindmesh_container_references",
        ["entity_type", "entity_id"],
    )
    op.create_index(
        "uq_mindmesh_container_references_primary_entity",
        "mindmesh_container_references",
        ["workspace_id", "entity_type", "entity_id"],
        unique=True,
        postgresql_where=sa.text("is_primary"),
    )

    # -- Ports and nodes ---------------------------------------------------------
    op.create_table(
        "mindmesh_ports",
        sa.Column("port_id", sa.String(), nullable=False),
        sa.Column("container_id", sa.String(), nullable=False),
        sa.Column("port_type", sa.String(), server_default="free", nullable=False),
        sa.Column("label", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(
            ["container_id"],
            ["mindmesh_containers.container_id"],
            name=op.f("fk_mindmesh_ports_container_id_mindmesh_containers"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("port_id", name=op.f("pk_mindmesh_ports")),
    )
    op.create_index("ix_mindmesh_ports_container_id", "mindmesh_ports", ["container_id"])

    op.create_table(
        "mindmesh_nodes",
        sa.Column("node_id", sa.String(), nullable=False),
        sa.Column("workspace_id", sa.String(), nullable=False),
        sa.Column("source_port_id", sa.String(), nullable=False),
        sa.Column("target_port_id", sa.String(), nullable=False),
        sa.Column("relationship_type", sa.String(), server_default="generic", nullable=False),
        sa.Column("relationship_direction", sa.String(), server_default="forward", nullable=False),
        sa.Column("auto_generated", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.CheckConstraint("source_port_id <> target_port_id", name=op.f("ck_mindmesh_nodes_different_ports")),
        sa.ForeignKeyConstraint(
            ["source_port_id"],
            ["mindmesh_ports.port_id"],
            name=op.f("fk_mindmesh_nodes_source_port_id_mindmesh_ports"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["target_port_id"],
            ["mindmesh_ports.port_id"],
            name=op.f("fk_mindmesh_nodes_target_port_id_mindmesh_ports"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["workspace_id"],
            ["mindmesh_workspaces.workspace_id"],
            name=op.f("fk_mindmesh_nodes_workspace_id_mindmesh_workspaces"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("node_id", name=op.f("pk_mindmesh_nodes")),
    )
    op.create_index("ix_mindmesh_nodes_workspace_id", "mindmesh_nodes", ["workspace_id"])

    # -- Canvas locks ------------------------------------------------------------
    op.create_table(
        "mindmesh_canvas_locks",
        sa.Column("lock_id", sa.String(), nullable=False),
        sa.Column("workspace_id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(
            ["workspace_id"],
            ["mindmesh_workspaces.workspace_id"],
            name=op.f("fk_mindmesh_canvas_locks_workspace_id_mindmesh_workspaces"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("lock_id", name=op.f("pk_mindmesh_canvas_locks")),
        sa.UniqueConstraint("workspace_id", name=op.f("uq_mindmesh_canvas_locks_workspace_id")),
    )


def downgrade() -> None:
    op.drop_table("mindmesh_canvas_locks")
    op.drop_index("ix_mindmesh_nodes_workspace_id", table_name="mindmesh_nodes")
    op.drop_table("mindmesh_nodes")
    op.drop_index("ix_mindmesh_ports_container_id", table_name="mindmesh_ports")
    op.drop_table("mindmesh_ports")
    op.drop_index("uq_mindmesh_container_references_primary_entity", table_name="mindmesh_container_references")
    op.drop_index("ix_mindmesh_container_references_entity", table_name="mindmesh_container_references")
    op.drop_index("ix_mindmesh_container_references_container_id", table_name="mindmesh_container_references")
    op.drop_table("mindmesh_container_references")
    op.drop_index("ix_mindmesh_containers_workspace_id", table_name="mindmesh_containers")
    op.drop_table("mindmesh_containers")
    op.drop_table("mindmesh_workspaces")
    op.drop_index("ix_guardrails_tracks_project_order", table_name="guardrails_tracks")
    op.drop_table("guardrails_tracks")
    op.drop_table("master_projects")

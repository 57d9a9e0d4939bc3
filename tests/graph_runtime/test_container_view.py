"""Unit tests for the container row -> view mapping."""

from __future__ import annotations

from datetime import UTC, datetime

from mindmesh.graph_runtime.db.tables import Container
from mindmesh.graph_runtime.models.enums import ContainerState, SpawnStrategy
from mindmesh.graph_runtime.models.graph import container_to_view

NOW = datetime(2026, 1, 1, tzinfo=UTC)


def _row(**overrides) -> Container:
    values = {
        "container_id": "c1",
        "workspace_id": "w1",
        "title": "Track A",
        "body": None,
        "is_ghost": False,
        "x_position": 10.0,
        "y_position": 20.0,
        "width": 300.0,
        "height": 200.0,
        "metadata_": {},
        "created_at": NOW,
        "updated_at": NOW,
    }
    values.update(overrides)
    return Container(**values)


def test_ghost_track_container() -> None:
    view = container_to_view(_row(is_ghost=True, metadata_={"entity_type": "track", "entity_id": "t1"}))

    assert view.id == "c1"
    assert view.state == ContainerState.GHOST
    assert view.entity_type == "track"
    assert view.entity_id == "t1"
    assert view.spawn_strategy == SpawnStrategy.VERTICAL_STACK
    assert view.user_positioned is False
    assert view.port_capable is False
    assert (view.x, view.y, view.width, view.height) == (10.0, 20.0, 300.0, 200.0)
    assert view.body == ""


def test_active_task_container_is_port_capable() -> None:
    view = container_to_view(_row(metadata_={"entity_type": "task", "entity_id": "task-1"}))

    assert view.state == ContainerState.ACTIVE
    assert view.spawn_strategy == SpawnStrategy.MANUAL
    assert view.user_positioned is True
    assert view.port_capable is True
    assert view.last_interaction_at == NOW


def test_freeform_container_has_no_entity() -> None:
    view = container_to_view(_row(metadata_={}, title=None, body="idea"))

    assert view.entity_type is None
    assert view.entity_id is None
    assert view.title == ""
    assert view.body == "idea"

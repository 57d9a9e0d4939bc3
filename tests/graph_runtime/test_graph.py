"""Integration tests for the graph fetch endpoint."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy import event, func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from mindmesh.graph_runtime.db.tables import CanvasLock, Container, ContainerReference

pytestmark = pytest.mark.integration

OWNER = "user-owner"


async def _count_containers(db: AsyncSession, workspace_id: str) -> int:
    stmt = select(func.count()).select_from(Container).where(Container.workspace_id == workspace_id)
    return await db.scalar(stmt)


async def test_requires_caller_identity(client: AsyncClient) -> None:
    resp = await client.get("/api/workspaces/anything/graph")
    assert resp.status_code == 401

    resp = await client.get("/api/workspaces/anything/graph", headers={"Authorization": "Bearer garbage"})
    assert resp.status_code == 401


async def test_unknown_workspace(client: AsyncClient, auth_headers) -> None:
    resp = await client.get("/api/workspaces/missing/graph", headers=auth_headers(OWNER))
    assert resp.status_code == 404


async def test_non_owner_is_forbidden(client: AsyncClient, seed, auth_headers) -> None:
    project = await seed.project(OWNER)
    workspace = await seed.workspace(project)

    resp = await client.get(f"/api/workspaces/{workspace.workspace_id}/graph", headers=auth_headers("someone-else"))
    assert resp.status_code == 403


async def test_first_fetch_materializes_ghost_grid(client: AsyncClient, seed, auth_headers, db_session) -> None:
    project = await seed.project(OWNER)
    tracks = [await seed.track(project, name, ordering_index=i) for i, name in enumerate(["A", "B", "C"])]
    workspace = await seed.workspace(project)

    resp = await client.get(f"/api/workspaces/{workspace.workspace_id}/graph", headers=auth_headers(OWNER))
    assert resp.status_code == 200
    snapshot = resp.json()

    assert snapshot["workspace"]["workspace_id"] == workspace.workspace_id
    containers = snapshot["containers"]
    assert len(containers) == 3
    by_entity = {c["entity_id"]: c for c in containers}
    assert [(by_entity[t.track_id]["x"], by_entity[t.track_id]["y"]) for t in tracks] == [
        (100, 100),
        (500, 100),
        (900, 100),
    ]
    assert all(c["state"] == "ghost" for c in containers)
    assert all(c["entity_type"] == "track" for c in containers)
    assert {c["title"] for c in containers} == {"A", "B", "C"}

    references = snapshot["references"]
    assert len(references) == 3
    assert {r["container_id"] for r in references} == set(by_entity[t.track_id]["id"] for t in tracks)
    assert all(r["is_primary"] for r in references)

    assert snapshot["visibility"] == {c["id"]: True for c in containers}
    assert snapshot["current_lock"] is None
    assert snapshot["ports"] == []
    assert snapshot["nodes"] == []


async def test_second_fetch_is_idempotent(client: AsyncClient, seed, auth_headers, db_session) -> None:
    project = await seed.project(OWNER)
    for i, name in enumerate(["A", "B", "C"]):
        await seed.track(project, name, ordering_index=i)
    workspace = await seed.workspace(project)
    url = f"/api/workspaces/{workspace.workspace_id}/graph"

    first = (await client.get(url, headers=auth_headers(OWNER))).json()
    second = (await client.get(url, headers=auth_headers(OWNER))).json()

    assert sorted(c["id"] for c in first["containers"]) == sorted(c["id"] for c in second["containers"])
    assert await _count_containers(db_session, workspace.workspace_id) == 3


async def test_existing_containers_ports_and_lock_are_returned(
    client: AsyncClient, seed, auth_headers, db_session
) -> None:
    project = await seed.project(OWNER)
    track = await seed.track(project, "A")
    workspace = await seed.workspace(project)
    active = await seed.container(workspace, entity=("track", track.track_id), title="A")
    await seed.reference(active, "track", track.track_id)
    task = await seed.container(workspace, entity=("task", "task-1"), title="Task")
    await seed.reference(task, "task", "task-1")
    port = await seed.port(task, "output")
    note = await seed.container(workspace, title="Idea")
    archived = await seed.container(workspace, title="Old")
    archived.archived_at = datetime.now(UTC)
    db_session.add(
        CanvasLock(
            lock_id="lock-1",
            workspace_id=workspace.workspace_id,
            user_id=OWNER,
            expires_at=datetime.now(UTC) + timedelta(minutes=5),
        ),
    )
    await db_session.flush()

    resp = await client.get(f"/api/workspaces/{workspace.workspace_id}/graph", headers=auth_headers(OWNER))
    assert resp.status_code == 200
    snapshot = resp.json()

    ids = [c["id"] for c in snapshot["containers"]]
    assert set(ids) == {active.container_id, task.container_id, note.container_id}
    views = {c["id"]: c for c in snapshot["containers"]}
    assert views[active.container_id]["state"] == "active"
    assert views[task.container_id]["port_capable"] is True
    assert views[note.container_id]["entity_type"] is None
    assert [p["port_id"] for p in snapshot["ports"]] == [port.port_id]
    assert snapshot["current_lock"]["user_id"] == OWNER


async def test_expired_lock_is_not_reported(client: AsyncClient, seed, auth_headers, db_session) -> None:
    project = await seed.project(OWNER)
    workspace = await seed.workspace(project)
    db_session.add(
        CanvasLock(
            lock_id="lock-old",
            workspace_id=workspace.workspace_id,
            user_id=OWNER,
            expires_at=datetime.now(UTC) - timedelta(seconds=1),
        ),
    )
    await db_session.flush()

    resp = await client.get(f"/api/workspaces/{workspace.workspace_id}/graph", headers=auth_headers(OWNER))
    assert resp.json()["current_lock"] is None


async def test_duplicates_abort_with_integrity_payload(client: AsyncClient, seed, auth_headers, db_session) -> None:
    project = await seed.project(OWNER)
    track = await seed.track(project, "A")
    workspace = await seed.workspace(project)
    first = await seed.container(workspace, entity=("track", track.track_id))
    second = await seed.container(workspace, entity=("track", track.track_id))
    await seed.reference(first, "track", track.track_id)
    await seed.reference(second, "track", track.track_id, is_primary=False)

    resp = await client.get(f"/api/workspaces/{workspace.workspace_id}/graph", headers=auth_headers(OWNER))
    assert resp.status_code == 500
    payload = resp.json()["detail"]

    assert payload["error"] == "Mind Mesh data integrity issue: Duplicate containers detected"
    assert payload["details"]["workspaceId"] == workspace.workspace_id
    assert payload["details"]["duplicateCount"] == 1
    duplicate = payload["details"]["duplicates"][0]
    assert duplicate["entityType"] == "track"
    assert duplicate["entityId"] == track.track_id
    assert duplicate["containerCount"] == 2
    assert set(duplicate["containerIds"]) == {first.container_id, second.container_id}
    assert "repair" in payload["recoveryInstructions"]

    # Failing fast means nothing was materialized.
    stmt = select(func.count()).select_from(ContainerReference).where(
        ContainerReference.workspace_id == workspace.workspace_id
    )
    assert await db_session.scalar(stmt) == 2


async def _seed_task_containers(seed, workspace, count: int) -> list:
    containers = []
    for i in range(count):
        container = await seed.container(workspace, entity=("task", f"task-{i}"), title=f"Task {i}")
        await seed.reference(container, "task", f"task-{i}")
        await seed.port(container, "input")
        containers.append(container)
    return containers


async def test_ports_and_references_load_across_batches(
    client: AsyncClient, seed, auth_headers, test_settings
) -> None:
    project = await seed.project(OWNER)
    workspace = await seed.workspace(project)
    containers = await _seed_task_containers(seed, workspace, 5)
    test_settings.query_chunk_size = 2

    resp = await client.get(f"/api/workspaces/{workspace.workspace_id}/graph", headers=auth_headers(OWNER))
    assert resp.status_code == 200
    snapshot = resp.json()

    expected = {c.container_id for c in containers}
    assert {c["id"] for c in snapshot["containers"]} == expected
    assert len(snapshot["ports"]) == 5
    assert {p["container_id"] for p in snapshot["ports"]} == expected
    assert len(snapshot["references"]) == 5
    assert {r["container_id"] for r in snapshot["references"]} == expected


async def test_failed_batch_returns_diagnostics(
    client: AsyncClient, seed, auth_headers, test_settings, async_engine: AsyncEngine
) -> None:
    project = await seed.project(OWNER)
    workspace = await seed.workspace(project)
    await _seed_task_containers(seed, workspace, 5)
    test_settings.query_chunk_size = 2
    port_queries = []

    def _fail_second_port_batch(conn, cursor, statement, parameters, context, executemany):
        if "FROM mindmesh_ports" in statement:
            port_queries.append(statement)
            if len(port_queries) == 2:
                raise OperationalError(statement, parameters, Exception("statement timeout"))

    event.listen(async_engine.sync_engine, "before_cursor_execute", _fail_second_port_batch)
    try:
        resp = await client.get(f"/api/workspaces/{workspace.workspace_id}/graph", headers=auth_headers(OWNER))
    finally:
        event.remove(async_engine.sync_engine, "before_cursor_execute", _fail_second_port_batch)

    assert resp.status_code == 500
    detail = resp.json()["detail"]
    assert detail["error"] == "batch_query_failed"
    assert detail["details"]["table"] == "mindmesh_ports"
    assert detail["details"]["batchSize"] == 2
    assert detail["details"]["totalIds"] == 5
    assert detail["details"]["batchIndex"] == 1
    assert detail["details"]["totalBatches"] == 3

"""Integration tests for workspace provisioning."""

from __future__ import annotations

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.integration

OWNER = "user-owner"


async def test_create_is_idempotent(client: AsyncClient, seed, auth_headers) -> None:
    project = await seed.project(OWNER)
    body = {"project_id": project.project_id, "metadata": {"theme": "dark"}}

    resp = await client.post("/api/workspaces/create", json=body, headers=auth_headers(OWNER))
    assert resp.status_code == 201
    created = resp.json()
    assert created["master_project_id"] == project.project_id
    assert created["metadata"] == {"theme": "dark"}

    resp = await client.post("/api/workspaces/create", json=body, headers=auth_headers(OWNER))
    assert resp.status_code == 200
    assert resp.json()["workspace_id"] == created["workspace_id"]

    resp = await client.get(f"/api/workspaces/{created['workspace_id']}/get", headers=auth_headers(OWNER))
    assert resp.status_code == 200
    assert resp.json()["workspace_id"] == created["workspace_id"]


async def test_create_for_unknown_project(client: AsyncClient, auth_headers) -> None:
    resp = await client.post("/api/workspaces/create", json={"project_id": "nope"}, headers=auth_headers(OWNER))
    assert resp.status_code == 404


async def test_create_and_get_require_ownership(client: AsyncClient, seed, auth_headers) -> None:
    project = await seed.project(OWNER)
    workspace = await seed.workspace(project)

    resp = await client.post(
        "/api/workspaces/create",
        json={"project_id": project.project_id},
        headers=auth_headers("someone-else"),
    )
    assert resp.status_code == 403

    resp = await client.get(f"/api/workspaces/{workspace.workspace_id}/get", headers=auth_headers("someone-else"))
    assert resp.status_code == 403

    resp = await client.get("/api/workspaces/missing/get", headers=auth_headers(OWNER))
    assert resp.status_code == 404

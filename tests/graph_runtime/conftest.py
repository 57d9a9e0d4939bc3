"""Shared fixtures for graph-runtime tests."""

from __future__ import annotations

import uuid
from collections.abc import AsyncIterator
from datetime import datetime
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from mindmesh.graph_runtime.app import app
from mindmesh.graph_runtime.db.tables import Container, ContainerReference, Port, Project, Track, Workspace
from mindmesh.graph_runtime.deps import get_db
from mindmesh.graph_runtime.settings import MindMeshSettings

OWNER = "user-owner"
STRANGER = "user-stranger"


class FakePlanExecutor:
    """Records rollback calls and answers with a canned result."""

    def __init__(self, result: dict[str, Any] | None = None) -> None:
        self.result = result if result is not None else {"success": True, "rolledBackPlanId": "plan-1"}
        self.calls: list[tuple[str, str]] = []

    async def rollback_last_plan(self, workspace_id: str, user_id: str) -> dict[str, Any]:
        self.calls.append((workspace_id, user_id))
        return self.result

    async def aclose(self) -> None:
        pass


class Seeder:
    """Inserts canonical and Mind Mesh rows for a test.

    Every row is committed (to the test savepoint) right away so that a
    rollback inside the code under test cannot discard the fixture data.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _add(self, row: Any) -> Any:
        self.db.add(row)
        await self.db.commit()
        return row

    async def project(self, user_id: str = OWNER, name: str = "Project") -> Project:
        return await self._add(Project(project_id=str(uuid.uuid4()), user_id=user_id, name=name))

    async def track(
        self,
        project: Project,
        name: str,
        *,
        ordering_index: int = 0,
        parent: Track | None = None,
        description: str | None = None,
    ) -> Track:
        return await self._add(
            Track(
                track_id=str(uuid.uuid4()),
                master_project_id=project.project_id,
                parent_track_id=parent.track_id if parent else None,
                name=name,
                description=description,
                ordering_index=ordering_index,
            ),
        )

    async def workspace(self, project: Project) -> Workspace:
        return await self._add(
            Workspace(workspace_id=str(uuid.uuid4()), master_project_id=project.project_id, metadata_={}),
        )

    async def container(
        self,
        workspace: Workspace,
        *,
        entity: tuple[str, str] | None = None,
        is_ghost: bool = False,
        title: str = "Note",
        created_at: datetime | None = None,
        position: tuple[float, float] | None = None,
    ) -> Container:
        metadata = {"entity_type": entity[0], "entity_id": entity[1]} if entity else {}
        row = Container(
            container_id=str(uuid.uuid4()),
            workspace_id=workspace.workspace_id,
            title=title,
            is_ghost=is_ghost,
            metadata_=metadata,
        )
        if created_at is not None:
            row.created_at = created_at
        if position is not None:
            row.x_position, row.y_position = position
        return await self._add(row)

    async def reference(
        self,
        container: Container,
        entity_type: str,
        entity_id: str,
        *,
        is_primary: bool = True,
    ) -> ContainerReference:
        return await self._add(
            ContainerReference(
                reference_id=str(uuid.uuid4()),
                workspace_id=container.workspace_id,
                container_id=container.container_id,
                entity_type=entity_type,
                entity_id=entity_id,
                is_primary=is_primary,
            ),
        )

    async def port(self, container: Container, port_type: str = "free") -> Port:
        return await self._add(Port(port_id=str(uuid.uuid4()), container_id=container.container_id, port_type=port_type))


@pytest.fixture
def seed(db_session: AsyncSession) -> Seeder:
    return Seeder(db_session)


@pytest.fixture
def plan_executor() -> FakePlanExecutor:
    return FakePlanExecutor()


@pytest.fixture
def test_settings() -> MindMeshSettings:
    """Settings as the lifespan would load them (JWT secret comes from the root conftest env)."""
    return MindMeshSettings(database_url=None, plan_executor_url=None)


@pytest.fixture
async def client(
    db_session: AsyncSession,
    plan_executor: FakePlanExecutor,
    test_settings: MindMeshSettings,
) -> AsyncIterator[AsyncClient]:
    """Async HTTP client wired to the app with a test DB session.

    Overrides ``get_db`` so every request uses the savepoint-isolated
    ``db_session`` fixture from the root conftest.  The app lifespan does
    NOT run under ``ASGITransport``, so state fields are pre-set here.
    """

    async def _override_get_db() -> AsyncIterator[AsyncSession]:
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db

    # Pre-set state fields (lifespan does not run under ASGITransport).
    app.state.settings = test_settings
    app.state.db_engine = None
    app.state.db_session_factory = None
    app.state.plan_executor = plan_executor

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()

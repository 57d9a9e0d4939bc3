from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.routing import APIRouter
from loguru import logger

from mindmesh.graph_runtime.db.engine import create_engine, create_session_factory
from mindmesh.graph_runtime.execution.base import PlanExecutor
from mindmesh.graph_runtime.execution.http import HttpPlanExecutor
from mindmesh.graph_runtime.log import setup_logging
from mindmesh.graph_runtime.settings import MindMeshSettings, get_settings


def _create_plan_executor(settings: MindMeshSettings) -> PlanExecutor | None:
    if not settings.plan_executor_url:
        return None
    return HttpPlanExecutor(settings.plan_executor_url, timeout=settings.plan_executor_timeout)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    # -- Startup ---------------------------------------------------------------
    settings = get_settings()
    setup_logging(settings.log_level, json=settings.log_json)

    had_secret = settings.jwt_secret is not None
    settings.resolve_jwt_secret()
    if not had_secret:
        logger.warning("No MINDMESH_JWT_SECRET set -- generated a random secret; tokens will not survive restarts")

    logger.info("Mind Mesh Graph Runtime starting (host={}, port={})", settings.host, settings.port)

    # -- Initialise state fields (always present, possibly None) ----------------
    _app.state.settings = settings
    _app.state.db_engine = None
    _app.state.db_session_factory = None
    _app.state.plan_executor = None

    # -- Database --------------------------------------------------------------
    if settings.database_url:
        engine = create_engine(settings.database_url)
        _app.state.db_engine = engine
        _app.state.db_session_factory = create_session_factory(engine)
        logger.info("PostgreSQL: connected (pool_size=10, max_overflow=20)")
    else:
        logger.warning("MINDMESH_DATABASE_URL not set -- database features disabled")

    # -- Plan executor ---------------------------------------------------------
    _app.state.plan_executor = _create_plan_executor(settings)
    if _app.state.plan_executor is not None:
        logger.info("Plan executor: {}", settings.plan_executor_url)
    else:
        logger.warning("MINDMESH_PLAN_EXECUTOR_URL not set -- plan rollback disabled")

    yield

    # -- Shutdown --------------------------------------------------------------
    logger.info("Mind Mesh Graph Runtime shutting down")

    if _app.state.plan_executor is not None:
        await _app.state.plan_executor.aclose()
        logger.info("Plan executor: closed")

    # Dispose DB engine (closes all pooled connections).
    if _app.state.db_engine is not None:
        await _app.state.db_engine.dispose()
        logger.info("PostgreSQL: disposed")


app = FastAPI(title="Mind Mesh Graph Runtime", lifespan=lifespan)

# ---------------------------------------------------------------------------
# API router -- all backend endpoints live under /api
# ---------------------------------------------------------------------------
api = APIRouter(prefix="/api")


@api.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


# -- Routers -----------------------------------------------------------------
from mindmesh.graph_runtime.routers.graph import router as graph_router  # noqa: E402
from mindmesh.graph_runtime.routers.locks import router as locks_router  # noqa: E402
from mindmesh.graph_runtime.routers.maintenance import router as maintenance_router  # noqa: E402
from mindmesh.graph_runtime.routers.plans import router as plans_router  # noqa: E402
from mindmesh.graph_runtime.routers.workspaces import router as workspaces_router  # noqa: E402

api.include_router(workspaces_router)
api.include_router(graph_router)
api.include_router(locks_router)
api.include_router(plans_router)
api.include_router(maintenance_router)

app.include_router(api)

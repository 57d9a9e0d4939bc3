"""Unit tests for the HTTP plan executor."""

from __future__ import annotations

import json

import httpx

from mindmesh.graph_runtime.execution.base import PlanExecutor
from mindmesh.graph_runtime.execution.http import HttpPlanExecutor


async def test_rollback_posts_user_and_returns_body_verbatim() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"success": True, "rolledBackPlanId": "plan-7", "extra": [1, 2]})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://executor")
    executor = HttpPlanExecutor("http://executor", client=client)

    result = await executor.rollback_last_plan("ws-1", "user-1")
    await executor.aclose()

    assert result == {"success": True, "rolledBackPlanId": "plan-7", "extra": [1, 2]}
    assert seen[0].method == "POST"
    assert seen[0].url.path == "/workspaces/ws-1/rollback"
    assert json.loads(seen[0].content) == {"user_id": "user-1"}


async def test_error_body_is_passed_through() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(409, json={"success": False, "error": "NO_PLAN_TO_ROLLBACK"})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://executor")
    executor = HttpPlanExecutor("http://executor", client=client)

    assert await executor.rollback_last_plan("ws-1", "user-1") == {"success": False, "error": "NO_PLAN_TO_ROLLBACK"}
    await executor.aclose()


async def test_non_json_body_is_passed_through_as_text() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="<html>Bad Gateway</html>")

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://executor")
    executor = HttpPlanExecutor("http://executor", client=client)

    result = await executor.rollback_last_plan("ws-1", "user-1")
    await executor.aclose()

    assert result == {"success": False, "status_code": 502, "error": "<html>Bad Gateway</html>"}

def test_satisfies_protocol() -> None:
    assert isinstance(HttpPlanExecutor("http://executor"), PlanExecutor)

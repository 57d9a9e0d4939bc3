"""HTTP implementation of the plan executor."""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger


class HttpPlanExecutor:
    """Delegates rollbacks to the plan-execution service over HTTP.

    ``POST {base_url}/workspaces/{workspace_id}/rollback`` with the acting
    user in the JSON body.  The response body is returned verbatim whatever
    its status; the caller decides what a failed rollback means.  A body that
    is not JSON comes back as ``{"success": false, "status_code": <code>, "error": <text>}``.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._client = client or httpx.AsyncClient(base_url=base_url.rstrip("/"), timeout=timeout)

    async def rollback_last_plan(self, workspace_id: str, user_id: str) -> dict[str, Any]:
        logger.info("Delegating rollback for workspace {} (user {})", workspace_id, user_id)
        response = await self._client.post(f"/workspaces/{workspace_id}/rollback", json={"user_id": user_id})
        logger.debug("Plan executor answered {} for workspace {}", response.status_code, workspace_id)
        try:
            return response.json()
        except ValueError:
            logger.warning(
                "Plan executor returned a non-JSON body ({}) for workspace {}",
                response.status_code,
                workspace_id,
            )
            return {"success": False, "status_code": response.status_code, "error": response.text}

    async def aclose(self) -> None:
        await self._client.aclose()

"""Plan executor interface.

The graph runtime never interprets plan results.  Whatever the executor
returns is handed back to the caller unmodified.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class PlanExecutor(Protocol):
    """Async protocol for the service that owns plan history."""

    async def rollback_last_plan(self, workspace_id: str, user_id: str) -> dict[str, Any]:
        """Roll back the most recently applied plan for *workspace_id*."""
        ...

    async def aclose(self) -> None:
        """Release any underlying connections."""
        ...

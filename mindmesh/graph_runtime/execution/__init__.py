"""Plan-execution collaborator.

Plan history and rollback live in a separate service.  This package holds the
protocol the lock gate delegates to and its HTTP client implementation:

- **base**: ``PlanExecutor`` protocol
- **http**: ``HttpPlanExecutor`` (httpx)
"""

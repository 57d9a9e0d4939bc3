"""Reconciliation engine and data access managers.

Each module provides async functions that encapsulate store access and the
engine's business rules.  Managers accept ``AsyncSession`` as a parameter
and raise domain exceptions from ``graph_runtime.errors``, never HTTP
exceptions -- that translation is the router's responsibility.

``reconciliation`` and ``materializer.plan_ghost_layout`` are pure and can be
used without a database.
"""

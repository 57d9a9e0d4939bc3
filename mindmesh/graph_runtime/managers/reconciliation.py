"""Reconciliation map builder.

Groups reference rows by the canonical entity they point at.  An entity with
exactly one container goes into the map; an entity with more than one is
reported as a duplicate and deliberately left out of the map, so the caller
cannot accidentally pick a winner.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from typing import Protocol

from loguru import logger

from mindmesh.graph_runtime.models.graph import DuplicateGroup, EntityKey, ReconciliationMap


class ReferenceLike(Protocol):
    container_id: str
    entity_type: str
    entity_id: str


def group_references(references: Iterable[ReferenceLike]) -> dict[EntityKey, list[str]]:
    """Group distinct container ids by ``(entity_type, entity_id)``, preserving input order.

    Two references from the same entity to the same container count once.
    """
    groups: dict[EntityKey, list[str]] = defaultdict(list)
    for ref in references:
        container_ids = groups[(ref.entity_type, ref.entity_id)]
        if ref.container_id not in container_ids:
            container_ids.append(ref.container_id)
    return dict(groups)


def build_reconciliation_map(references: Iterable[ReferenceLike]) -> ReconciliationMap:
    """Build the entity -> container map from already-fetched reference rows.

    Never touches the store.  Callers must treat a non-empty
    ``duplicates`` list as fatal.
    """
    result = ReconciliationMap()
    for (entity_type, entity_id), container_ids in group_references(references).items():
        if len(container_ids) == 1:
            result.entity_to_container[(entity_type, entity_id)] = container_ids[0]
            continue
        logger.error(
            "Duplicate containers for {} {}: {} containers {}",
            entity_type,
            entity_id,
            len(container_ids),
            container_ids,
        )
        result.duplicates.append(
            DuplicateGroup(entity_type=entity_type, entity_id=entity_id, container_ids=container_ids),
        )

    logger.info(
        "Reconciliation map built: {} mapped entities, {} duplicate groups",
        len(result.entity_to_container),
        len(result.duplicates),
    )
    return result

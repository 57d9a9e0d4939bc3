"""Unit tests for the reconciliation map builder."""

from __future__ import annotations

from types import SimpleNamespace

from mindmesh.graph_runtime.managers.reconciliation import build_reconciliation_map, group_references


def _ref(container_id: str, entity_id: str, entity_type: str = "track") -> SimpleNamespace:
    return SimpleNamespace(container_id=container_id, entity_type=entity_type, entity_id=entity_id)


def test_single_reference_per_entity_is_mapped() -> None:
    result = build_reconciliation_map([_ref("c1", "t1"), _ref("c2", "t2"), _ref("c3", "e1", "event")])

    assert result.is_consistent
    assert result.entity_to_container == {("track", "t1"): "c1", ("track", "t2"): "c2", ("event", "e1"): "c3"}
    assert result.container_for("track", "t2") == "c2"
    assert result.has_container("event", "e1")
    assert not result.has_container("track", "e1")


def test_duplicate_entity_is_reported_and_not_mapped() -> None:
    result = build_reconciliation_map([_ref("c1", "t1"), _ref("c2", "t1"), _ref("c3", "t2")])

    assert not result.is_consistent
    assert result.container_for("track", "t1") is None
    assert result.container_for("track", "t2") == "c3"
    assert len(result.duplicates) == 1
    group = result.duplicates[0]
    assert (group.entity_type, group.entity_id) == ("track", "t1")
    assert group.container_ids == ["c1", "c2"]
    assert group.container_count == 2


def test_duplicate_group_serializes_camel_case() -> None:
    result = build_reconciliation_map([_ref("c1", "t1"), _ref("c2", "t1")])

    assert result.duplicates[0].model_dump(by_alias=True) == {
        "entityType": "track",
        "entityId": "t1",
        "containerIds": ["c1", "c2"],
    }


def test_same_container_referenced_twice_is_not_a_duplicate() -> None:
    result = build_reconciliation_map([_ref("c1", "t1"), _ref("c1", "t1")])

    assert result.is_consistent
    assert result.container_for("track", "t1") == "c1"


def test_entity_type_is_part_of_identity() -> None:
    groups = group_references([_ref("c1", "x", "task"), _ref("c2", "x", "event")])

    assert groups == {("task", "x"): ["c1"], ("event", "x"): ["c2"]}


def test_empty_input() -> None:
    result = build_reconciliation_map([])

    assert result.is_consistent
    assert result.entity_to_container == {}

from __future__ import annotations

from treeforge.entities import TreeNode, TreeRecord, child_ids
from treeforge.forest import build_forest


def test_record_accepts_int_and_string_identifiers():
    numeric = TreeRecord(id=7, parent_id=3)
    textual = TreeRecord.model_validate({"id": "7", "parent_id": None})

    assert numeric.id == 7
    assert textual.id == "7"
    assert numeric.parent_id == 3
    assert textual.parent_id is None


def test_self_referencing_record_builds_as_root():
    record = TreeRecord(id="a", parent_id="a")

    assert build_forest([record]) == [record]
    assert record.children == []


def test_record_starts_flat_and_appends_children_in_order():
    parent = TreeRecord(id=1, children=[{"id": 9}])
    assert parent.children == []

    parent.add_child(TreeRecord(id=2, parent_id=1))
    parent.add_child(TreeRecord(id=3, parent_id=1))
    assert child_ids(parent) == [2, 3]


def test_label_is_trimmed_and_blank_becomes_none():
    assert TreeRecord(id=1, label="  Root ").label == "Root"
    assert TreeRecord(id=1, label="   ").label is None


def test_summary_excludes_children():
    record = TreeRecord(id=1, label="Root", attributes={"k": "v"})
    record.add_child(TreeRecord(id=2, parent_id=1))

    assert record.summary() == {"id": 1, "parent_id": None, "label": "Root", "attributes": {"k": "v"}}


def test_record_satisfies_node_contract():
    assert isinstance(TreeRecord(id=1), TreeNode)
